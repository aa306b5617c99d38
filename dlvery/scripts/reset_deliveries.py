"""
Delete ALL deliveries from the database. Inventory and verifications are kept.

Run from the repo root:
  python -m dlvery.scripts.reset_deliveries
"""

from __future__ import annotations

import asyncio

from sqlalchemy import delete

from dlvery.db.database import async_session_maker
from dlvery.db.document import Document


async def main() -> None:
    async with async_session_maker() as db:
        res = await db.execute(delete(Document).where(Document.collection == "deliveries"))
        await db.commit()

        deliveries_n = int(getattr(res, "rowcount", 0) or 0)
        print(f"Deleted deliveries: {deliveries_n}")


if __name__ == "__main__":
    asyncio.run(main())
