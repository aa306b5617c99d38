"""
Seed demo users, inventory and a few deliveries.

Run from the repo root:
  python -m dlvery.scripts.seed_demo

It uses the same DATABASE_URL as the API (dotenv supported by core.config).
Deliveries are created through dispatch so they look exactly like real ones.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from dlvery.db.database import create_db_and_tables
from dlvery.db.store import store
from dlvery.services.consistency import dispatch
from dlvery.services.importer import import_inventory


@dataclass(frozen=True)
class SeedItem:
    sku: str
    category: str
    quantity: int
    perishable: bool = False
    damaged: bool = False
    expiry: Optional[str] = None


SEED_USERS = [
    {"email": "inventory@dlvery.test", "role": "InvTeam"},
    {"email": "agent.one@dlvery.test", "role": "DLTeam"},
    {"email": "agent.two@dlvery.test", "role": "DLTeam"},
]

SEED_ITEMS: list[SeedItem] = [
    SeedItem("SKU001", "Electronics", 50),
    SeedItem("SKU002", "Fresh Produce", 25, perishable=True, expiry="2030-01-15"),
    SeedItem("SKU003", "Clothing", 100),
    SeedItem("SKU004", "Food Items", 30, perishable=True, expiry="2030-02-28"),
    SeedItem("SKU005", "Electronics", 15, damaged=True),
]

# sku -> (agent, days from today)
SEED_DISPATCHES = {
    "SKU002": ("agent.one@dlvery.test", 0),
    "SKU005": ("agent.one@dlvery.test", -1),
    "SKU003": ("agent.one@dlvery.test", 2),
}


async def seed() -> None:
    await create_db_and_tables()

    existing = {str(u.get("email") or "").lower() for u in await store.get_all("users")}
    for user in SEED_USERS:
        if user["email"].lower() not in existing:
            await store.create("users", user)

    result = await import_inventory(store, [item.__dict__ for item in SEED_ITEMS])
    print(f"Inventory: {result['added']} added, {result['updated']} updated, {result['errors']} errors")

    today = date.today()
    for item in await store.get_all("inventory"):
        plan = SEED_DISPATCHES.get(item.get("sku"))
        if not plan:
            continue
        agent, offset = plan
        qty = min(5, int(item.get("quantity") or 0))
        delivery = await dispatch(store, item["id"], agent, qty, today + timedelta(days=offset))
        print(f"Dispatched {delivery['sku']} x{qty} to {agent} ({delivery['type']})")


if __name__ == "__main__":
    asyncio.run(seed())
