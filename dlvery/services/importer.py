"""Bulk inventory import: update by SKU when the item exists, otherwise create it."""
import logging
from typing import Any, Dict, Iterable, Mapping

from pydantic import ValidationError as SchemaValidationError

from dlvery.core.exceptions import DLVeryError
from dlvery.db.store import CollectionStore
from dlvery.schemas.common import date_to_doc, now_iso
from dlvery.schemas.inventory import InventoryItemCreate

logger = logging.getLogger(__name__)


def _row_to_doc(row: Mapping[str, Any]) -> dict:
    item = InventoryItemCreate.model_validate(row)
    return {
        "sku": item.sku,
        "category": item.category,
        "quantity": item.quantity,
        "perishable": item.perishable,
        "damaged": item.damaged,
        "expiry": date_to_doc(item.expiry),
    }


async def import_inventory(store: CollectionStore, rows: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    """Upsert each row by SKU. A bad row is counted and logged; the rest still go through."""
    added = updated = errors = 0
    for n, row in enumerate(rows, start=1):
        try:
            doc = _row_to_doc(row)
            async with store.transaction() as tx:
                existing = next(
                    (d for d in await tx.get_all("inventory") if str(d.get("sku") or "") == doc["sku"]),
                    None,
                )
                stamp = now_iso()
                if existing is not None:
                    await tx.update("inventory", existing["id"], {**doc, "updatedAt": stamp})
                    updated += 1
                else:
                    await tx.create("inventory", {**doc, "createdAt": stamp, "updatedAt": stamp})
                    added += 1
        except (SchemaValidationError, DLVeryError) as e:
            errors += 1
            logger.warning("import row %d (sku=%r) rejected: %s", n, row.get("sku"), e)

    logger.info("inventory import: %d added, %d updated, %d errors", added, updated, errors)
    return {"added": added, "updated": updated, "errors": errors}
