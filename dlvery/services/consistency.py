"""
Inventory <-> delivery consistency.

Stock moves from `inventory` to `deliveries` by dispatch and back by return
(see lifecycle.py). In between, the condition flags of a SKU are kept in step
across both collections:

- toggling a flag on an inventory item copies that one flag to every live
  delivery of the SKU and recomputes the delivery's type;
- choosing a type on a delivery sets both flags from it (they become mutually
  exclusive) and copies both to every inventory item of the SKU.

Nothing here changes quantities except dispatch itself. Concurrent toggles on
the same SKU are last-writer-wins per field.
"""
import logging
from datetime import date
from typing import Set, Union

from dlvery.core.conditions import CONDITION_FIELDS, CONDITION_TYPES, derive_type, flags_for_type
from dlvery.core.exceptions import ValidationError
from dlvery.db.store import CollectionStore
from dlvery.schemas.common import as_date, date_to_doc, now_iso
from dlvery.schemas.deliveries import normalize_delivery
from dlvery.schemas.inventory import normalize_inventory_item

logger = logging.getLogger(__name__)


def _as_quantity(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("invalid quantity")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("invalid quantity") from None


async def dispatch(
    store: CollectionStore,
    item_id: str,
    agent_email: str,
    quantity: int,
    delivery_date: Union[date, str, None],
) -> dict:
    """Send an inventory item out for delivery.

    Creates a pending delivery for `quantity` units and removes the inventory
    document, both in one transaction. The whole document is removed even when
    `quantity` is less than what it holds; the remainder is not kept.
    """
    agent = (agent_email or "").strip()
    if not agent:
        raise ValidationError("agent required")
    when = as_date(delivery_date)
    if when is None:
        raise ValidationError("delivery date required")
    qty = _as_quantity(quantity)

    async with store.transaction() as tx:
        item = normalize_inventory_item(await tx.get("inventory", item_id))
        if qty < 1 or qty > item["quantity"]:
            raise ValidationError("invalid quantity")

        doc = {
            "sku": item["sku"],
            "name": item["category"],
            "agent": agent,
            "quantity": qty,
            "deliveryDate": date_to_doc(when),
            "status": "pending",
            "createdAt": now_iso(),
            "perishable": item["perishable"],
            "damaged": item["damaged"],
            "type": derive_type(item["perishable"], item["damaged"]),
        }
        delivery_id = await tx.create("deliveries", doc)
        await tx.delete("inventory", item_id)

    logger.info(
        "dispatched %s x%d to %s for %s as delivery %s",
        item["sku"], qty, agent, when.isoformat(), delivery_id,
    )
    if qty < item["quantity"]:
        logger.warning(
            "dispatch of %s sent %d of %d units; item %s removed with the remaining %d",
            item["sku"], qty, item["quantity"], item_id, item["quantity"] - qty,
        )
    return normalize_delivery({**doc, "id": delivery_id})


async def toggle_condition(store: CollectionStore, item_id: str, field: str) -> int:
    """Flip `field` on an inventory item and copy it to the SKU's live deliveries.

    Returns the number of deliveries updated.
    """
    if field not in CONDITION_FIELDS:
        raise ValidationError(f"unknown condition field: {field}")

    updated = 0
    async with store.transaction() as tx:
        item = normalize_inventory_item(await tx.get("inventory", item_id))
        value = not item[field]
        await tx.update("inventory", item_id, {field: value, "updatedAt": now_iso()})

        if item["sku"]:
            for raw in await tx.get_all("deliveries"):
                delivery = normalize_delivery(raw)
                if delivery["sku"] != item["sku"]:
                    continue
                flags = {"perishable": delivery["perishable"], "damaged": delivery["damaged"], field: value}
                await tx.update("deliveries", delivery["id"], {
                    field: value,
                    "type": derive_type(flags["perishable"], flags["damaged"]),
                })
                updated += 1

    logger.info("item %s (%s) %s=%s, %d deliveries updated", item_id, item["sku"], field, value, updated)
    return updated


async def change_delivery_type(store: CollectionStore, delivery_id: str, new_type: str) -> int:
    """Set a delivery's type and copy the resulting flags to the SKU's inventory items.

    Returns the number of inventory items updated.
    """
    if new_type not in CONDITION_TYPES:
        raise ValidationError(f"unknown delivery type: {new_type}")
    flags = flags_for_type(new_type)

    updated = 0
    async with store.transaction() as tx:
        delivery = normalize_delivery(await tx.get("deliveries", delivery_id))
        await tx.update("deliveries", delivery_id, {"type": new_type, **flags})

        if delivery["sku"]:
            stamp = now_iso()
            for raw in await tx.get_all("inventory"):
                item = normalize_inventory_item(raw)
                if item["sku"] != delivery["sku"]:
                    continue
                await tx.update("inventory", item["id"], {**flags, "updatedAt": stamp})
                updated += 1

    logger.info("delivery %s (%s) type=%s, %d inventory items updated", delivery_id, delivery["sku"], new_type, updated)
    return updated


async def related_delivery_skus(store: CollectionStore) -> Set[str]:
    """SKUs that currently have at least one live delivery."""
    docs = await store.get_all("deliveries")
    return {d["sku"] for d in map(normalize_delivery, docs) if d["sku"]}

