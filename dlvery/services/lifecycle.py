"""
Delivery status transitions and their side effects.

    pending ──> in_transit ──> delivered   (confirm_delivery: verification recorded)
       │             │
       └─────────────┴───────> returned    (stock goes back to inventory)

door_lock can be selected from pending or in_transit and has no side effect;
from there the agent can retry (in_transit) or give up (returned).

delivered and returned are terminal: the delivery document is deleted in the
same transaction that writes the verification or the restocked item.
"""
import logging
from typing import Dict, FrozenSet, Optional

from dlvery.core.exceptions import NotFoundError, ValidationError
from dlvery.db.store import CollectionStore, StoreTransaction
from dlvery.schemas.common import now_iso
from dlvery.schemas.deliveries import DELIVERY_STATUSES, normalize_delivery

from .signatures import decode_signature

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"delivered", "returned"})

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"in_transit", "returned", "door_lock"}),
    "in_transit": frozenset({"in_transit", "delivered", "returned", "door_lock"}),
    "door_lock": frozenset({"in_transit", "returned"}),
}


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, frozenset())


async def _load_for_agent(tx: StoreTransaction, delivery_id: str, agent: Optional[str]) -> dict:
    delivery = normalize_delivery(await tx.get("deliveries", delivery_id))
    # exact match, the same rule the agent queue query uses
    if agent is not None and delivery["agent"] != agent:
        raise NotFoundError("deliveries", delivery_id, f"delivery {delivery_id} is not assigned to {agent}")
    return delivery


async def change_status(
    store: CollectionStore,
    delivery_id: str,
    new_status: str,
    agent: Optional[str] = None,
) -> dict:
    """Move a delivery to `new_status`.

    `agent`, when given, restricts the change to that agent's own deliveries.
    Delivered needs a customer verification and goes through confirm_delivery.
    """
    if new_status not in DELIVERY_STATUSES:
        raise ValidationError(f"unknown status: {new_status}")
    if new_status == "delivered":
        raise ValidationError("delivery confirmation required")

    result = {"delivery_id": delivery_id, "status": new_status, "deleted": False, "inventory_item_id": None}
    async with store.transaction() as tx:
        delivery = await _load_for_agent(tx, delivery_id, agent)
        current = delivery["status"]
        if new_status == current and current not in TERMINAL_STATUSES:
            return result
        if not can_transition(current, new_status):
            raise ValidationError(f"cannot move delivery from {current} to {new_status}")

        if new_status == "returned":
            stamp = now_iso()
            item_id = await tx.create("inventory", {
                "sku": delivery["sku"],
                "category": delivery["name"],
                "quantity": delivery["quantity"],
                "perishable": delivery["perishable"],
                "damaged": delivery["damaged"],
                "createdAt": stamp,
                "updatedAt": stamp,
            })
            await tx.delete("deliveries", delivery_id)
            result.update(deleted=True, inventory_item_id=item_id)
        else:
            await tx.update("deliveries", delivery_id, {"status": new_status})

    if result["deleted"]:
        logger.info(
            "delivery %s returned, %s x%d restocked as item %s",
            delivery_id, delivery["sku"], delivery["quantity"], result["inventory_item_id"],
        )
    else:
        logger.info("delivery %s %s -> %s", delivery_id, current, new_status)
    return result


async def confirm_delivery(
    store: CollectionStore,
    delivery_id: str,
    customer_name: str,
    signature: str,
    agent: Optional[str] = None,
) -> dict:
    """Record the customer's verification and remove the delivered delivery.

    Input is checked before anything is written, so a rejected confirmation
    leaves the delivery as it was and creates no verification.
    """
    name = (customer_name or "").strip()
    if not name:
        raise ValidationError("customer name required")
    if not (signature or "").strip():
        raise ValidationError("signature required")
    decode_signature(signature)

    async with store.transaction() as tx:
        delivery = await _load_for_agent(tx, delivery_id, agent)
        if not can_transition(delivery["status"], "delivered"):
            raise ValidationError(f"cannot confirm a {delivery['status']} delivery")
        doc = {
            "deliveryId": delivery_id,
            "agent": delivery["agent"],
            "customerName": name,
            "signature": signature,
            "verifiedAt": now_iso(),
        }
        verification_id = await tx.create("verifications", doc)
        await tx.delete("deliveries", delivery_id)

    logger.info("delivery %s delivered to %s, verification %s", delivery_id, name, verification_id)
    return {**doc, "id": verification_id}
