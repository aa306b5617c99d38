from datetime import date
from typing import List, Literal, Mapping, Optional

from pydantic import field_validator

from dlvery.core.conditions import CONDITION_TYPES, derive_type, priority_label

from .common import DocumentModel, as_date, as_int, as_str, now_iso


DeliveryStatus = Literal["pending", "in_transit", "delivered", "returned", "door_lock"]
DeliveryType = Literal["normal", "perishable", "damaged"]

DELIVERY_STATUSES = ("pending", "in_transit", "delivered", "returned", "door_lock")


def normalize_delivery(doc: Mapping) -> dict:
    """Coerce a raw `deliveries` document into a fully populated delivery."""
    perishable = bool(doc.get("perishable"))
    damaged = bool(doc.get("damaged"))
    stored_type = doc.get("type")
    status = doc.get("status")
    return {
        "id": as_str(doc.get("id")),
        "sku": as_str(doc.get("sku")),
        "name": as_str(doc.get("name")),
        "agent": as_str(doc.get("agent")),
        "quantity": as_int(doc.get("quantity")),
        "status": status if status in DELIVERY_STATUSES else "pending",
        "type": stored_type if stored_type in CONDITION_TYPES else derive_type(perishable, damaged),
        "perishable": perishable,
        "damaged": damaged,
        "delivery_date": as_date(doc.get("deliveryDate")),
        "created_at": as_str(doc.get("createdAt")) or now_iso(),
        "delivered_quantity": as_int(doc.get("deliveredQuantity")),
        "delivered_at": as_str(doc.get("deliveredAt")),
    }


class DeliveryOut(DocumentModel):
    id: str
    sku: str
    name: str
    agent: str
    quantity: int
    status: DeliveryStatus
    type: DeliveryType
    perishable: bool
    damaged: bool
    delivery_date: Optional[date] = None
    created_at: str
    delivered_quantity: int = 0
    delivered_at: str = ""
    priority: Optional[str] = None

    @classmethod
    def from_delivery(cls, delivery: Mapping) -> "DeliveryOut":
        return cls(**delivery, priority=priority_label(delivery))


class DispatchRequest(DocumentModel):
    # validated by the consistency engine so bad input surfaces as ValidationError
    agent: str = ""
    quantity: int = 0
    delivery_date: Optional[str] = None

    @field_validator("agent")
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()


class StatusChangeRequest(DocumentModel):
    status: str


class TypeChangeRequest(DocumentModel):
    type: str


class TypeChangeResult(DocumentModel):
    delivery_id: str
    type: DeliveryType
    inventory_updated: int


class StatusChangeResult(DocumentModel):
    delivery_id: str
    status: DeliveryStatus
    deleted: bool
    inventory_item_id: Optional[str] = None


class DeliveryQueue(DocumentModel):
    agent: str
    as_of: date
    past: List[DeliveryOut]
    today: List[DeliveryOut]
    upcoming: List[DeliveryOut]
