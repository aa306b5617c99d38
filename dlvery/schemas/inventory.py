from datetime import date
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import field_validator

from .common import DocumentModel, as_date, as_flag, as_int, as_str, blank_to_none, now_iso


ConditionFieldName = Literal["perishable", "damaged"]


def normalize_inventory_item(doc: Mapping) -> dict:
    """Coerce a raw `inventory` document into a fully populated item."""
    return {
        "id": as_str(doc.get("id")),
        "sku": as_str(doc.get("sku")),
        "category": as_str(doc.get("category")),
        "quantity": as_int(doc.get("quantity")),
        "perishable": bool(doc.get("perishable")),
        "damaged": bool(doc.get("damaged")),
        "expiry": as_date(doc.get("expiry")),
        "created_at": as_str(doc.get("createdAt")) or now_iso(),
        "updated_at": as_str(doc.get("updatedAt")) or now_iso(),
    }


class InventoryItemCreate(DocumentModel):
    sku: str
    category: str
    quantity: int = 1
    perishable: bool = False
    damaged: bool = False
    expiry: Optional[date] = None

    @field_validator("expiry", mode="before")
    @classmethod
    def _blank_expiry(cls, v):
        return blank_to_none(v)

    @field_validator("perishable", "damaged", mode="before")
    @classmethod
    def _flag(cls, v) -> bool:
        return as_flag(v)

    @field_validator("sku", "category")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("quantity")
    @classmethod
    def _quantity_min(cls, v: int) -> int:
        if v < 1:
            raise ValueError("quantity must be at least 1")
        return v


class InventoryItemUpdate(DocumentModel):
    sku: Optional[str] = None
    category: Optional[str] = None
    quantity: Optional[int] = None
    perishable: Optional[bool] = None
    damaged: Optional[bool] = None
    expiry: Optional[date] = None

    @field_validator("expiry", mode="before")
    @classmethod
    def _blank_expiry(cls, v):
        return blank_to_none(v)

    @field_validator("perishable", "damaged", mode="before")
    @classmethod
    def _flag(cls, v) -> Optional[bool]:
        # null means "leave as is"
        return None if v is None else as_flag(v)

    @field_validator("sku", "category")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("quantity")
    @classmethod
    def _quantity_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("quantity cannot be negative")
        return v


class InventoryItemOut(DocumentModel):
    id: str
    sku: str
    category: str
    quantity: int
    perishable: bool
    damaged: bool
    expiry: Optional[date] = None
    created_at: str
    updated_at: str
    has_deliveries: bool = False


class InventoryImportRequest(DocumentModel):
    rows: List[Dict[str, Any]]


class InventoryImportResult(DocumentModel):
    added: int
    updated: int
    errors: int


class ToggleResult(DocumentModel):
    item_id: str
    field: ConditionFieldName
    value: bool
    deliveries_updated: int
