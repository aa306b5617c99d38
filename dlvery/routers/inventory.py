from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from dlvery.db.store import CollectionStore, get_store
from dlvery.schemas.common import date_to_doc, now_iso
from dlvery.schemas.deliveries import DeliveryOut, DispatchRequest
from dlvery.schemas.inventory import (
    ConditionFieldName,
    InventoryImportRequest,
    InventoryImportResult,
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    ToggleResult,
    normalize_inventory_item,
)
from dlvery.services.consistency import dispatch, related_delivery_skus, toggle_condition
from dlvery.services.importer import import_inventory

router = APIRouter()


def _item_out(doc) -> InventoryItemOut:
    return InventoryItemOut(**normalize_inventory_item(doc))


@router.get("/items", response_model=List[InventoryItemOut])
async def list_inventory_items(
    q: Optional[str] = None,
    perishable: Optional[bool] = None,
    damaged: Optional[bool] = None,
    expiry: Optional[date] = None,
    store: CollectionStore = Depends(get_store),
):
    """
    List inventory items, newest first.

    - q matches SKU or category (case-insensitive substring).
    - perishable / damaged filter on the condition flags.
    - expiry keeps items that expire on or before that date.
    """
    items = [normalize_inventory_item(d) for d in await store.get_all("inventory")]
    items.sort(key=lambda it: it["created_at"], reverse=True)

    if q:
        qq = q.strip().lower()
        items = [it for it in items if qq in it["sku"].lower() or qq in it["category"].lower()]
    if perishable is not None:
        items = [it for it in items if it["perishable"] == perishable]
    if damaged is not None:
        items = [it for it in items if it["damaged"] == damaged]
    if expiry is not None:
        items = [it for it in items if it["expiry"] is not None and it["expiry"] <= expiry]

    related = await related_delivery_skus(store)
    return [InventoryItemOut(**it, has_deliveries=it["sku"] in related) for it in items]


@router.post("/items", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    store: CollectionStore = Depends(get_store),
):
    stamp = now_iso()
    doc = {
        "sku": payload.sku,
        "category": payload.category,
        "quantity": payload.quantity,
        "perishable": payload.perishable,
        "damaged": payload.damaged,
        "expiry": date_to_doc(payload.expiry),
        "createdAt": stamp,
        "updatedAt": stamp,
    }
    item_id = await store.create("inventory", doc)
    return _item_out({**doc, "id": item_id})


@router.patch("/items/{item_id}", response_model=InventoryItemOut)
async def update_inventory_item(
    item_id: str,
    payload: InventoryItemUpdate,
    store: CollectionStore = Depends(get_store),
):
    data = payload.model_dump(exclude_unset=True, by_alias=True)
    # an explicit null clears the expiry and leaves every other field alone
    data = {k: v for k, v in data.items() if v is not None or k == "expiry"}
    if "expiry" in data:
        data["expiry"] = date_to_doc(data["expiry"])
    data["updatedAt"] = now_iso()

    async with store.transaction() as tx:
        await tx.update("inventory", item_id, data)
        doc = await tx.get("inventory", item_id)
    return _item_out(doc)


@router.delete("/items/{item_id}")
async def delete_inventory_item(
    item_id: str,
    store: CollectionStore = Depends(get_store),
):
    deleted = await store.delete("inventory", item_id)
    return {"ok": True, "deleted": deleted}


@router.post("/items/{item_id}/toggle/{field}", response_model=ToggleResult)
async def toggle_inventory_condition(
    item_id: str,
    field: ConditionFieldName,
    store: CollectionStore = Depends(get_store),
):
    """Flip perishable/damaged on the item; live deliveries of the same SKU follow."""
    updated = await toggle_condition(store, item_id, field)
    item = normalize_inventory_item(await store.get("inventory", item_id))
    return ToggleResult(item_id=item_id, field=field, value=item[field], deliveries_updated=updated)


@router.post("/items/{item_id}/dispatch", response_model=DeliveryOut, status_code=status.HTTP_201_CREATED)
async def dispatch_inventory_item(
    item_id: str,
    payload: DispatchRequest,
    store: CollectionStore = Depends(get_store),
):
    delivery = await dispatch(store, item_id, payload.agent, payload.quantity, payload.delivery_date)
    return DeliveryOut.from_delivery(delivery)


@router.post("/import", response_model=InventoryImportResult)
async def import_inventory_items(
    payload: InventoryImportRequest,
    store: CollectionStore = Depends(get_store),
):
    return InventoryImportResult(**await import_inventory(store, payload.rows))


@router.get("/related-skus", response_model=List[str])
async def list_related_skus(store: CollectionStore = Depends(get_store)):
    return sorted(await related_delivery_skus(store))
