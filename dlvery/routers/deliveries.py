from typing import List, Optional

from fastapi import APIRouter, Depends, status

from dlvery.db.store import CollectionStore, get_store
from dlvery.schemas.deliveries import (
    DeliveryOut,
    StatusChangeRequest,
    StatusChangeResult,
    TypeChangeRequest,
    TypeChangeResult,
    normalize_delivery,
)
from dlvery.schemas.verifications import VerificationCreate, VerificationOut
from dlvery.services.consistency import change_delivery_type
from dlvery.services.lifecycle import change_status, confirm_delivery

from .verifications import verification_out

router = APIRouter()


@router.get("/", response_model=List[DeliveryOut])
async def list_deliveries(
    sku: Optional[str] = None,
    agent: Optional[str] = None,
    store: CollectionStore = Depends(get_store),
):
    """All live deliveries, newest first, optionally filtered by SKU / agent substring."""
    docs = await store.get_all("deliveries", order_by=("createdAt", "desc"))
    deliveries = [normalize_delivery(d) for d in docs]
    deliveries = [d for d in deliveries if d["id"]]

    if sku:
        needle = sku.lower()
        deliveries = [d for d in deliveries if needle in d["sku"].lower()]
    if agent and agent.strip():
        needle = agent.strip().lower()
        deliveries = [d for d in deliveries if needle in d["agent"].strip().lower()]

    return [DeliveryOut.from_delivery(d) for d in deliveries]


@router.get("/{delivery_id}", response_model=DeliveryOut)
async def get_delivery(
    delivery_id: str,
    store: CollectionStore = Depends(get_store),
):
    return DeliveryOut.from_delivery(normalize_delivery(await store.get("deliveries", delivery_id)))


@router.patch("/{delivery_id}/status", response_model=StatusChangeResult)
async def update_delivery_status(
    delivery_id: str,
    payload: StatusChangeRequest,
    store: CollectionStore = Depends(get_store),
):
    return StatusChangeResult(**await change_status(store, delivery_id, payload.status))


@router.patch("/{delivery_id}/type", response_model=TypeChangeResult)
async def update_delivery_type(
    delivery_id: str,
    payload: TypeChangeRequest,
    store: CollectionStore = Depends(get_store),
):
    """Set the delivery's condition; inventory items with the same SKU get the same flags."""
    updated = await change_delivery_type(store, delivery_id, payload.type)
    return TypeChangeResult(delivery_id=delivery_id, type=payload.type, inventory_updated=updated)


@router.post("/{delivery_id}/confirm", response_model=VerificationOut, status_code=status.HTTP_201_CREATED)
async def confirm_delivery_route(
    delivery_id: str,
    payload: VerificationCreate,
    store: CollectionStore = Depends(get_store),
):
    verification = await confirm_delivery(store, delivery_id, payload.customer_name, payload.signature)
    return verification_out(verification)
