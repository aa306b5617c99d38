from typing import Mapping

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from dlvery.db.store import CollectionStore, get_store
from dlvery.schemas.verifications import VerificationOut, normalize_verification
from dlvery.services.signatures import decode_signature

router = APIRouter()


def verification_out(doc: Mapping) -> VerificationOut:
    v = normalize_verification(doc)
    return VerificationOut(
        id=v["id"],
        delivery_id=v["delivery_id"],
        agent=v["agent"],
        customer_name=v["customer_name"],
        verified_at=v["verified_at"],
        signature_url=f"/verifications/{v['id']}/signature",
    )


@router.get("/{verification_id}", response_model=VerificationOut)
async def get_verification(
    verification_id: str,
    store: CollectionStore = Depends(get_store),
):
    return verification_out(await store.get("verifications", verification_id))


@router.get("/{verification_id}/signature", response_class=Response)
async def serve_signature(
    verification_id: str,
    store: CollectionStore = Depends(get_store),
):
    """Signature image bytes, so it can be used directly as an img src."""
    v = normalize_verification(await store.get("verifications", verification_id))
    data, content_type = decode_signature(v["signature"])
    return Response(content=data, media_type=content_type)
