from typing import Mapping

from .common import DocumentModel, as_str


def normalize_verification(doc: Mapping) -> dict:
    return {
        "id": as_str(doc.get("id")),
        "delivery_id": as_str(doc.get("deliveryId")),
        "agent": as_str(doc.get("agent")),
        "customer_name": as_str(doc.get("customerName")),
        "signature": as_str(doc.get("signature")),
        "verified_at": as_str(doc.get("verifiedAt")),
    }


class VerificationCreate(DocumentModel):
    customer_name: str = ""
    signature: str = ""


class VerificationOut(DocumentModel):
    id: str
    delivery_id: str
    agent: str
    customer_name: str
    verified_at: str
    signature_url: str
