"""
Schemaless document storage.

Every collection (inventory, deliveries, verifications, users) lives in the
same table, keyed by (collection, id). The payload is free-form JSON: nothing
about its shape is enforced here, readers normalize on the way out.
"""
import uuid

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from .database import Base


def new_document_id() -> str:
    return uuid.uuid4().hex


class Document(Base):
    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True, default=new_document_id)
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        """Stored payload with the document id merged in."""
        out = dict(self.data or {})
        out["id"] = self.id
        return out
