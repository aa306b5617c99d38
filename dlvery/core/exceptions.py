"""
Typed errors raised by the inventory/delivery core.

    DLVeryError
    +-- ValidationError   bad input, nothing was written
    +-- NotFoundError     the document is gone (deleted concurrently or never existed)
    +-- StoreError        the underlying read/write failed, the operation is not applied

The HTTP layer maps them to 400 / 404 / 503 (see main.py).
"""
from typing import Optional


class DLVeryError(Exception):
    code: str = "DLVERY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DLVeryError):
    code = "VALIDATION_ERROR"


class NotFoundError(DLVeryError):
    code = "NOT_FOUND"

    def __init__(self, collection: str, doc_id: str, message: Optional[str] = None):
        super().__init__(message or f"{collection} document {doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class StoreError(DLVeryError):
    code = "STORE_ERROR"
