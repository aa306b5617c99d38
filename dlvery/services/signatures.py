import base64
import binascii
from typing import Tuple

from dlvery.core.exceptions import ValidationError

MAX_SIGNATURE_BYTES = 5 * 1024 * 1024


def decode_signature(payload: str) -> Tuple[bytes, str]:
    """Decode a signature captured as a data URL (or bare base64) into image bytes."""
    content_type = "image/png"
    data = (payload or "").strip()
    if "," in data:
        prefix, data = data.split(",", 1)
        if prefix.startswith("data:") and ";" in prefix:
            content_type = prefix.split(";")[0].replace("data:", "").strip() or content_type
    if not content_type.startswith("image/"):
        raise ValidationError("signature must be an image")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("signature is not valid base64 image data") from None
    if not raw:
        raise ValidationError("signature required")
    if len(raw) > MAX_SIGNATURE_BYTES:
        raise ValidationError("signature image must be less than 5MB")
    return raw, content_type
