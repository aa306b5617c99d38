from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Documents are stored with camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def as_int(value: Any) -> int:
    # bool is an int subclass but never a meaningful quantity
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def as_date(value: Any) -> Optional[date]:
    """Date portion of a date, datetime or ISO string; None when absent or unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        try:
            return datetime.fromisoformat(s).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(s[:10])
        except ValueError:
            return None
    return None


def date_to_doc(value: Optional[date]) -> str:
    return value.isoformat() if value else ""


TRUE_STRINGS = ("true", "1", "yes", "y", "on")


def as_flag(value: Any) -> bool:
    """Lenient boolean for form and import input: blanks are False."""
    if isinstance(value, bool):
        return value
    if not value:
        return False
    return str(value).strip().lower() in TRUE_STRINGS


def blank_to_none(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value
