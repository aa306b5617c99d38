from typing import Literal, Mapping

from pydantic import EmailStr, field_validator

from .common import DocumentModel, as_str


UserRole = Literal["InvTeam", "DLTeam"]


def normalize_user(doc: Mapping) -> dict:
    return {
        "id": as_str(doc.get("id")),
        "email": as_str(doc.get("email")).strip(),
        "role": as_str(doc.get("role")),
    }


class UserCreate(DocumentModel):
    email: EmailStr
    role: UserRole


class UserRead(DocumentModel):
    id: str
    email: str
    role: str


class AgentSessionCreate(DocumentModel):
    email: str

    @field_validator("email")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("email is required")
        return v


class AgentSessionRead(DocumentModel):
    agent: str
