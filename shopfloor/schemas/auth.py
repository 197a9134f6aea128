"""Pydantic models for the cached user."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from ..constants import UserRole


class UserIn(BaseModel):
    id: str
    email: str
    role: UserRole
    tenant_id: str
    token: str

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email")
        return v


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: UserRole
    tenant_id: str
    token: str
