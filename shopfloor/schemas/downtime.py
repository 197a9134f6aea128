"""
schemas/downtime.py — Pydantic models for downtime events

Business Rules:
- A closing reason code is required and may not be the PENDING placeholder
- Parent reason code and label travel together (both or neither)

Called by: services/downtime_service.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ..constants import PENDING_REASON_CODE


class DowntimeEnd(BaseModel):
    reason_code: str
    reason_label: str
    parent_reason_code: str | None = None
    parent_reason_label: str | None = None
    photo_path: str | None = None
    notes: str | None = None

    @field_validator("reason_code", "reason_label")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reason is required")
        return v

    @field_validator("reason_code")
    @classmethod
    def not_placeholder(cls, v: str) -> str:
        if v == PENDING_REASON_CODE:
            raise ValueError("A final reason must be selected")
        return v

    @model_validator(mode="after")
    def parent_pair(self) -> "DowntimeEnd":
        if (self.parent_reason_code is None) != (self.parent_reason_label is None):
            raise ValueError("parent_reason_code and parent_reason_label go together")
        return self


class DowntimeEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    unique_id: str
    tenant_id: str
    machine_id: str
    start_time: datetime
    end_time: datetime | None = None
    reason_code: str
    reason_label: str
    parent_reason_code: str | None = None
    parent_reason_label: str | None = None
    photo_path: str | None = None
    notes: str | None = None
    synced: bool
    created_at: datetime
    updated_at: datetime

    @property
    def is_open(self) -> bool:
        return self.end_time is None
