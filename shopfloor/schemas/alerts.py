"""Pydantic models for alerts."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from ..constants import AlertSeverity, AlertStatus


class AlertCreate(BaseModel):
    machine_id: str
    message: str
    severity: AlertSeverity = "medium"

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Alert message is required")
        return v


class AlertOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    machine_id: str
    machine_name: str
    message: str
    severity: AlertSeverity
    status: AlertStatus
    created_at: datetime
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    cleared_by: str | None = None
    cleared_at: datetime | None = None
    synced: bool
