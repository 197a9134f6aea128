"""Pydantic models for maintenance items."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from ..constants import MaintenanceStatus


class MaintenanceItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    machine_id: str
    title: str
    description: str | None = None
    due_date: date
    status: MaintenanceStatus
    completed_at: datetime | None = None
    completed_by: str | None = None
    notes: str | None = None
    synced: bool
