"""Pydantic models for machines."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from ..constants import MachineStatus, MachineType


class MachineCreate(BaseModel):
    id: str
    name: str
    type: MachineType
    status: MachineStatus = "IDLE"

    @field_validator("id", "name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class MachineStatusUpdate(BaseModel):
    status: MachineStatus


class MachineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: MachineType
    status: MachineStatus
    last_updated: datetime | None = None
