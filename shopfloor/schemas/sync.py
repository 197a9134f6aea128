"""
schemas/sync.py — Outbox payloads and sync status

Outbox payloads are a tagged union keyed by (entity_type, action). They are
stored as JSON text and decoded back into the concrete model at dispatch
time, so a payload whose shape drifted fails loudly on that record instead of
reaching the remote side half-formed.

Business Rules:
- Payload models forbid unknown keys
- Update payloads carry only the fields that changed (exclude_unset on dump)
- Tags with no payload model decode to a plain dict

Called by: services/outbox_service.py, services/sync_engine.py, scheduler.py
Depends on: pydantic
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Union

from pydantic import BaseModel, ConfigDict

from ..constants import (
    AlertSeverity,
    AlertStatus,
    EntityType,
    SyncAction,
    SyncStatus,
)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict with only the fields that were set."""
        return self.model_dump(mode="json", exclude_unset=True)


# ── Downtime ─────────────────────────────────────────────────────────


class DowntimeCreatePayload(_Payload):
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


class DowntimeUpdatePayload(_Payload):
    unique_id: str
    end_time: datetime | None = None
    reason_code: str | None = None
    reason_label: str | None = None
    parent_reason_code: str | None = None
    parent_reason_label: str | None = None
    photo_path: str | None = None
    notes: str | None = None
    updated_at: datetime | None = None


# ── Maintenance ──────────────────────────────────────────────────────


class MaintenanceUpdatePayload(_Payload):
    status: str | None = None
    completed_at: datetime | None = None
    completed_by: str | None = None
    notes: str | None = None


# ── Alerts ───────────────────────────────────────────────────────────


class AlertCreatePayload(_Payload):
    id: str
    tenant_id: str
    machine_id: str
    machine_name: str
    message: str
    severity: AlertSeverity
    status: AlertStatus
    created_at: datetime


class AlertUpdatePayload(_Payload):
    status: AlertStatus | None = None
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    cleared_by: str | None = None
    cleared_at: datetime | None = None


SyncPayload = Union[
    DowntimeCreatePayload,
    DowntimeUpdatePayload,
    MaintenanceUpdatePayload,
    AlertCreatePayload,
    AlertUpdatePayload,
]

PAYLOAD_TYPES: dict[tuple[str, str], type[_Payload]] = {
    ("downtime", "create"): DowntimeCreatePayload,
    ("downtime", "update"): DowntimeUpdatePayload,
    ("maintenance", "update"): MaintenanceUpdatePayload,
    ("alert", "create"): AlertCreatePayload,
    ("alert", "update"): AlertUpdatePayload,
}


def encode_payload(entity_type: str, action: str, payload: _Payload) -> str:
    expected = PAYLOAD_TYPES.get((entity_type, action))
    if expected is not None and not isinstance(payload, expected):
        raise TypeError(
            f"{entity_type}/{action} expects {expected.__name__}, got {type(payload).__name__}"
        )
    return payload.model_dump_json(exclude_unset=True)


def decode_payload(entity_type: str, action: str, raw: str) -> SyncPayload | dict:
    """Decode a stored payload into its tagged model (pydantic errors propagate)."""
    model = PAYLOAD_TYPES.get((entity_type, action))
    if model is None:
        return json.loads(raw)
    return model.model_validate_json(raw)


# ── Status ───────────────────────────────────────────────────────────


class SyncQueueItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entity_type: EntityType
    entity_id: str
    action: SyncAction
    status: SyncStatus
    retry_count: int
    created_at: datetime
    last_attempt: datetime | None = None
    error_message: str | None = None


class SyncStatusOut(BaseModel):
    """Aggregate sync state for display. Never carries queue rows."""

    is_online: bool
    is_syncing: bool
    pending_count: int
    last_sync_time: datetime | None = None
    sync_error: str | None = None


class SyncPassResult(BaseModel):
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
