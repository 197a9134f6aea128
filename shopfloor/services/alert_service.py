"""
alert_service.py — Alert repository

Business Rules:
- Status only moves forward: created -> acknowledged -> cleared
  (created -> cleared is allowed, anything backwards or repeated is not)
- Machine name is copied onto the alert at creation for display
- Every mutation flips synced off and queues exactly one outbox row

Called by: main.py, services/alert_generator.py
Depends on: database.py, services/outbox_service.py
"""

import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import ALERT_STATUSES
from ..database import apply_fields, get_or_404, put, query, store_now, unit_of_work
from ..errors import InvariantViolation, ValidationFailed
from ..models import Alert, Machine
from ..schemas.alerts import AlertCreate, AlertOut
from ..schemas.sync import AlertCreatePayload, AlertUpdatePayload
from .outbox_service import enqueue
from .validation import parse_input

_RANK = {status: i for i, status in enumerate(ALERT_STATUSES)}


def can_transition(current: str, target: str) -> bool:
    return _RANK[target] > _RANK[current]


async def create_alert(
    db: AsyncSession, machine_id: str, message: str, severity: str, tenant_id: str
) -> AlertOut:
    data = parse_input(AlertCreate, machine_id=machine_id, message=message, severity=severity)

    async with unit_of_work(db):
        machine = await get_or_404(db, Machine, data.machine_id, "Machine")
        alert = await put(db, Alert(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            machine_id=machine.id,
            machine_name=machine.name,
            message=data.message,
            severity=data.severity,
            status="created",
            created_at=store_now(db),
            synced=False,
        ))
        await enqueue(db, "alert", alert.id, "create", AlertCreatePayload(
            id=alert.id,
            tenant_id=alert.tenant_id,
            machine_id=alert.machine_id,
            machine_name=alert.machine_name,
            message=alert.message,
            severity=alert.severity,
            status=alert.status,
            created_at=alert.created_at,
        ))

    logger.info("Alert {} on {} ({})", alert.id, machine.name, alert.severity)
    return AlertOut.model_validate(alert)


async def _transition(db: AsyncSession, alert_id: str, target: str, actor: str) -> AlertOut:
    if not actor or not actor.strip():
        raise ValidationFailed("actor is required")

    async with unit_of_work(db):
        alert = await get_or_404(db, Alert, alert_id, "Alert")
        if not can_transition(alert.status, target):
            raise InvariantViolation(f"Alert {alert_id} cannot move {alert.status} -> {target}")

        changes = {
            "status": target,
            f"{target}_by": actor.strip(),
            f"{target}_at": store_now(db),
        }
        apply_fields(alert, {**changes, "synced": False})
        await db.flush()
        await enqueue(db, "alert", alert.id, "update", AlertUpdatePayload(**changes))

    return AlertOut.model_validate(alert)


async def acknowledge_alert(db: AsyncSession, alert_id: str, actor: str) -> AlertOut:
    return await _transition(db, alert_id, "acknowledged", actor)


async def clear_alert(db: AsyncSession, alert_id: str, actor: str) -> AlertOut:
    return await _transition(db, alert_id, "cleared", actor)


async def get_alert(db: AsyncSession, alert_id: str) -> AlertOut:
    return AlertOut.model_validate(await get_or_404(db, Alert, alert_id, "Alert"))


async def list_alerts(db: AsyncSession, status: str | None = None) -> list[AlertOut]:
    if status is not None and status not in ALERT_STATUSES:
        raise ValidationFailed(f"Unknown alert status: {status}")
    filters = {"status": status} if status else None
    rows = await query(db, Alert, filters=filters, order_by=(Alert.created_at.desc(),))
    return [AlertOut.model_validate(a) for a in rows]
