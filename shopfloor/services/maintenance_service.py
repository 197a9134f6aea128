"""Maintenance repository.

"overdue" is never stored. Every load runs the stored state through
derive_status() against the current time, so the same rows and the same
"now" always give the same statuses.
"""

from datetime import date, datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import apply_fields, get_or_404, query, store_now, unit_of_work
from ..errors import InvariantViolation, ValidationFailed
from ..models import MaintenanceItem
from ..schemas.maintenance import MaintenanceItemOut
from ..schemas.sync import MaintenanceUpdatePayload
from .outbox_service import enqueue


def derive_status(stored_status: str, due_date: date, now: datetime) -> str:
    """done stays done; otherwise overdue once the due date is in the past."""
    if stored_status == "done":
        return "done"
    return "overdue" if due_date < now.date() else "due"


def recompute_statuses(items: list[MaintenanceItemOut], now: datetime) -> list[MaintenanceItemOut]:
    return [
        item.model_copy(update={"status": derive_status(item.status, item.due_date, now)})
        for item in items
    ]


def _to_out(item: MaintenanceItem, now: datetime) -> MaintenanceItemOut:
    out = MaintenanceItemOut.model_validate(item)
    return out.model_copy(update={"status": derive_status(item.status, item.due_date, now)})


async def list_maintenance_items(
    db: AsyncSession, machine_id: str | None = None, now: datetime | None = None
) -> list[MaintenanceItemOut]:
    now = now or store_now(db)
    filters = {"machine_id": machine_id} if machine_id else None
    rows = await query(db, MaintenanceItem, filters=filters, order_by=(MaintenanceItem.due_date.asc(),))
    return [_to_out(item, now) for item in rows]


async def get_maintenance_item(
    db: AsyncSession, item_id: str, now: datetime | None = None
) -> MaintenanceItemOut:
    item = await get_or_404(db, MaintenanceItem, item_id, "Maintenance item")
    return _to_out(item, now or store_now(db))


async def mark_as_done(
    db: AsyncSession, item_id: str, actor: str, notes: str | None = None
) -> MaintenanceItemOut:
    if not actor or not actor.strip():
        raise ValidationFailed("completed_by is required")

    async with unit_of_work(db):
        item = await get_or_404(db, MaintenanceItem, item_id, "Maintenance item")
        if item.status == "done":
            raise InvariantViolation(f"Maintenance item {item_id} is already done")

        changes = {"status": "done", "completed_at": store_now(db), "completed_by": actor.strip()}
        if notes is not None:
            changes["notes"] = notes
        apply_fields(item, {**changes, "synced": False})
        await db.flush()
        await enqueue(db, "maintenance", item.id, "update", MaintenanceUpdatePayload(**changes))

    logger.info("Maintenance {} done by {}", item_id, actor)
    return _to_out(item, store_now(db))


async def add_note(db: AsyncSession, item_id: str, notes: str) -> MaintenanceItemOut:
    async with unit_of_work(db):
        item = await get_or_404(db, MaintenanceItem, item_id, "Maintenance item")
        apply_fields(item, {"notes": notes, "synced": False})
        await db.flush()
        await enqueue(db, "maintenance", item.id, "update", MaintenanceUpdatePayload(notes=notes))
    return _to_out(item, store_now(db))
