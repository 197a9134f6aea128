"""
downtime_service.py — Downtime event repository

Business Rules:
- At most one open event (end_time NULL) per machine; the insert is itself
  conditional on no open event, so concurrent sessions cannot both open one
- New events start with the PENDING placeholder reason
- Closing sets end_time and the final reason; a closed event is immutable
  except for note amendments
- Every mutation flips synced off and queues exactly one outbox row

Called by: main.py (ShopfloorApp), tests
Depends on: database.py, services/outbox_service.py, schemas/downtime.py
"""

import uuid

from loguru import logger
from sqlalchemy import insert, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import PENDING_REASON_CODE, PENDING_REASON_LABEL
from ..database import apply_fields, get_or_404, query, store_now, unit_of_work
from ..errors import InvariantViolation
from ..models import DowntimeEvent, Machine
from ..schemas.downtime import DowntimeEnd, DowntimeEventOut
from ..schemas.sync import DowntimeCreatePayload, DowntimeUpdatePayload
from .outbox_service import enqueue
from .validation import parse_input


async def _find_open_event(db: AsyncSession, machine_id: str) -> DowntimeEvent | None:
    result = await db.execute(
        select(DowntimeEvent)
        .where(DowntimeEvent.machine_id == machine_id, DowntimeEvent.end_time.is_(None))
        .order_by(DowntimeEvent.start_time.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def _insert_if_none_open(db: AsyncSession, values: dict) -> bool:
    """INSERT ... SELECT ... WHERE NOT EXISTS(open event for the machine).

    A single statement: SQLite takes the write lock before it evaluates the
    condition, so two writers cannot both see the machine without an open event.
    """
    table = DowntimeEvent.__table__
    open_event = (
        select(table.c.id)
        .where(table.c.machine_id == values["machine_id"], table.c.end_time.is_(None))
        .correlate(None)
    )
    row = select(*(literal(v, table.c[k].type) for k, v in values.items())).where(
        ~open_event.exists()
    )
    result = await db.execute(insert(table).from_select(list(values), row))
    return result.rowcount == 1


async def start_downtime(db: AsyncSession, machine_id: str, tenant_id: str) -> DowntimeEventOut:
    """Open a downtime event for a machine. Fails if one is already open."""
    async with unit_of_work(db):
        await get_or_404(db, Machine, machine_id, "Machine")
        existing = await _find_open_event(db, machine_id)
        if existing is None:
            now = store_now(db)
            event_id = str(uuid.uuid4())
            inserted = await _insert_if_none_open(db, {
                "id": event_id,
                "unique_id": str(uuid.uuid4()),
                "tenant_id": tenant_id,
                "machine_id": machine_id,
                "start_time": now,
                "reason_code": PENDING_REASON_CODE,
                "reason_label": PENDING_REASON_LABEL,
                "synced": False,
                "created_at": now,
                "updated_at": now,
            })
            if not inserted:
                # Another session opened one between the check and the insert
                existing = await _find_open_event(db, machine_id)
        if existing is not None:
            raise InvariantViolation(
                f"Machine {machine_id} already has open downtime event {existing.id}"
            )

        event = await get_or_404(db, DowntimeEvent, event_id, "Downtime event")
        await enqueue(db, "downtime", event.id, "create", DowntimeCreatePayload(
            id=event.id,
            unique_id=event.unique_id,
            tenant_id=event.tenant_id,
            machine_id=event.machine_id,
            start_time=event.start_time,
            end_time=None,
            reason_code=event.reason_code,
            reason_label=event.reason_label,
            parent_reason_code=None,
            parent_reason_label=None,
            photo_path=None,
            notes=None,
        ))

    logger.info("Downtime started on {} ({})", machine_id, event.id)
    return DowntimeEventOut.model_validate(event)


async def end_downtime(
    db: AsyncSession,
    event_id: str,
    reason_code: str,
    reason_label: str,
    parent_reason_code: str | None = None,
    parent_reason_label: str | None = None,
    photo_path: str | None = None,
    notes: str | None = None,
) -> DowntimeEventOut:
    """Close an open event with its final reason."""
    data = parse_input(
        DowntimeEnd,
        reason_code=reason_code,
        reason_label=reason_label,
        parent_reason_code=parent_reason_code,
        parent_reason_label=parent_reason_label,
        photo_path=photo_path,
        notes=notes,
    )

    async with unit_of_work(db):
        event = await get_or_404(db, DowntimeEvent, event_id, "Downtime event")
        if not event.is_open:
            raise InvariantViolation(f"Downtime event {event_id} is already closed")

        now = store_now(db)
        changes = {**data.model_dump(), "end_time": now, "updated_at": now}
        apply_fields(event, {**changes, "synced": False})
        await db.flush()
        await enqueue(db, "downtime", event.id, "update", DowntimeUpdatePayload(
            unique_id=event.unique_id, **changes
        ))

    logger.info("Downtime {} ended: {}/{}", event_id, data.parent_reason_code, data.reason_code)
    return DowntimeEventOut.model_validate(event)


async def amend_downtime_notes(db: AsyncSession, event_id: str, notes: str | None) -> DowntimeEventOut:
    """Replace the notes on an event. The one change allowed after closing."""
    async with unit_of_work(db):
        event = await get_or_404(db, DowntimeEvent, event_id, "Downtime event")
        now = store_now(db)
        apply_fields(event, {"notes": notes, "updated_at": now, "synced": False})
        await db.flush()
        await enqueue(db, "downtime", event.id, "update", DowntimeUpdatePayload(
            unique_id=event.unique_id, notes=notes, updated_at=now
        ))
    return DowntimeEventOut.model_validate(event)


async def get_downtime_event(db: AsyncSession, event_id: str) -> DowntimeEventOut:
    return DowntimeEventOut.model_validate(
        await get_or_404(db, DowntimeEvent, event_id, "Downtime event")
    )


async def list_downtime_events(db: AsyncSession, machine_id: str | None = None) -> list[DowntimeEventOut]:
    filters = {"machine_id": machine_id} if machine_id else None
    rows = await query(db, DowntimeEvent, filters=filters, order_by=(DowntimeEvent.start_time.desc(),))
    return [DowntimeEventOut.model_validate(e) for e in rows]


async def get_active_downtime(db: AsyncSession, machine_id: str) -> DowntimeEventOut | None:
    event = await _find_open_event(db, machine_id)
    return DowntimeEventOut.model_validate(event) if event else None


async def list_active_downtimes(db: AsyncSession) -> dict[str, DowntimeEventOut]:
    """Open events keyed by machine id."""
    rows = await query(db, DowntimeEvent, DowntimeEvent.end_time.is_(None))
    return {e.machine_id: DowntimeEventOut.model_validate(e) for e in rows}
