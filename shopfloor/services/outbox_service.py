"""Outbox (sync queue) — the durable log of mutations awaiting the remote side.

State machine per record:
    pending -> syncing -> synced                       (success, terminal)
    pending -> syncing -> failed -> (selected again)   (retry_count < RETRY_LIMIT)
    syncing -> pending                                 (claim released, no retry charged)
    failed with retry_count == RETRY_LIMIT             (never selected again)

enqueue() participates in the caller's unit of work and does not commit.
The transition helpers used by the sync engine commit on their own: each
transition is one durable step.

Usage:
    async with unit_of_work(db):
        db.add(entity)
        await enqueue(db, "downtime", entity.id, "create", payload)

    for item in await select_items_to_sync(db):
        if await claim(db, item):
            ...
"""

from loguru import logger
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import ENTITY_TYPES, RETRY_LIMIT, SYNC_ACTIONS
from ..database import store_now
from ..errors import ValidationFailed
from ..models import ENTITY_MODELS, SyncQueueItem
from ..schemas.sync import SyncQueueItemOut, encode_payload

MAX_ERROR_LEN = 500


def _eligible():
    return and_(
        SyncQueueItem.status.in_(("pending", "failed")),
        SyncQueueItem.retry_count < RETRY_LIMIT,
    )


def _outstanding():
    """Rows that still owe the remote side something."""
    return or_(
        SyncQueueItem.status.in_(("pending", "syncing")),
        and_(SyncQueueItem.status == "failed", SyncQueueItem.retry_count < RETRY_LIMIT),
    )


async def enqueue(
    db: AsyncSession, entity_type: str, entity_id: str, action: str, payload
) -> SyncQueueItem:
    """Add a pending outbox row for a mutation. Flushes, does not commit."""
    if entity_type not in ENTITY_TYPES:
        raise ValidationFailed(f"Unknown entity type: {entity_type}")
    if action not in SYNC_ACTIONS:
        raise ValidationFailed(f"Unknown sync action: {action}")

    item = SyncQueueItem(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        payload=encode_payload(entity_type, action, payload),
        status="pending",
        retry_count=0,
        created_at=store_now(db),
    )
    db.add(item)
    await db.flush()
    logger.debug("Queued {} {} for {}", entity_type, action, entity_id)
    return item


async def select_items_to_sync(db: AsyncSession) -> list[SyncQueueItem]:
    """Pending or retryable records, oldest first (creates before their updates)."""
    result = await db.execute(
        select(SyncQueueItem)
        .where(_eligible())
        .order_by(SyncQueueItem.created_at.asc(), SyncQueueItem.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def claim(db: AsyncSession, item: SyncQueueItem) -> bool:
    """Move a record to syncing. False if another pass already took it."""
    result = await db.execute(
        update(SyncQueueItem)
        .where(SyncQueueItem.id == item.id, _eligible())
        .values(status="syncing", last_attempt=store_now(db))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(item)
    return result.rowcount == 1


async def mark_entity_synced(
    db: AsyncSession, entity_type: str, entity_id: str, resolved_item_id: int | None = None
) -> bool:
    """Raise the entity's synced flag unless other queue rows still need it.

    Returns True if the flag was set.
    """
    model = ENTITY_MODELS[entity_type]
    stmt = select(func.count(SyncQueueItem.id)).where(
        SyncQueueItem.entity_type == entity_type,
        SyncQueueItem.entity_id == entity_id,
        _outstanding(),
    )
    if resolved_item_id is not None:
        stmt = stmt.where(SyncQueueItem.id != resolved_item_id)
    remaining = (await db.execute(stmt)).scalar_one()
    if remaining:
        return False

    await db.execute(
        update(model)
        .where(model.id == entity_id)
        .values(synced=True)
        .execution_options(synchronize_session=False)
    )
    return True


async def mark_synced(db: AsyncSession, item: SyncQueueItem) -> None:
    """Record remote success and flag the owning entity, in one commit."""
    item.status = "synced"
    item.error_message = None
    await mark_entity_synced(db, item.entity_type, item.entity_id, resolved_item_id=item.id)
    await db.commit()


async def mark_failed(db: AsyncSession, item: SyncQueueItem, error: str) -> None:
    """Record a failed attempt. At RETRY_LIMIT the record drops out of selection."""
    item.status = "failed"
    item.retry_count = (item.retry_count or 0) + 1
    item.last_attempt = store_now(db)
    item.error_message = (error or "Sync failed")[:MAX_ERROR_LEN]
    await db.commit()
    if item.retry_count >= RETRY_LIMIT:
        # Terminal: nothing re-queues it, list_exhausted() is the only view onto it
        logger.warning(
            "Outbox item {} ({} {} {}) hit retry limit, no further attempts: {}",
            item.id, item.entity_type, item.action, item.entity_id, item.error_message,
        )


async def pending_count(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(SyncQueueItem.id)).where(_outstanding()))
    return result.scalar_one()


async def release_claim(db: AsyncSession, item_id: int) -> bool:
    """Put a claimed record back to pending without charging a retry."""
    result = await db.execute(
        update(SyncQueueItem)
        .where(SyncQueueItem.id == item_id, SyncQueueItem.status == "syncing")
        .values(status="pending")
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def recover_in_flight(db: AsyncSession) -> int:
    """Return rows stranded in syncing (process died mid-send) to pending."""
    result = await db.execute(
        update(SyncQueueItem)
        .where(SyncQueueItem.status == "syncing")
        .values(status="pending")
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount:
        logger.info("Recovered {} in-flight outbox item(s)", result.rowcount)
    return result.rowcount


async def list_items(
    db: AsyncSession, entity_type: str | None = None, entity_id: str | None = None
) -> list[SyncQueueItemOut]:
    stmt = (
        select(SyncQueueItem)
        .order_by(SyncQueueItem.created_at.asc(), SyncQueueItem.id.asc())
        .execution_options(populate_existing=True)
    )
    if entity_type:
        stmt = stmt.where(SyncQueueItem.entity_type == entity_type)
    if entity_id:
        stmt = stmt.where(SyncQueueItem.entity_id == entity_id)
    result = await db.execute(stmt)
    return [SyncQueueItemOut.model_validate(r) for r in result.scalars().all()]


async def list_exhausted(db: AsyncSession) -> list[SyncQueueItemOut]:
    """Records that used up their retries. Read-only; nothing re-queues them."""
    result = await db.execute(
        select(SyncQueueItem)
        .where(SyncQueueItem.status == "failed", SyncQueueItem.retry_count >= RETRY_LIMIT)
        .order_by(SyncQueueItem.created_at.asc(), SyncQueueItem.id.asc())
        .execution_options(populate_existing=True)
    )
    return [SyncQueueItemOut.model_validate(r) for r in result.scalars().all()]
