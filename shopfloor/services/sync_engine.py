"""Sync engine — drains the outbox into the remote transport.

One pass at a time (is_syncing guard), one record at a time, oldest first.
Each record's outcome is independent: a failed send marks that record failed
and the pass moves on. Only an engine-level error (the outbox itself cannot
be read or written) aborts the pass; that lands in sync_error and the next
trigger retries from scratch. A record claimed but never resolved goes back
to pending, so nothing is left stuck in syncing.

Usage:
    engine = SyncEngine(session_factory, transport, connectivity)
    result = await engine.start_sync()   # None if a pass was already running
"""

import uuid
from typing import Callable

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..connectors.base import RemoteTransport
from ..database import store_now
from ..errors import OfflineError
from ..models import SyncQueueItem
from ..schemas.sync import SyncPassResult, SyncStatusOut, decode_payload
from . import outbox_service as outbox

OFFLINE_MESSAGE = "No internet connection"

# (entity_type, action) -> transport call. Pairs not listed have no remote
# counterpart and are resolved as successful without a network call.
DISPATCH = {
    ("downtime", "create"): "create",
    ("downtime", "update"): "update",
    ("maintenance", "update"): "update",
    ("alert", "create"): "create",
    ("alert", "update"): "update",
}

StatusListener = Callable[[SyncStatusOut], None]


class SyncEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        transport: RemoteTransport,
        connectivity,
    ):
        self.session_factory = session_factory
        self.transport = transport
        self.connectivity = connectivity
        self.is_syncing = False
        self.pending_count = 0
        self.last_sync_time = None
        self.sync_error: str | None = None
        self._listeners: list[StatusListener] = []

    # ── Status ──────────────────────────────────────────────────────

    def snapshot(self) -> SyncStatusOut:
        return SyncStatusOut(
            is_online=self.connectivity.is_online,
            is_syncing=self.is_syncing,
            pending_count=self.pending_count,
            last_sync_time=self.last_sync_time,
            sync_error=self.sync_error,
        )

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Sync status listener failed")

    async def refresh_pending_count(self) -> int:
        async with self.session_factory() as db:
            self.pending_count = await outbox.pending_count(db)
        self.notify()
        return self.pending_count

    # ── Pass ────────────────────────────────────────────────────────

    async def start_sync(self) -> SyncPassResult | None:
        """Run one pass over the outbox.

        Returns None when a pass is already in flight or the pass hit an
        engine-level error. Raises OfflineError, without touching the network,
        when the connectivity check fails.
        """
        if self.is_syncing:
            logger.debug("Sync already in progress, skipping")
            return None

        self.is_syncing = True
        try:
            if not await self.connectivity.check():
                self.sync_error = OFFLINE_MESSAGE
                raise OfflineError(OFFLINE_MESSAGE)

            self.sync_error = None
            self.notify()
            with logger.contextualize(pass_id=uuid.uuid4().hex[:8]):
                try:
                    return await self._run_pass()
                except Exception as e:
                    logger.error("Sync pass failed: {}", e)
                    self.sync_error = str(e) or "Sync failed"
                    return None
        finally:
            self.is_syncing = False
            self.notify()

    async def _run_pass(self) -> SyncPassResult:
        result = SyncPassResult()
        async with self.session_factory() as db:
            items = await outbox.select_items_to_sync(db)
            if items:
                logger.info("Sync pass: {} item(s) to send", len(items))
            for item in items:
                await self._sync_one(db, item, result)

            self.pending_count = await outbox.pending_count(db)
            self.last_sync_time = store_now(db)

        if result.attempted:
            logger.info(
                "Sync pass done: {} ok, {} failed, {} skipped, {} pending",
                result.succeeded, result.failed, result.skipped, self.pending_count,
            )
        return result

    async def _sync_one(self, db: AsyncSession, item: SyncQueueItem, result: SyncPassResult) -> None:
        if not await outbox.claim(db, item):
            result.skipped += 1
            return

        item_id = item.id
        result.attempted += 1
        try:
            await self._send(db, item, result)
        except Exception:
            # Claimed but never resolved: hand it back so the next pass sees it
            await db.rollback()
            await self._release_claim(item_id)
            raise

    async def _release_claim(self, item_id: int) -> None:
        try:
            async with self.session_factory() as db:
                await outbox.release_claim(db, item_id)
        except Exception:
            logger.exception("Could not release outbox item {}, left for startup recovery", item_id)

    async def _send(self, db: AsyncSession, item: SyncQueueItem, result: SyncPassResult) -> None:
        try:
            ok = await self._dispatch(item)
            error = None if ok else "Sync failed"
        except Exception as e:
            ok = False
            error = str(e) or type(e).__name__

        if ok:
            await outbox.mark_synced(db, item)
            result.succeeded += 1
        else:
            await outbox.mark_failed(db, item, error)
            result.failed += 1
            logger.warning(
                "Failed to sync {} {} {} (attempt {}): {}",
                item.entity_type, item.action, item.entity_id, item.retry_count, error,
            )

    async def _dispatch(self, item: SyncQueueItem) -> bool:
        route = DISPATCH.get((item.entity_type, item.action))
        if route is None:
            logger.debug("No remote route for {}/{}, passing through", item.entity_type, item.action)
            return True

        payload = decode_payload(item.entity_type, item.action, item.payload).to_wire()
        if route == "create":
            accepted = await self.transport.sync_create(item.entity_type, payload)
        else:
            accepted = await self.transport.sync_update(item.entity_type, item.entity_id, payload)
        return accepted is True
