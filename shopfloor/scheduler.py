"""Sync scheduler — drives sync passes from connectivity changes and a timer.

Triggers, all funnelled into SyncEngine.start_sync() (which declines while a
pass is running):
  - startup:   one pass right after start()
  - reconnect: one pass on every offline -> online edge
  - interval:  every sync_interval_seconds, if online and work is pending

shutdown() stops the APScheduler timer and drops the network subscription.

Usage:
    sched = SyncScheduler(engine, connectivity, interval_seconds=60)
    await sched.start()
    ...
    await sched.shutdown()
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from .connectivity import Connectivity
from .errors import OfflineError
from .schemas.sync import SyncPassResult, SyncStatusOut
from .services.sync_engine import SyncEngine

SYNC_JOB_ID = "sync_interval"


def _utc(dt):
    """Make a naive datetime UTC-aware (no-op if already aware)."""
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


class SyncScheduler:
    def __init__(self, engine: SyncEngine, connectivity: Connectivity, interval_seconds: int = 60):
        self.engine = engine
        self.connectivity = connectivity
        self.interval_seconds = interval_seconds
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._unsubscribe: Callable[[], None] | None = None
        self._started = False

    async def start(self, initial_sync: bool = True) -> None:
        self._unsubscribe = self.connectivity.subscribe(self._on_network_change)
        await self.connectivity.check()
        await self.engine.refresh_pending_count()

        self.scheduler.add_job(
            self._interval_tick,
            IntervalTrigger(seconds=self.interval_seconds),
            id=SYNC_JOB_ID,
            name="Outbox sync safety net",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self._started = True
        logger.info("Sync scheduler started — interval {}s", self.interval_seconds)

        if initial_sync:
            await self._trigger("startup")

    def add_interval_job(self, func: Callable[[], Awaitable[None]], seconds: int, job_id: str) -> None:
        """Register another periodic coroutine on the same timer."""
        self.scheduler.add_job(
            func,
            IntervalTrigger(seconds=seconds),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    async def shutdown(self) -> None:
        if self._started:
            self._started = False
            self.scheduler.remove_all_jobs()
            self.scheduler.shutdown(wait=False)
            # AsyncIOScheduler finishes stopping in a loop callback
            await asyncio.sleep(0)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        logger.info("Sync scheduler shut down")

    # ── Triggers ────────────────────────────────────────────────────

    async def _trigger(self, reason: str) -> SyncPassResult | None:
        logger.debug("Sync triggered by {}", reason)
        try:
            return await self.engine.start_sync()
        except OfflineError:
            logger.debug("Sync ({}) skipped: offline", reason)
            return None

    async def _on_network_change(self, online: bool, was_offline: bool) -> None:
        self.engine.notify()
        if online and was_offline:
            await self._trigger("reconnect")

    async def _interval_tick(self) -> None:
        if self.connectivity.is_online and self.engine.pending_count > 0:
            await self._trigger("interval")

    async def force_sync(self) -> SyncPassResult | None:
        """User-initiated pass. Refuses outright when offline."""
        if not self.connectivity.is_online:
            raise OfflineError("Cannot sync while offline")
        return await self.engine.start_sync()

    # ── Status ──────────────────────────────────────────────────────

    def get_status(self) -> SyncStatusOut:
        status = self.engine.snapshot()
        return status.model_copy(update={"last_sync_time": _utc(status.last_sync_time)})

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def next_run_time(self) -> datetime | None:
        job = self.scheduler.get_job(SYNC_JOB_ID)
        return job.next_run_time if job else None
