"""
main.py — ShopfloorApp, the one object that owns the data layer's lifetime

Holds the store, the transport, the connectivity belief, the sync engine and
the scheduler. UI code gets sessions from it and reads sync status from it;
nothing in the package reaches for a global.

Business Rules:
- open() initializes the store before anything can read or write it
- A store init failure is fatal: open() raises StoreInitError
- After every session() block the pending count is refreshed and
  subscribers are notified, so badges track local writes
- close() stops timers and subscriptions before disposing the engine

Usage:
    app = ShopfloorApp()
    await app.open()
    async with app.session() as db:
        await downtime_service.start_downtime(db, "M-101", app.settings.tenant_id)
    await app.close()

Depends on: config, database, startup, connectivity, connectors, scheduler,
            services.sync_engine, services.alert_generator
"""

from contextlib import asynccontextmanager

from loguru import logger

from .config import Settings, get_settings
from .connectivity import Connectivity, HttpReachabilityProbe, PollingChangeSource
from .connectors import HttpTransport, RemoteTransport
from .database import Clock, make_engine, make_session_factory, utcnow
from .logging_config import setup_logging
from .scheduler import SyncScheduler
from .services.alert_generator import generate_simulated_alert
from .services.sync_engine import SyncEngine
from .startup import init_store

ALERT_SIMULATION_JOB_ID = "alert_simulation"


class ShopfloorApp:
    def __init__(
        self,
        settings: Settings | None = None,
        transport: RemoteTransport | None = None,
        probe=None,
        change_source=None,
        clock: Clock = utcnow,
    ):
        self.settings = settings or get_settings()
        self.engine = make_engine(self.settings.database_url)
        self.session_factory = make_session_factory(self.engine, clock)
        self.clock = clock

        self.transport = transport or HttpTransport(
            self.settings.api_base_url,
            token=self.settings.api_token,
            timeout=self.settings.http_timeout_seconds,
            health_url=self.settings.resolved_health_url,
        )
        self.probe = probe or HttpReachabilityProbe(self.settings.resolved_health_url)
        if change_source is None:
            change_source = PollingChangeSource(
                self.probe, interval=self.settings.connectivity_poll_seconds
            )
        self.connectivity = Connectivity(self.probe, change_source)

        self.sync_engine = SyncEngine(self.session_factory, self.transport, self.connectivity)
        self.scheduler = SyncScheduler(
            self.sync_engine,
            self.connectivity,
            interval_seconds=self.settings.sync_interval_seconds,
        )

    async def open(self, configure_logging: bool = False, initial_sync: bool = True) -> None:
        if configure_logging:
            setup_logging(self.settings.log_level, self.settings.log_json)

        await init_store(self.engine, self.clock)
        await self.scheduler.start(initial_sync=initial_sync)

        if self.settings.alert_simulation_enabled:
            self.scheduler.add_interval_job(
                self._simulate_alert,
                self.settings.alert_simulation_interval_seconds,
                ALERT_SIMULATION_JOB_ID,
            )
            logger.info(
                "Alert simulation every {}s", self.settings.alert_simulation_interval_seconds
            )

        logger.info("Shopfloor data layer ready ({})", self.settings.database_url)

    @asynccontextmanager
    async def session(self):
        async with self.session_factory() as db:
            yield db
        await self.sync_engine.refresh_pending_count()

    async def _simulate_alert(self) -> None:
        async with self.session() as db:
            await generate_simulated_alert(db, self.settings.tenant_id)

    def subscribe(self, listener):
        """Sync status subscription; returns the unsubscribe callable."""
        return self.sync_engine.subscribe(listener)

    def get_sync_status(self):
        return self.scheduler.get_status()

    async def force_sync(self):
        return await self.scheduler.force_sync()

    async def close(self) -> None:
        await self.scheduler.shutdown()
        await self.transport.close()
        if hasattr(self.probe, "close"):
            await self.probe.close()
        await self.engine.dispose()
        logger.info("Shopfloor data layer closed")

    async def __aenter__(self) -> "ShopfloorApp":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
