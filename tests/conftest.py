"""
conftest.py — Shared test fixtures for the shop-floor data layer

Provides a file-backed SQLite store per test (initialized and seeded), a
controllable clock, and in-memory stand-ins for the remote transport, the
reachability probe, and the network change source.

Business Rules:
- Each test gets its own database file under tmp_path (no shared state)
- The clock only moves when a test advances it
- Fakes record every call so tests can assert on what went over the wire

Called by: all test files via pytest autodiscovery
Depends on: shopfloor.database, shopfloor.startup, shopfloor.connectors
"""

from datetime import datetime, timedelta, timezone

import pytest

from shopfloor.connectivity import Connectivity
from shopfloor.connectors.base import RemoteTransport
from shopfloor.database import make_engine, make_session_factory
from shopfloor.services.sync_engine import SyncEngine
from shopfloor.startup import init_store

T0 = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeTransport(RemoteTransport):
    """Accepts (or rejects, or raises on) every send and records it."""

    def __init__(self, accept: bool = True, error: Exception | None = None):
        self.accept = accept
        self.error = error
        self.calls: list[tuple[str, str, str | None, dict]] = []
        self.closed = False

    async def sync_create(self, entity_kind, payload):
        self.calls.append(("create", entity_kind, None, payload))
        if self.error is not None:
            raise self.error
        return self.accept

    async def sync_update(self, entity_kind, entity_id, payload):
        self.calls.append(("update", entity_kind, entity_id, payload))
        if self.error is not None:
            raise self.error
        return self.accept

    async def close(self):
        self.closed = True


class FakeProbe:
    def __init__(self, online: bool = True):
        self.online = online
        self.checks = 0

    async def is_reachable(self) -> bool:
        self.checks += 1
        return self.online


class FakeChangeSource:
    """Network change source driven by the test via emit()."""

    def __init__(self):
        self.callbacks = []

    def subscribe(self, callback):
        self.callbacks.append(callback)

        def unsubscribe():
            if callback in self.callbacks:
                self.callbacks.remove(callback)

        return unsubscribe

    async def emit(self, online: bool) -> None:
        for callback in list(self.callbacks):
            await callback(online)


# ── Store ────────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'shopfloor_test.db'}"


@pytest.fixture()
async def engine(db_url):
    engine = make_engine(db_url)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def session_factory(engine, clock):
    await init_store(engine, clock)
    return make_session_factory(engine, clock)


@pytest.fixture()
async def db_session(session_factory):
    async with session_factory() as db:
        yield db


# ── Sync collaborators ───────────────────────────────────────────────


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def probe() -> FakeProbe:
    return FakeProbe(online=True)


@pytest.fixture()
def change_source() -> FakeChangeSource:
    return FakeChangeSource()


@pytest.fixture()
def connectivity(probe, change_source) -> Connectivity:
    return Connectivity(probe, change_source)


@pytest.fixture()
def sync_engine(session_factory, transport, connectivity) -> SyncEngine:
    return SyncEngine(session_factory, transport, connectivity)
