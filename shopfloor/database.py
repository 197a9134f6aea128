"""Durable store — async SQLAlchemy engine, session factory, and write helpers.

Every datetime is stored as naive UTC and tagged back to UTC on load via the
UTCDateTime column type, so comparisons never mix naive and aware values.

The store clock lives on the session (``db.info["clock"]``); repositories
stamp timestamps with ``store_now(db)`` so ordering stays consistent no
matter what the caller passes.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from sqlalchemy import DateTime, TypeDecorator, event, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .errors import NotFound, ValidationFailed

Clock = Callable[[], datetime]
T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime type that stores naive UTC and ensures UTC timezone on load."""
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def make_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    engine = create_async_engine(database_url, echo=echo)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_fk(dbapi_conn, _):
            """SQLite ignores FKs by default — turn them on."""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def make_session_factory(
    engine: AsyncEngine, clock: Clock = utcnow
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        autoflush=False,
        expire_on_commit=False,
        info={"clock": clock},
    )


def store_now(db: AsyncSession) -> datetime:
    """Current time according to the store's clock."""
    return db.info.get("clock", utcnow)()


@asynccontextmanager
async def unit_of_work(db: AsyncSession):
    """Commit everything written inside the block, or nothing.

    Entity writes and their outbox records go through one of these, so an
    entity change is never durable without its outbox row.
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def put(db: AsyncSession, entity: T) -> T:
    db.add(entity)
    await db.flush()
    return entity


async def get_or_404(db: AsyncSession, model: type[T], pk: Any, kind: str | None = None) -> T:
    entity = await db.get(model, pk, populate_existing=True)
    if entity is None:
        raise NotFound(kind or model.__name__, pk)
    return entity


def apply_fields(entity, fields: dict[str, Any]) -> None:
    """Set fields on an entity, rejecting anything outside its writable set."""
    writable = getattr(type(entity), "__writable__", frozenset())
    unknown = sorted(set(fields) - writable)
    if unknown:
        raise ValidationFailed(
            f"Unknown field(s) for {type(entity).__name__}: {', '.join(unknown)}"
        )
    for key, value in fields.items():
        setattr(entity, key, value)


async def update_fields(db: AsyncSession, model: type[T], pk: Any, fields: dict[str, Any]) -> T:
    entity = await get_or_404(db, model, pk)
    apply_fields(entity, fields)
    await db.flush()
    return entity


async def query(
    db: AsyncSession,
    model: type[T],
    *criteria,
    filters: dict[str, Any] | None = None,
    order_by: tuple = (),
) -> list[T]:
    """Snapshot query: equality filters plus optional extra criteria, ordered."""
    stmt = select(model).execution_options(populate_existing=True)
    for key, value in (filters or {}).items():
        stmt = stmt.where(getattr(model, key) == value)
    if criteria:
        stmt = stmt.where(*criteria)
    if order_by:
        stmt = stmt.order_by(*order_by)
    result = await db.execute(stmt)
    return list(result.scalars().all())
