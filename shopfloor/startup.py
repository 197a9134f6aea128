"""
startup.py — Store initialization (idempotent, fatal on failure)

Tables and indexes are defined in the ORM models and created via
Base.metadata.create_all(checkfirst=True). Columns added after the first
release are applied here by probing for the column first, never by a version
number, so installs that predate a change pick it up on their next boot.

Any failure raises StoreInitError: the app must not run against an
uninitialized or half-migrated store.

Called by: main.py (ShopfloorApp.open)
Depends on: database.py, models/
"""

import logging
from datetime import timedelta

from sqlalchemy import func, inspect, insert, select, text, update
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from .database import Clock, make_session_factory, utcnow
from .errors import StoreInitError
from .models import Base, MaintenanceItem, Machine
from .services.outbox_service import recover_in_flight

log = logging.getLogger(__name__)

# (table, column, DDL) for columns added after the first schema
COLUMN_MIGRATIONS = (
    ("alerts", "tenant_id", "ALTER TABLE alerts ADD COLUMN tenant_id VARCHAR(100) DEFAULT 'tenant_demo'"),
    ("downtime_events", "photo_path", "ALTER TABLE downtime_events ADD COLUMN photo_path VARCHAR(500)"),
    ("sync_queue", "last_attempt", "ALTER TABLE sync_queue ADD COLUMN last_attempt DATETIME"),
    ("sync_queue", "error_message", "ALTER TABLE sync_queue ADD COLUMN error_message TEXT"),
)

SEED_MACHINES = (
    ("M-101", "Cutter 1", "cutter", "RUN"),
    ("M-102", "Roller A", "roller", "IDLE"),
    ("M-103", "Packing West", "packer", "RUN"),
)

# (id, machine, title, description, due in days from seeding)
SEED_MAINTENANCE = (
    ("MT-001", "M-101", "Blade Inspection", "Check blade sharpness and alignment", 1),
    ("MT-002", "M-101", "Lubrication Check", "Check and refill cutting oil", -1),
    ("MT-003", "M-102", "Belt Tension Check", "Verify roller belt tension is within tolerance", 3),
    ("MT-004", "M-102", "Bearing Inspection", "Listen for unusual sounds, check for play", -2),
    ("MT-005", "M-103", "Seal Replacement", "Replace worn sealing elements", 0),
    ("MT-006", "M-103", "Sensor Calibration", "Calibrate weight and position sensors", 5),
)


async def init_store(engine: AsyncEngine, clock: Clock = utcnow, seed: bool = True) -> list[str]:
    """Create, migrate, backfill and seed the store. Safe to call on every boot.

    Returns the list of column migrations applied on this run.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
            applied = await conn.run_sync(_apply_column_migrations)
            await _backfill_maintenance_status(conn)
            if seed:
                await _seed(conn, clock)

        session_factory = make_session_factory(engine, clock)
        async with session_factory() as db:
            await recover_in_flight(db)
    except Exception as e:
        log.error("Store initialization failed: %s", e)
        raise StoreInitError(f"Store initialization failed: {e}") from e

    log.info("Store ready (%d migration(s) applied)", len(applied))
    return applied


def _apply_column_migrations(sync_conn) -> list[str]:
    insp = inspect(sync_conn)
    tables = set(insp.get_table_names())
    applied = []
    for table, column, ddl in COLUMN_MIGRATIONS:
        if table not in tables:
            continue
        existing = {c["name"] for c in insp.get_columns(table)}
        if column in existing:
            continue
        log.info("Running migration: adding %s.%s", table, column)
        sync_conn.execute(text(ddl))
        applied.append(f"{table}.{column}")
    return applied


async def _backfill_maintenance_status(conn: AsyncConnection) -> None:
    """Older installs stored 'overdue'; it is derived now, so store 'due'."""
    result = await conn.execute(
        update(MaintenanceItem.__table__)
        .where(MaintenanceItem.__table__.c.status == "overdue")
        .values(status="due")
    )
    if result.rowcount:
        log.info("Backfilled %d overdue maintenance item(s) to due", result.rowcount)


async def _seed(conn: AsyncConnection, clock: Clock) -> None:
    """Seed machines and maintenance on first run (no machines present)."""
    count = (await conn.execute(select(func.count()).select_from(Machine.__table__))).scalar_one()
    if count:
        return

    now = clock()
    await conn.execute(insert(Machine.__table__), [
        {"id": mid, "name": name, "type": mtype, "status": status, "last_updated": now}
        for mid, name, mtype, status in SEED_MACHINES
    ])
    # Seeded items mirror the server baseline, so they start out synced
    await conn.execute(insert(MaintenanceItem.__table__), [
        {
            "id": iid,
            "machine_id": mid,
            "title": title,
            "description": desc,
            "due_date": now.date() + timedelta(days=days),
            "status": "due",
            "synced": True,
        }
        for iid, mid, title, desc, days in SEED_MAINTENANCE
    ])
    log.info("Seeded %d machines and %d maintenance items", len(SEED_MACHINES), len(SEED_MAINTENANCE))
