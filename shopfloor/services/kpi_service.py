"""KPI snapshot for the dashboard — counts straight from the local store."""

from datetime import datetime, time, timedelta

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import store_now
from ..models import Alert, DowntimeEvent, Machine, MaintenanceItem
from ..schemas.kpi import KPIOut


async def _downtime_today(db: AsyncSession, now: datetime) -> tuple[int, int]:
    """Events started today (UTC) and their minutes; open events count up to now."""
    day_start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    day_end = day_start + timedelta(days=1)
    result = await db.execute(
        select(DowntimeEvent.start_time, DowntimeEvent.end_time).where(
            DowntimeEvent.start_time >= day_start,
            DowntimeEvent.start_time < day_end,
        )
    )
    rows = result.all()
    seconds = sum(((end or now) - start).total_seconds() for start, end in rows)
    return len(rows), round(max(seconds, 0) / 60)


async def get_kpis(db: AsyncSession, now: datetime | None = None) -> KPIOut:
    now = now or store_now(db)
    downtime_count, downtime_minutes = await _downtime_today(db, now)

    alerts = (await db.execute(select(
        func.count(Alert.id),
        func.coalesce(func.sum(case((Alert.status.in_(("created", "acknowledged")), 1), else_=0)), 0),
        func.coalesce(func.sum(case((Alert.status == "cleared", 1), else_=0)), 0),
    ))).one()

    machines = (await db.execute(select(
        func.coalesce(func.sum(case((Machine.status == "RUN", 1), else_=0)), 0),
        func.coalesce(func.sum(case((Machine.status.in_(("IDLE", "OFF")), 1), else_=0)), 0),
    ))).one()

    maintenance = (await db.execute(select(
        func.count(MaintenanceItem.id),
        func.coalesce(func.sum(case((MaintenanceItem.status == "done", 1), else_=0)), 0),
    ))).one()

    total, completed = maintenance
    return KPIOut(
        total_downtime_today=downtime_count,
        total_downtime_minutes=downtime_minutes,
        alerts_total=alerts[0],
        alerts_open=alerts[1],
        alerts_closed=alerts[2],
        machines_running=machines[0],
        machines_down=machines[1],
        maintenance_total=total,
        maintenance_completed=completed,
        maintenance_completed_percent=round(completed / total * 100) if total else 0,
    )
