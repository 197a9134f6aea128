"""
test_kpi_service.py — Tests for the dashboard KPI snapshot

Called by: pytest
Depends on: shopfloor/services/kpi_service.py
"""

from datetime import timedelta

import pytest

from shopfloor.services import alert_service, downtime_service
from shopfloor.services.kpi_service import get_kpis
from shopfloor.services.machine_service import update_machine_status
from shopfloor.services.maintenance_service import mark_as_done

TENANT = "tenant_demo"


@pytest.mark.asyncio
async def test_seeded_baseline(db_session):
    kpis = await get_kpis(db_session)

    assert kpis.total_downtime_today == 0
    assert kpis.total_downtime_minutes == 0
    assert kpis.alerts_total == 0
    assert kpis.machines_running == 2
    assert kpis.machines_down == 1
    assert kpis.maintenance_total == 6
    assert kpis.maintenance_completed_percent == 0


@pytest.mark.asyncio
async def test_downtime_minutes_include_open_events(db_session, clock):
    event = await downtime_service.start_downtime(db_session, "M-101", TENANT)
    clock.advance(minutes=30)
    await downtime_service.end_downtime(db_session, event.id, reason_code="WEAR", reason_label="Wear & Tear")
    await downtime_service.start_downtime(db_session, "M-102", TENANT)
    clock.advance(minutes=15)

    kpis = await get_kpis(db_session)

    assert kpis.total_downtime_today == 2
    assert kpis.total_downtime_minutes == 45


@pytest.mark.asyncio
async def test_yesterdays_downtime_not_counted(db_session, clock):
    event = await downtime_service.start_downtime(db_session, "M-101", TENANT)
    clock.advance(minutes=10)
    await downtime_service.end_downtime(db_session, event.id, reason_code="JAM", reason_label="Material Jam")

    kpis = await get_kpis(db_session, now=clock() + timedelta(days=1))
    assert kpis.total_downtime_today == 0


@pytest.mark.asyncio
async def test_alert_and_maintenance_counts(db_session):
    a = await alert_service.create_alert(db_session, "M-101", "Hot", "high", TENANT)
    await alert_service.create_alert(db_session, "M-102", "Cold", "low", TENANT)
    await alert_service.clear_alert(db_session, a.id, "sam")
    await mark_as_done(db_session, "MT-001", "tech")
    await update_machine_status(db_session, "M-102", "RUN")

    kpis = await get_kpis(db_session)

    assert (kpis.alerts_total, kpis.alerts_open, kpis.alerts_closed) == (2, 1, 1)
    assert kpis.maintenance_completed == 1
    assert kpis.maintenance_completed_percent == 17
    assert (kpis.machines_running, kpis.machines_down) == (3, 0)
