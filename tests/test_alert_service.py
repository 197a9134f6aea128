"""
test_alert_service.py — Tests for the alert repository and simulated alerts

Covers: creation with denormalized machine name, forward-only status
transitions, listing, and the demo alert generator.

Called by: pytest
Depends on: shopfloor/services/alert_service.py, shopfloor/services/alert_generator.py
"""

import random

import pytest

from shopfloor.errors import InvariantViolation, NotFound, ValidationFailed
from shopfloor.services import alert_service, outbox_service
from shopfloor.services.alert_generator import ALERT_MESSAGES, generate_simulated_alert
from shopfloor.services.alert_service import can_transition

TENANT = "tenant_demo"


@pytest.mark.parametrize("current, target, allowed", [
    ("created", "acknowledged", True),
    ("created", "cleared", True),
    ("acknowledged", "cleared", True),
    ("acknowledged", "created", False),
    ("cleared", "acknowledged", False),
    ("cleared", "cleared", False),
    ("acknowledged", "acknowledged", False),
])
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


# ── create_alert ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_alert(db_session, clock):
    alert = await alert_service.create_alert(db_session, "M-102", "Oil pressure low", "high", TENANT)

    assert alert.machine_name == "Roller A"
    assert alert.status == "created"
    assert alert.created_at == clock()
    assert alert.synced is False

    [row] = await outbox_service.list_items(db_session, entity_type="alert")
    assert (row.entity_id, row.action) == (alert.id, "create")


@pytest.mark.asyncio
async def test_create_alert_bad_severity(db_session):
    with pytest.raises(ValidationFailed, match="severity"):
        await alert_service.create_alert(db_session, "M-102", "Oil pressure low", "urgent", TENANT)
    assert await outbox_service.pending_count(db_session) == 0


@pytest.mark.asyncio
async def test_create_alert_blank_message(db_session):
    with pytest.raises(ValidationFailed):
        await alert_service.create_alert(db_session, "M-102", "  ", "low", TENANT)


@pytest.mark.asyncio
async def test_create_alert_unknown_machine(db_session):
    with pytest.raises(NotFound):
        await alert_service.create_alert(db_session, "M-404", "Hot", "low", TENANT)


# ── Transitions ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_acknowledge_then_clear(db_session, clock):
    alert = await alert_service.create_alert(db_session, "M-101", "Vibration", "medium", TENANT)

    clock.advance(minutes=2)
    acked = await alert_service.acknowledge_alert(db_session, alert.id, "sam")
    assert acked.status == "acknowledged"
    assert acked.acknowledged_by == "sam"
    assert acked.acknowledged_at == clock()

    clock.advance(minutes=3)
    cleared = await alert_service.clear_alert(db_session, alert.id, "lee")
    assert cleared.status == "cleared"
    assert cleared.cleared_by == "lee"
    assert cleared.acknowledged_by == "sam"

    rows = await outbox_service.list_items(db_session, entity_id=alert.id)
    assert [r.action for r in rows] == ["create", "update", "update"]


@pytest.mark.asyncio
async def test_clear_straight_from_created(db_session):
    alert = await alert_service.create_alert(db_session, "M-101", "Vibration", "low", TENANT)
    cleared = await alert_service.clear_alert(db_session, alert.id, "lee")
    assert cleared.status == "cleared"
    assert cleared.acknowledged_at is None


@pytest.mark.asyncio
async def test_no_backwards_transition(db_session):
    alert = await alert_service.create_alert(db_session, "M-101", "Vibration", "low", TENANT)
    await alert_service.clear_alert(db_session, alert.id, "lee")

    with pytest.raises(InvariantViolation):
        await alert_service.acknowledge_alert(db_session, alert.id, "sam")

    assert (await alert_service.get_alert(db_session, alert.id)).status == "cleared"
    assert len(await outbox_service.list_items(db_session, entity_id=alert.id)) == 2


@pytest.mark.asyncio
async def test_transition_requires_actor(db_session):
    alert = await alert_service.create_alert(db_session, "M-101", "Vibration", "low", TENANT)
    with pytest.raises(ValidationFailed):
        await alert_service.acknowledge_alert(db_session, alert.id, "")


# ── Listing ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_alerts_by_status(db_session, clock):
    a1 = await alert_service.create_alert(db_session, "M-101", "One", "low", TENANT)
    clock.advance(seconds=1)
    a2 = await alert_service.create_alert(db_session, "M-102", "Two", "low", TENANT)
    await alert_service.acknowledge_alert(db_session, a1.id, "sam")

    assert [a.id for a in await alert_service.list_alerts(db_session)] == [a2.id, a1.id]
    assert [a.id for a in await alert_service.list_alerts(db_session, "created")] == [a2.id]
    assert [a.id for a in await alert_service.list_alerts(db_session, "acknowledged")] == [a1.id]


@pytest.mark.asyncio
async def test_list_alerts_unknown_status(db_session):
    with pytest.raises(ValidationFailed):
        await alert_service.list_alerts(db_session, "open")


# ── Simulated alerts ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_simulated_alert_goes_through_outbox(db_session):
    alert = await generate_simulated_alert(db_session, TENANT, rng=random.Random(7))

    assert alert.message in ALERT_MESSAGES
    assert alert.machine_id in {"M-101", "M-102", "M-103"}
    assert await outbox_service.pending_count(db_session) == 1
