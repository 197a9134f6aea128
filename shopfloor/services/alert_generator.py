"""Simulated alert generator for demos and soak testing.

Picks a random machine, message and severity and records the alert through
the normal repository, so generated alerts go through the outbox like any
other. Registered as a scheduler job only when alert_simulation_enabled.
"""

import random

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import ALERT_SEVERITIES
from ..schemas.alerts import AlertOut
from .alert_service import create_alert
from .machine_service import list_machines

ALERT_MESSAGES = (
    "High temperature detected",
    "Vibration exceeds threshold",
    "Oil pressure low",
    "Belt tension abnormal",
    "Speed variance detected",
    "Power consumption spike",
    "Sensor malfunction detected",
    "Unusual noise pattern",
    "Maintenance overdue alert",
    "Calibration required",
    "Motor current high",
    "Coolant level low",
)


async def generate_simulated_alert(
    db: AsyncSession, tenant_id: str, rng: random.Random | None = None
) -> AlertOut | None:
    rng = rng or random.Random()
    machines = await list_machines(db)
    if not machines:
        logger.debug("No machines, skipping simulated alert")
        return None

    machine = rng.choice(machines)
    return await create_alert(
        db,
        machine_id=machine.id,
        message=rng.choice(ALERT_MESSAGES),
        severity=rng.choice(ALERT_SEVERITIES),
        tenant_id=tenant_id,
    )
