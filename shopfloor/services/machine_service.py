"""Machine repository — equipment records and their run status.

Machines are not a syncable entity type: status changes are local only and
produce no outbox rows.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_or_404, put, query, store_now, unit_of_work, update_fields
from ..models import Machine
from ..schemas.machines import MachineCreate, MachineOut, MachineStatusUpdate
from .validation import parse_input


async def create_machine(
    db: AsyncSession, machine_id: str, name: str, type: str, status: str = "IDLE"
) -> MachineOut:
    data = parse_input(MachineCreate, id=machine_id, name=name, type=type, status=status)
    async with unit_of_work(db):
        machine = await put(db, Machine(**data.model_dump(), last_updated=store_now(db)))
    return MachineOut.model_validate(machine)


async def get_machine(db: AsyncSession, machine_id: str) -> MachineOut:
    return MachineOut.model_validate(await get_or_404(db, Machine, machine_id, "Machine"))


async def list_machines(db: AsyncSession) -> list[MachineOut]:
    rows = await query(db, Machine, order_by=(Machine.name,))
    return [MachineOut.model_validate(m) for m in rows]


async def update_machine_status(db: AsyncSession, machine_id: str, status: str) -> MachineOut:
    data = parse_input(MachineStatusUpdate, status=status)
    async with unit_of_work(db):
        machine = await update_fields(
            db, Machine, machine_id, {"status": data.status, "last_updated": store_now(db)}
        )
    logger.info("Machine {} -> {}", machine_id, data.status)
    return MachineOut.model_validate(machine)
