"""Machines — the equipment every other record points at. Not synced."""

from sqlalchemy import CheckConstraint, Column, String

from ..constants import MACHINE_STATUSES, MACHINE_TYPES
from ..database import UTCDateTime
from .base import Base


def _in(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class Machine(Base):
    __tablename__ = "machines"
    __writable__ = frozenset({"name", "status", "last_updated"})

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    status = Column(String(10), nullable=False, default="IDLE")
    last_updated = Column(UTCDateTime)

    __table_args__ = (
        CheckConstraint(_in("type", MACHINE_TYPES), name="ck_machines_type"),
        CheckConstraint(_in("status", MACHINE_STATUSES), name="ck_machines_status"),
    )
