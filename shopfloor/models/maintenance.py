"""Maintenance items — scheduled checks per machine.

Only "due" and "done" are stored; "overdue" is derived on every load.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Index, String, Text

from ..constants import STORED_MAINTENANCE_STATUSES
from ..database import UTCDateTime
from .base import Base


class MaintenanceItem(Base):
    __tablename__ = "maintenance_items"
    __writable__ = frozenset({"status", "completed_at", "completed_by", "notes", "synced"})

    id = Column(String(50), primary_key=True)
    machine_id = Column(String(50), ForeignKey("machines.id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    due_date = Column(Date, nullable=False)
    status = Column(String(10), nullable=False, default="due")
    completed_at = Column(UTCDateTime)
    completed_by = Column(String(255))
    notes = Column(Text)
    synced = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "status IN (%s)" % ", ".join(repr(s) for s in STORED_MAINTENANCE_STATUSES),
            name="ck_maintenance_status",
        ),
        Index("idx_maintenance_machine", "machine_id"),
        Index("idx_maintenance_status", "status"),
    )
