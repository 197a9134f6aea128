"""Alerts — machine warnings moving created -> acknowledged -> cleared."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, String, Text

from ..constants import ALERT_SEVERITIES, ALERT_STATUSES
from ..database import UTCDateTime
from .base import Base


class Alert(Base):
    __tablename__ = "alerts"
    __writable__ = frozenset({
        "status",
        "acknowledged_by",
        "acknowledged_at",
        "cleared_by",
        "cleared_at",
        "synced",
    })

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(100), nullable=False, default="tenant_demo")
    machine_id = Column(String(50), ForeignKey("machines.id"), nullable=False)
    # Denormalized for display
    machine_name = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    severity = Column(String(10), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="created")
    created_at = Column(UTCDateTime, nullable=False)
    acknowledged_by = Column(String(255))
    acknowledged_at = Column(UTCDateTime)
    cleared_by = Column(String(255))
    cleared_at = Column(UTCDateTime)
    synced = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "severity IN (%s)" % ", ".join(repr(s) for s in ALERT_SEVERITIES),
            name="ck_alerts_severity",
        ),
        CheckConstraint(
            "status IN (%s)" % ", ".join(repr(s) for s in ALERT_STATUSES),
            name="ck_alerts_status",
        ),
        Index("idx_alerts_machine", "machine_id"),
        Index("idx_alerts_status", "status"),
    )
