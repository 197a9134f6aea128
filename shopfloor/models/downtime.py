"""Downtime events — one per machine stoppage, reason picked when it ends."""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text

from ..database import UTCDateTime
from .base import Base


class DowntimeEvent(Base):
    __tablename__ = "downtime_events"
    __writable__ = frozenset({
        "end_time",
        "reason_code",
        "reason_label",
        "parent_reason_code",
        "parent_reason_label",
        "photo_path",
        "notes",
        "synced",
        "updated_at",
    })

    id = Column(String(36), primary_key=True)
    # Client-generated idempotency key sent with creates; distinct from id
    unique_id = Column(String(36), unique=True, nullable=False)
    tenant_id = Column(String(100), nullable=False)
    machine_id = Column(String(50), ForeignKey("machines.id"), nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime)
    reason_code = Column(String(50), nullable=False)
    reason_label = Column(String(255), nullable=False)
    parent_reason_code = Column(String(50))
    parent_reason_label = Column(String(255))
    photo_path = Column(String(500))
    notes = Column(Text)
    synced = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_downtime_machine", "machine_id"),
        Index("idx_downtime_synced", "synced"),
        Index("idx_downtime_start_time", "start_time"),
    )

    @property
    def is_open(self) -> bool:
        return self.end_time is None
