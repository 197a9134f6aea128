"""Sync queue (outbox) — one row per local mutation awaiting the remote side."""

from sqlalchemy import CheckConstraint, Column, Index, Integer, String, Text

from ..constants import ENTITY_TYPES, SYNC_ACTIONS, SYNC_STATUSES
from ..database import UTCDateTime
from .base import Base


class SyncQueueItem(Base):
    __tablename__ = "sync_queue"
    __writable__ = frozenset({"status", "retry_count", "last_attempt", "error_message"})

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(20), nullable=False)
    # Back-reference only; the queue row never owns the entity
    entity_id = Column(String(50), nullable=False)
    action = Column(String(10), nullable=False)
    payload = Column(Text, nullable=False)
    status = Column(String(10), nullable=False, default="pending")
    retry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, nullable=False)
    last_attempt = Column(UTCDateTime)
    error_message = Column(Text)

    __table_args__ = (
        CheckConstraint(
            "entity_type IN (%s)" % ", ".join(repr(s) for s in ENTITY_TYPES),
            name="ck_sync_queue_entity_type",
        ),
        CheckConstraint(
            "action IN (%s)" % ", ".join(repr(s) for s in SYNC_ACTIONS),
            name="ck_sync_queue_action",
        ),
        CheckConstraint(
            "status IN (%s)" % ", ".join(repr(s) for s in SYNC_STATUSES),
            name="ck_sync_queue_status",
        ),
        Index("idx_sync_queue_status", "status"),
        Index("idx_sync_queue_entity", "entity_type", "entity_id"),
    )
