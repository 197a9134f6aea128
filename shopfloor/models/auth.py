"""Local cache of the signed-in user."""

from sqlalchemy import CheckConstraint, Column, String, Text

from ..database import UTCDateTime
from .base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)
    tenant_id = Column(String(100), nullable=False)
    token = Column(Text, nullable=False)
    created_at = Column(UTCDateTime)

    __table_args__ = (
        CheckConstraint("role IN ('operator', 'supervisor')", name="ck_users_role"),
    )
