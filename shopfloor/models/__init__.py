"""Database models — re-exports all models.

Import from here:  from shopfloor.models import Machine, DowntimeEvent, ...
Or from submodules: from shopfloor.models.sync import SyncQueueItem
"""

from .base import Base  # noqa: F401

# Equipment
from .machines import Machine  # noqa: F401

# Syncable entities
from .downtime import DowntimeEvent  # noqa: F401
from .maintenance import MaintenanceItem  # noqa: F401
from .alerts import Alert  # noqa: F401

# Outbox
from .sync import SyncQueueItem  # noqa: F401

# Local auth cache
from .auth import User  # noqa: F401

ENTITY_MODELS = {
    "downtime": DowntimeEvent,
    "maintenance": MaintenanceItem,
    "alert": Alert,
}
