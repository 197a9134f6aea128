"""Fixed value sets shared by models, schemas and services."""

from typing import Literal, get_args

MachineType = Literal["cutter", "roller", "packer"]
MachineStatus = Literal["RUN", "IDLE", "OFF"]
MaintenanceStatus = Literal["due", "overdue", "done"]
AlertSeverity = Literal["low", "medium", "high", "critical"]
AlertStatus = Literal["created", "acknowledged", "cleared"]
UserRole = Literal["operator", "supervisor"]

EntityType = Literal["downtime", "maintenance", "alert"]
SyncAction = Literal["create", "update", "delete"]
SyncStatus = Literal["pending", "syncing", "synced", "failed"]

MACHINE_TYPES = get_args(MachineType)
MACHINE_STATUSES = get_args(MachineStatus)
MAINTENANCE_STATUSES = get_args(MaintenanceStatus)
# "overdue" is derived at load time and never written
STORED_MAINTENANCE_STATUSES = ("due", "done")
ALERT_SEVERITIES = get_args(AlertSeverity)
ALERT_STATUSES = get_args(AlertStatus)
USER_ROLES = get_args(UserRole)
ENTITY_TYPES = get_args(EntityType)
SYNC_ACTIONS = get_args(SyncAction)
SYNC_STATUSES = get_args(SyncStatus)

# Max attempts before an outbox record is excluded from selection for good
RETRY_LIMIT = 3

PENDING_REASON_CODE = "PENDING"
PENDING_REASON_LABEL = "Pending Selection"
