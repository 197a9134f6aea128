"""Exception hierarchy for the data layer.

Validation errors are raised at the repository boundary and are never queued.
Transport errors are captured per outbox record by the sync engine.
StoreInitError is fatal: the app must not run on a half-migrated store.
"""


class ShopfloorError(Exception):
    pass


class ValidationFailed(ShopfloorError, ValueError):
    """Bad enum value, missing required field, or unknown field."""


class NotFound(ValidationFailed):
    def __init__(self, kind: str, entity_id):
        super().__init__(f"{kind} {entity_id!r} not found")
        self.kind = kind
        self.entity_id = entity_id


class InvariantViolation(ValidationFailed):
    """The write would break a store invariant (open downtime, closed event, ...)."""


class OfflineError(ShopfloorError):
    pass


class TransportError(ShopfloorError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreInitError(ShopfloorError):
    pass
