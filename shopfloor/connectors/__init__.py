"""Remote transports — the accept/reject boundary the outbox drains into."""

from .base import RemoteTransport  # noqa: F401
from .http_transport import HttpTransport  # noqa: F401
from .simulated import SimulatedTransport  # noqa: F401
