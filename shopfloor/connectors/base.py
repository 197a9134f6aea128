"""Transport contract for pushing outbox records to the remote system.

Both calls return True when the remote side accepted the change. Returning
False and raising are treated the same by the sync engine: the record is
marked failed and retried on a later pass.
"""

from abc import ABC, abstractmethod
from typing import Any


class RemoteTransport(ABC):
    @abstractmethod
    async def sync_create(self, entity_kind: str, payload: dict[str, Any]) -> bool:
        pass

    @abstractmethod
    async def sync_update(self, entity_kind: str, entity_id: str, payload: dict[str, Any]) -> bool:
        pass

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass
