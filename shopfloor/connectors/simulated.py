"""In-process stand-in for the remote API, for demos without a backend.

failure_rate=0.05 makes roughly one send in twenty raise, which exercises
the retry path end to end.
"""

import asyncio
import random
from typing import Any

from loguru import logger

from ..errors import TransportError
from .base import RemoteTransport


class SimulatedTransport(RemoteTransport):
    def __init__(self, delay: float = 0.5, failure_rate: float = 0.0, rng: random.Random | None = None):
        self.delay = delay
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()
        self.received: list[tuple[str, str, str | None, dict]] = []

    async def _simulate(self, what: str) -> None:
        await asyncio.sleep(self.delay + self._rng.random() * self.delay)
        if self._rng.random() < self.failure_rate:
            raise TransportError(f"Network error: Failed to {what}")

    async def sync_create(self, entity_kind: str, payload: dict[str, Any]) -> bool:
        await self._simulate(f"sync {entity_kind}")
        self.received.append(("create", entity_kind, None, payload))
        logger.debug("Simulated create {} {}", entity_kind, payload.get("unique_id") or payload.get("id"))
        return True

    async def sync_update(self, entity_kind: str, entity_id: str, payload: dict[str, Any]) -> bool:
        await self._simulate(f"update {entity_kind}")
        self.received.append(("update", entity_kind, entity_id, payload))
        logger.debug("Simulated update {} {}", entity_kind, entity_id)
        return True

    async def health_check(self) -> bool:
        try:
            await self._simulate("reach API")
        except TransportError:
            return False
        return True
