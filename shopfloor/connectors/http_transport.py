"""JSON-over-HTTP transport for the shop-floor API.

    POST  {base}/{kind}          create
    PATCH {base}/{kind}/{id}     update

Creates carry an Idempotency-Key header (the downtime unique_id, or the
entity id) so a resend after a lost response is absorbed by the remote side;
delivery is at-least-once. PATCH bodies set absolute values, so replaying one
is harmless.
"""

import logging
from typing import Any

import httpx

from ..errors import TransportError
from ..http_client import build_client, close_client
from .base import RemoteTransport

log = logging.getLogger("shopfloor.transport")

# Remote collection names per entity kind
RESOURCES = {
    "downtime": "downtime-events",
    "maintenance": "maintenance-items",
    "alert": "alerts",
}


class HttpTransport(RemoteTransport):
    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 15,
        health_url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.health_url = health_url or f"{self.base_url}/health"
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or build_client(timeout=timeout, headers=headers)
        self._owns_client = client is None
        if client is not None:
            self._client.headers.update(headers)

    def _url(self, entity_kind: str, entity_id: str | None = None) -> str:
        try:
            resource = RESOURCES[entity_kind]
        except KeyError:
            raise TransportError(f"No remote resource for {entity_kind!r}") from None
        url = f"{self.base_url}/{resource}"
        return f"{url}/{entity_id}" if entity_id else url

    async def _send(self, method: str, url: str, payload: dict, headers: dict | None = None) -> httpx.Response:
        try:
            return await self._client.request(method, url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

    async def sync_create(self, entity_kind: str, payload: dict[str, Any]) -> bool:
        key = payload.get("unique_id") or payload.get("id")
        headers = {"Idempotency-Key": str(key)} if key else None
        r = await self._send("POST", self._url(entity_kind), payload, headers)
        if r.is_success:
            return True
        if r.status_code == 409:
            # Remote already has this idempotency key: an earlier send landed
            log.info("Duplicate create for %s %s accepted as synced", entity_kind, key)
            return True
        raise TransportError(
            f"Create {entity_kind} rejected: {r.status_code} {r.text[:200]}",
            status_code=r.status_code,
        )

    async def sync_update(self, entity_kind: str, entity_id: str, payload: dict[str, Any]) -> bool:
        r = await self._send("PATCH", self._url(entity_kind, entity_id), payload)
        if r.is_success:
            return True
        raise TransportError(
            f"Update {entity_kind} {entity_id} rejected: {r.status_code} {r.text[:200]}",
            status_code=r.status_code,
        )

    async def health_check(self) -> bool:
        try:
            r = await self._client.get(self.health_url)
        except httpx.HTTPError as e:
            log.debug("Health check failed: %s", e)
            return False
        return r.is_success

    async def close(self) -> None:
        if self._owns_client:
            await close_client(self._client)
