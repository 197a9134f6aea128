"""
test_connectors.py — Tests for the remote transports

HttpTransport runs against httpx.MockTransport so request shape (method,
path, headers, body) and status handling are checked without a network.

Called by: pytest
Depends on: shopfloor/connectors/*
"""

import json
import random

import httpx
import pytest

from shopfloor.connectors import HttpTransport, SimulatedTransport
from shopfloor.errors import TransportError

BASE = "https://api.test.local/v1"


def _transport(handler, **kwargs) -> HttpTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransport(BASE, client=client, **kwargs)


class TestHttpTransport:
    @pytest.mark.asyncio
    async def test_create_posts_with_idempotency_key(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(201, json={"ok": True})

        t = _transport(handler, token="tok-123")
        payload = {"id": "evt-1", "unique_id": "u-1", "machine_id": "M-101"}

        assert await t.sync_create("downtime", payload) is True

        [req] = seen
        assert req.method == "POST"
        assert req.url.path == "/v1/downtime-events"
        assert req.headers["Idempotency-Key"] == "u-1"
        assert req.headers["Authorization"] == "Bearer tok-123"
        assert json.loads(req.content) == payload

    @pytest.mark.asyncio
    async def test_create_key_falls_back_to_id(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        await _transport(handler).sync_create("alert", {"id": "a-9", "message": "Hot"})
        assert seen[0].headers["Idempotency-Key"] == "a-9"
        assert seen[0].url.path == "/v1/alerts"

    @pytest.mark.asyncio
    async def test_duplicate_create_accepted(self):
        t = _transport(lambda r: httpx.Response(409, json={"detail": "exists"}))
        assert await t.sync_create("downtime", {"unique_id": "u-1"}) is True

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        t = _transport(lambda r: httpx.Response(500, text="boom"))
        with pytest.raises(TransportError) as exc:
            await t.sync_create("downtime", {"unique_id": "u-1"})
        assert exc.value.status_code == 500

    @pytest.mark.asyncio
    async def test_update_patches_resource(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        t = _transport(handler)
        assert await t.sync_update("maintenance", "MT-001", {"status": "done"}) is True
        assert seen[0].method == "PATCH"
        assert seen[0].url.path == "/v1/maintenance-items/MT-001"

    @pytest.mark.asyncio
    async def test_update_conflict_is_an_error(self):
        t = _transport(lambda r: httpx.Response(409))
        with pytest.raises(TransportError) as exc:
            await t.sync_update("alert", "a-1", {"status": "cleared"})
        assert exc.value.status_code == 409

    @pytest.mark.asyncio
    async def test_network_error_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError, match="connection refused"):
            await _transport(handler).sync_update("alert", "a-1", {})

    @pytest.mark.asyncio
    async def test_unknown_kind(self):
        t = _transport(lambda r: httpx.Response(200))
        with pytest.raises(TransportError, match="No remote resource"):
            await t.sync_create("machine", {})

    @pytest.mark.asyncio
    async def test_health_check(self):
        def handler(request):
            assert request.url.path == "/v1/health"
            return httpx.Response(200)

        assert await _transport(handler).health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_down(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        assert await _transport(handler).health_check() is False

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        t = HttpTransport(BASE, client=client)
        await t.close()
        assert not client.is_closed
        await client.aclose()


class TestSimulatedTransport:
    @pytest.mark.asyncio
    async def test_records_sends(self):
        t = SimulatedTransport(delay=0)
        assert await t.sync_create("downtime", {"unique_id": "u-1"}) is True
        assert await t.sync_update("alert", "a-1", {"status": "cleared"}) is True
        assert [r[0] for r in t.received] == ["create", "update"]

    @pytest.mark.asyncio
    async def test_failure_rate(self):
        t = SimulatedTransport(delay=0, failure_rate=1.0, rng=random.Random(1))
        with pytest.raises(TransportError, match="Network error"):
            await t.sync_create("downtime", {})
        assert t.received == []
        assert await t.health_check() is False
