"""
test_connectivity.py — Tests for reachability probes and change sources

Called by: pytest
Depends on: shopfloor/connectivity.py
"""

import asyncio

import httpx
import pytest

from shopfloor.connectivity import (
    Connectivity,
    HttpReachabilityProbe,
    PollingChangeSource,
    TransportHealthProbe,
)
from shopfloor.connectors import SimulatedTransport


class _SequenceProbe:
    """Returns the queued answers in order, then repeats the last one."""

    def __init__(self, *answers):
        self.answers = list(answers)

    async def is_reachable(self):
        if len(self.answers) > 1:
            return self.answers.pop(0)
        return self.answers[0]


class _RaisingProbe:
    async def is_reachable(self):
        raise OSError("no route to host")


# ── Connectivity ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_check_updates_belief(probe):
    conn = Connectivity(probe)
    assert conn.is_online is True

    probe.online = False
    assert await conn.check() is False
    assert conn.is_online is False


@pytest.mark.asyncio
async def test_probe_exception_means_offline():
    conn = Connectivity(_RaisingProbe())
    assert await conn.check() is False
    assert conn.is_online is False


@pytest.mark.asyncio
async def test_listener_gets_offline_to_online_edge(probe, change_source):
    conn = Connectivity(probe, change_source)
    edges = []

    async def listener(online, was_offline):
        edges.append((online, was_offline))

    unsubscribe = conn.subscribe(listener)
    await change_source.emit(False)
    await change_source.emit(True)
    await change_source.emit(True)

    assert edges == [(False, False), (True, True), (True, False)]
    unsubscribe()
    assert change_source.callbacks == []


def test_subscribe_without_source_is_noop(probe):
    conn = Connectivity(probe)

    async def listener(online, was_offline):
        pass

    unsubscribe = conn.subscribe(listener)
    unsubscribe()


@pytest.mark.asyncio
async def test_check_flip_reaches_listeners(probe, change_source):
    conn = Connectivity(probe, change_source)
    edges = []

    async def listener(online, was_offline):
        edges.append((online, was_offline))

    conn.subscribe(listener)
    probe.online = False
    await conn.check()
    probe.online = True
    await conn.check()
    await conn.check()

    assert edges == [(False, False), (True, True)]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_check(probe):
    conn = Connectivity(probe)

    async def listener(online, was_offline):
        raise RuntimeError("ui gone")

    conn.subscribe(listener)
    probe.online = False
    assert await conn.check() is False
    assert conn.is_online is False


# ── Probes ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_http_probe():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    probe = HttpReachabilityProbe("https://api.test.local/health", client=client)
    assert await probe.is_reachable() is True
    await client.aclose()


@pytest.mark.asyncio
async def test_http_probe_non_2xx_and_errors():
    def handler(request):
        if request.url.path == "/down":
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(503)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    assert await HttpReachabilityProbe("https://h/busy", client=client).is_reachable() is False
    assert await HttpReachabilityProbe("https://h/down", client=client).is_reachable() is False
    await client.aclose()


@pytest.mark.asyncio
async def test_transport_health_probe():
    probe = TransportHealthProbe(SimulatedTransport(delay=0))
    assert await probe.is_reachable() is True


# ── Polling source ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_polling_source_emits_only_changes():
    source = PollingChangeSource(_SequenceProbe(True, True, False, False, True), interval=0.001)
    seen = []
    done = asyncio.Event()

    async def callback(online):
        seen.append(online)
        if len(seen) == 3:
            done.set()

    unsubscribe = source.subscribe(callback)
    assert source.running
    await asyncio.wait_for(done.wait(), timeout=2)
    unsubscribe()
    await asyncio.sleep(0)

    assert seen == [True, False, True]
    assert not source.running


@pytest.mark.asyncio
async def test_polling_source_survives_probe_errors():
    source = PollingChangeSource(_RaisingProbe(), interval=0.001)
    seen = []
    got = asyncio.Event()

    async def callback(online):
        seen.append(online)
        got.set()

    unsubscribe = source.subscribe(callback)
    await asyncio.wait_for(got.wait(), timeout=2)
    unsubscribe()
    await asyncio.sleep(0)

    assert seen == [False]
