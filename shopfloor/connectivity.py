"""Connectivity — the device's belief about whether the remote side is reachable.

Two inputs keep `is_online` current:
  - check(): an on-demand probe call
  - a change source pushing network-change notifications to subscribers

Subscribers get (online, was_offline) so they can react to the
offline -> online edge only. Both inputs go through the same path, so a
flip first seen by check() reaches subscribers like a pushed change.

Usage:
    connectivity = Connectivity(HttpReachabilityProbe(url), PollingChangeSource(probe))
    unsubscribe = connectivity.subscribe(on_change)
    await connectivity.check()
"""

import asyncio
from typing import Awaitable, Callable, Protocol

import httpx
from loguru import logger

from .http_client import build_client, close_client

ChangeCallback = Callable[[bool], Awaitable[None]]
Listener = Callable[[bool, bool], Awaitable[None]]


class ConnectivityProbe(Protocol):
    async def is_reachable(self) -> bool: ...


class NetworkChangeSource(Protocol):
    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]: ...


# ── Probes ───────────────────────────────────────────────────────────


class HttpReachabilityProbe:
    """Reachable when GET on the health URL answers 2xx."""

    def __init__(self, url: str, timeout: float = 5, client: httpx.AsyncClient | None = None):
        self.url = url
        self._client = client or build_client(timeout=timeout)
        self._owns_client = client is None

    async def is_reachable(self) -> bool:
        try:
            r = await self._client.get(self.url)
        except httpx.HTTPError as e:
            logger.debug("Reachability probe failed: {}", e)
            return False
        return r.is_success

    async def close(self) -> None:
        if self._owns_client:
            await close_client(self._client)


class TransportHealthProbe:
    """Reachability via the transport's own health check."""

    def __init__(self, transport):
        self.transport = transport

    async def is_reachable(self) -> bool:
        return await self.transport.health_check()


# ── Change sources ───────────────────────────────────────────────────


class PollingChangeSource:
    """Polls a probe and emits only when reachability flips.

    Stands in for OS network notifications where none are available. The
    poll task runs while at least one subscriber is attached.
    """

    def __init__(self, probe: ConnectivityProbe, interval: float = 15):
        self.probe = probe
        self.interval = interval
        self._callbacks: list[ChangeCallback] = []
        self._task: asyncio.Task | None = None
        self._last: bool | None = None

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        self._callbacks.append(callback)
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._poll())

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
            if not self._callbacks and self._task is not None:
                self._task.cancel()
                self._task = None

        return unsubscribe

    async def _poll(self) -> None:
        while True:
            try:
                online = await self.probe.is_reachable()
            except Exception as e:
                logger.debug("Probe raised, treating as offline: {}", e)
                online = False
            if online != self._last:
                self._last = online
                for callback in list(self._callbacks):
                    try:
                        await callback(online)
                    except Exception:
                        logger.exception("Network change callback failed")
            await asyncio.sleep(self.interval)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()


# ── Belief ───────────────────────────────────────────────────────────


class Connectivity:
    def __init__(self, probe: ConnectivityProbe, source: NetworkChangeSource | None = None):
        self.probe = probe
        self.source = source
        # Assume online until told otherwise so startup attempts a pass
        self.is_online = True
        self._listeners: list[Listener] = []
        self._source_unsubscribe: Callable[[], None] | None = None

    async def check(self) -> bool:
        """Probe now. Listeners hear about it only if the belief flips."""
        try:
            online = bool(await self.probe.is_reachable())
        except Exception as e:
            logger.warning("Connectivity check failed: {}", e)
            online = False
        if online != self.is_online:
            await self._apply(online)
        return online

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Forward network changes to listener(online, was_offline)."""
        self._listeners.append(listener)
        if self.source is not None and self._source_unsubscribe is None:
            self._source_unsubscribe = self.source.subscribe(self._apply)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
            if not self._listeners and self._source_unsubscribe is not None:
                self._source_unsubscribe()
                self._source_unsubscribe = None

        return unsubscribe

    async def _apply(self, online: bool) -> None:
        was_offline = not self.is_online
        if online != self.is_online:
            logger.info("Network {}", "online" if online else "offline")
        self.is_online = online
        for listener in list(self._listeners):
            try:
                await listener(online, was_offline)
            except Exception:
                logger.exception("Connectivity listener failed")
