"""
Network status providers.

The processor only asks "online or not" and reacts to transitions; how that
is determined is up to the provider.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

import httpx
from loguru import logger


class NetworkStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


StatusCallback = Callable[[NetworkStatus], Awaitable[None]]


class NetworkStatusProvider(Protocol):
    async def get_status(self) -> NetworkStatus: ...

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]: ...


class _Subscribers:
    def __init__(self) -> None:
        self._callbacks: list[StatusCallback] = []

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def notify(self, status: NetworkStatus) -> None:
        for callback in list(self._callbacks):
            try:
                await callback(status)
            except Exception as exc:
                logger.warning(f"[Network] Subscriber error: {type(exc).__name__}: {exc}")


class StaticNetworkStatus(_Subscribers):
    """Status set explicitly by the host (or a test)."""

    def __init__(self, status: NetworkStatus = NetworkStatus.ONLINE) -> None:
        super().__init__()
        self._status = status

    async def get_status(self) -> NetworkStatus:
        return self._status

    async def set_status(self, status: NetworkStatus) -> None:
        changed = status != self._status
        self._status = status
        if changed:
            logger.info(f"[Network] Network status changed: {status.value}")
            await self.notify(status)


class ProbeNetworkStatus(_Subscribers):
    """Determines connectivity by requesting a small probe URL."""

    def __init__(
        self,
        probe_url: str,
        *,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__()
        self._probe_url = probe_url
        self._timeout = timeout
        self._client = client
        self._last: NetworkStatus = NetworkStatus.UNKNOWN

    async def get_status(self) -> NetworkStatus:
        try:
            if self._client is not None:
                resp = await self._client.get(self._probe_url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.get(self._probe_url)
            status = NetworkStatus.ONLINE if resp.status_code < 500 else NetworkStatus.OFFLINE
        except httpx.TransportError as e:
            logger.debug(f"[Network] Probe failed: {type(e).__name__}: {e}")
            status = NetworkStatus.OFFLINE

        if status != self._last:
            self._last = status
            await self.notify(status)
        return status

    async def watch(self, interval: float = 30.0) -> None:
        """Poll forever, notifying subscribers on every transition."""
        while True:
            await self.get_status()
            await asyncio.sleep(interval)
