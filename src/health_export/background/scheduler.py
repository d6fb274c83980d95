"""
Background task registration and the task body.

``TaskRegistry`` is the host's periodic-task surface (an OS background fetch
service on mobile, ``AsyncioTaskRegistry`` in-process). ``BackgroundScheduler``
keeps the registration in line with the stored auto-sync config and turns a
sync run into the fetch result the host reports back to the OS.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from loguru import logger

from ..models import AutoSyncConfig
from ..preferences import Preferences
from .interval import resolve_background_fetch_interval_minutes
from .notify import Notifier, completion_message
from .sync import SyncOperation

BACKGROUND_SYNC_TASK = "HEALTH_EXPORT_BACKGROUND_SYNC"

TaskBody = Callable[[], Awaitable[object]]


class BackgroundFetchStatus(str, Enum):
    AVAILABLE = "available"
    RESTRICTED = "restricted"
    DENIED = "denied"


class BackgroundFetchResult(str, Enum):
    NEW_DATA = "new_data"
    NO_DATA = "no_data"
    FAILED = "failed"


class TaskRegistry(Protocol):
    def define_task(self, name: str, body: TaskBody) -> None: ...

    async def register(self, name: str, minimum_interval_seconds: int) -> None: ...

    async def unregister(self, name: str) -> None: ...

    async def is_registered(self, name: str) -> bool: ...

    async def get_status(self) -> BackgroundFetchStatus: ...


class AsyncioTaskRegistry:
    """Runs registered task bodies periodically on the running event loop."""

    def __init__(self) -> None:
        self._bodies: dict[str, TaskBody] = {}
        self._running: dict[str, asyncio.Task] = {}
        self.intervals: dict[str, int] = {}

    def define_task(self, name: str, body: TaskBody) -> None:
        self._bodies[name] = body

    async def register(self, name: str, minimum_interval_seconds: int) -> None:
        if name not in self._bodies:
            raise KeyError(f"Task {name} is not defined")
        await self.unregister(name)
        self.intervals[name] = minimum_interval_seconds
        self._running[name] = asyncio.create_task(
            self._loop(name, minimum_interval_seconds), name=name
        )

    async def unregister(self, name: str) -> None:
        task = self._running.pop(name, None)
        self.intervals.pop(name, None)
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def is_registered(self, name: str) -> bool:
        return name in self._running

    async def get_status(self) -> BackgroundFetchStatus:
        return BackgroundFetchStatus.AVAILABLE

    async def _loop(self, name: str, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                result = await self._bodies[name]()
                logger.debug(f"[Scheduler] {name} finished: {result}")
            except Exception as e:
                logger.error(f"[Scheduler] {name} raised: {type(e).__name__}: {e}")


class BackgroundScheduler:
    def __init__(
        self,
        registry: TaskRegistry,
        sync: SyncOperation,
        preferences: Preferences,
        *,
        platform: str = "android",
        notifier: Optional[Notifier] = None,
    ) -> None:
        self._registry = registry
        self._sync = sync
        self._preferences = preferences
        self._platform = platform
        self._notifier = notifier
        registry.define_task(BACKGROUND_SYNC_TASK, self.run_task)

    async def register(self, interval_minutes: int) -> None:
        minutes = resolve_background_fetch_interval_minutes(self._platform, interval_minutes)
        logger.info(f"[Scheduler] Registering task (interval: {minutes}min)")
        await self._registry.register(BACKGROUND_SYNC_TASK, minutes * 60)

    async def unregister(self) -> None:
        if await self._registry.is_registered(BACKGROUND_SYNC_TASK):
            await self._registry.unregister(BACKGROUND_SYNC_TASK)
            logger.info("[Scheduler] Task unregistered")
        else:
            logger.info("[Scheduler] Task was not registered")

    async def is_registered(self) -> bool:
        return await self._registry.is_registered(BACKGROUND_SYNC_TASK)

    async def get_status(self) -> BackgroundFetchStatus:
        return await self._registry.get_status()

    async def apply(self, config: Optional[AutoSyncConfig] = None) -> None:
        """Bring the registration in line with ``config`` (stored config by default)."""
        try:
            if config is None:
                config = await self._preferences.load_auto_sync_config()
            registered = await self.is_registered()

            if config.enabled and not registered:
                await self.register(config.interval_minutes)
            elif not config.enabled and registered:
                await self.unregister()
            elif config.enabled and registered:
                # Interval may have changed
                await self.unregister()
                await self.register(config.interval_minutes)
        except Exception as e:
            logger.error(f"[Scheduler] Config sync failed: {type(e).__name__}: {e}")

    async def run_task(self) -> BackgroundFetchResult:
        """Task body. Never raises; every failure maps to ``FAILED``."""
        logger.info("[Scheduler] Background task triggered")
        try:
            config = await self._preferences.load_auto_sync_config()
            result = await self._sync.execute(config)
        except Exception as e:
            logger.error(f"[Scheduler] Task exception: {type(e).__name__}: {e}")
            return BackgroundFetchResult.FAILED

        if not result.success:
            logger.error("[Scheduler] Task logic returned failure")
            return BackgroundFetchResult.FAILED

        logger.info(
            f"[Scheduler] Task success. NewData: {result.has_new_data}, "
            f"Queue: {result.has_queue_processed}"
        )
        if not (result.has_new_data or result.has_queue_processed):
            return BackgroundFetchResult.NO_DATA

        await self._notify()
        return BackgroundFetchResult.NEW_DATA

    async def _notify(self) -> None:
        if self._notifier is None:
            return
        try:
            title, body = completion_message(await self._preferences.load_language())
            await self._notifier.notify(title, body)
        except Exception as e:
            logger.warning(f"[Scheduler] Notification failed: {type(e).__name__}: {e}")
