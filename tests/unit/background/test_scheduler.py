"""
Unit tests for BackgroundScheduler registration and the task body.
"""

import asyncio

import pytest

from health_export.background.notify import LogNotifier
from health_export.background.scheduler import (
    BACKGROUND_SYNC_TASK,
    AsyncioTaskRegistry,
    BackgroundFetchResult,
    BackgroundFetchStatus,
    BackgroundScheduler,
)
from health_export.background.sync import SyncExecutionResult
from health_export.models import AutoSyncConfig


class RecordingRegistry:
    def __init__(self):
        self.bodies = {}
        self.registered = {}
        self.calls = []

    def define_task(self, name, body):
        self.bodies[name] = body

    async def register(self, name, minimum_interval_seconds):
        self.calls.append(("register", minimum_interval_seconds))
        self.registered[name] = minimum_interval_seconds

    async def unregister(self, name):
        self.calls.append(("unregister",))
        self.registered.pop(name, None)

    async def is_registered(self, name):
        return name in self.registered

    async def get_status(self):
        return BackgroundFetchStatus.RESTRICTED


class StubSync:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.configs = []

    async def execute(self, config):
        self.configs.append(config)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def registry():
    return RecordingRegistry()


def scheduler(ctx, registry, sync=None, platform="android", notifier=None):
    return BackgroundScheduler(
        registry,
        sync or StubSync(SyncExecutionResult(success=True)),
        ctx.preferences,
        platform=platform,
        notifier=notifier,
    )


def test_task_body_defined_on_construction(ctx, registry):
    s = scheduler(ctx, registry)

    assert registry.bodies[BACKGROUND_SYNC_TASK] == s.run_task


@pytest.mark.asyncio
async def test_apply_registers_when_enabled(ctx, registry):
    await scheduler(ctx, registry).apply(AutoSyncConfig(enabled=True, interval_minutes=60))

    assert registry.registered == {BACKGROUND_SYNC_TASK: 3600}


@pytest.mark.asyncio
async def test_apply_uses_ios_floor(ctx, registry):
    await scheduler(ctx, registry, platform="ios").apply(
        AutoSyncConfig(enabled=True, interval_minutes=1440)
    )

    assert registry.registered[BACKGROUND_SYNC_TASK] == 15 * 60


@pytest.mark.asyncio
async def test_apply_reregisters_with_new_interval(ctx, registry):
    s = scheduler(ctx, registry)
    await s.apply(AutoSyncConfig(enabled=True, interval_minutes=60))
    await s.apply(AutoSyncConfig(enabled=True, interval_minutes=180))

    assert registry.calls == [("register", 3600), ("unregister",), ("register", 10800)]
    assert registry.registered[BACKGROUND_SYNC_TASK] == 10800


@pytest.mark.asyncio
async def test_apply_unregisters_when_disabled(ctx, registry):
    s = scheduler(ctx, registry)
    await s.apply(AutoSyncConfig(enabled=True))
    await s.apply(AutoSyncConfig(enabled=False))

    assert not await s.is_registered()


@pytest.mark.asyncio
async def test_apply_disabled_and_unregistered_is_noop(ctx, registry):
    await scheduler(ctx, registry).apply(AutoSyncConfig(enabled=False))

    assert registry.calls == []


@pytest.mark.asyncio
async def test_apply_reads_stored_config(ctx, registry):
    await ctx.preferences.save_auto_sync_config(AutoSyncConfig(enabled=True, interval_minutes=360))

    await scheduler(ctx, registry).apply()

    assert registry.registered[BACKGROUND_SYNC_TASK] == 21600


@pytest.mark.asyncio
async def test_apply_swallows_registry_errors(ctx, registry):
    async def broken(name, minimum_interval_seconds):
        raise RuntimeError("registry unavailable")

    registry.register = broken

    await scheduler(ctx, registry).apply(AutoSyncConfig(enabled=True))


@pytest.mark.asyncio
async def test_status_comes_from_registry(ctx, registry):
    assert await scheduler(ctx, registry).get_status() == BackgroundFetchStatus.RESTRICTED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result,expected",
    [
        (SyncExecutionResult(success=True, has_new_data=True, has_queue_processed=True), BackgroundFetchResult.NEW_DATA),
        (SyncExecutionResult(success=True), BackgroundFetchResult.NO_DATA),
        (SyncExecutionResult(success=False), BackgroundFetchResult.FAILED),
    ],
)
async def test_run_task_maps_result(ctx, registry, result, expected):
    notifier = LogNotifier()
    s = scheduler(ctx, registry, StubSync(result), notifier=notifier)

    assert await s.run_task() == expected
    assert len(notifier.sent) == (1 if expected == BackgroundFetchResult.NEW_DATA else 0)


@pytest.mark.asyncio
async def test_run_task_passes_stored_config(ctx, registry):
    stored = AutoSyncConfig(enabled=True, interval_minutes=720, wifi_only=False)
    await ctx.preferences.save_auto_sync_config(stored)
    sync = StubSync(SyncExecutionResult(success=True))

    await scheduler(ctx, registry, sync).run_task()

    assert sync.configs == [stored]


@pytest.mark.asyncio
async def test_run_task_exception_is_failed(ctx, registry):
    s = scheduler(ctx, registry, StubSync(error=RuntimeError("boom")))

    assert await s.run_task() == BackgroundFetchResult.FAILED


@pytest.mark.asyncio
async def test_notification_uses_language(ctx, registry):
    await ctx.preferences.save_language("ja")
    notifier = LogNotifier()
    result = SyncExecutionResult(success=True, has_new_data=True)

    await scheduler(ctx, registry, StubSync(result), notifier=notifier).run_task()

    assert notifier.sent == [("同期完了", "データのバックアップが完了しました")]


@pytest.mark.asyncio
async def test_asyncio_registry_runs_body_periodically():
    registry = AsyncioTaskRegistry()
    ran = asyncio.Event()

    async def body():
        ran.set()
        return "done"

    registry.define_task("job", body)
    await registry.register("job", 0)
    await asyncio.wait_for(ran.wait(), timeout=1)

    assert await registry.is_registered("job")
    await registry.unregister("job")
    assert not await registry.is_registered("job")
    assert registry.intervals == {}


@pytest.mark.asyncio
async def test_asyncio_registry_rejects_undefined_task():
    with pytest.raises(KeyError):
        await AsyncioTaskRegistry().register("missing", 60)
