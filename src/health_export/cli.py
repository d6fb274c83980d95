from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger

from .background import (
    AsyncioTaskRegistry,
    BackgroundScheduler,
    LogNotifier,
    SyncOperation,
    resolve_background_fetch_interval_minutes,
)
from .context import ServiceContext, build_context
from .coordinator import NetworkRecoveryWatcher, QueueChangeReason, QueueDepthEvent, QueueProcessor
from .export.service import handle_export_request
from .logs import configure_logging
from .models import SYNC_INTERVALS, AutoSyncConfig, ExportFormat, HealthData
from .network import ProbeNetworkStatus
from .settings import get_settings

app = typer.Typer(help="health-export operational CLI")
queue_app = typer.Typer(help="Inspect and drain the offline export queue")
schedule_app = typer.Typer(help="Background sync scheduling")
app.add_typer(queue_app, name="queue")
app.add_typer(schedule_app, name="schedule")


def _context() -> ServiceContext:
    settings = get_settings()
    configure_logging(settings)
    return build_context(settings)


def _run(coro_fn) -> None:
    async def main():
        ctx = _context()
        try:
            await coro_fn(ctx)
        finally:
            await ctx.aclose()

    asyncio.run(main())


def _load_health_data(path: Path) -> HealthData:
    return HealthData.model_validate_json(path.read_text(encoding="utf-8"))


class JsonFileHealthSource:
    """Serves a HealthData JSON file, restricted to the requested window."""

    def __init__(self, path: Path) -> None:
        self._path = path

    async def fetch(self, start: datetime, end: datetime) -> HealthData:
        data = await asyncio.to_thread(_load_health_data, self._path)
        lo, hi = start.date().isoformat(), end.date().isoformat()
        return data.filter_by_dates(d for d in data.all_dates() if lo <= d <= hi)


# ---------------------------
# Export
# ---------------------------


@app.command("export")
def export(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="HealthData JSON file"),
    formats: Optional[List[ExportFormat]] = typer.Option(None, "--format", help="Override formats"),
    pdf: Optional[bool] = typer.Option(None, "--pdf/--no-pdf", help="Also export sheets as PDF"),
):
    """Export now, or queue the export if offline or failing."""

    async def run(ctx: ServiceContext):
        config = await ctx.preferences.load_export_config()
        update = {}
        if formats:
            update["formats"] = formats
        if pdf is not None:
            update["export_as_pdf"] = pdf
        ok = await handle_export_request(
            ctx, _load_health_data(path), config=config.model_copy(update=update)
        )
        typer.echo(json.dumps({"exported": ok, "pending": await ctx.queue.count()}, indent=2))

    _run(run)


# ---------------------------
# Queue
# ---------------------------


@queue_app.command("list")
def queue_list():
    async def run(ctx: ServiceContext):
        for entry in await ctx.queue.list():
            typer.echo(
                json.dumps(
                    {
                        "id": entry.id,
                        "created_at": entry.created_at.isoformat(),
                        "retry_count": entry.retry_count,
                        "last_error": entry.last_error,
                        "records": entry.health_data.record_count(),
                        "tags": entry.selected_tags,
                    }
                )
            )

    _run(run)


@queue_app.command("count")
def queue_count():
    async def run(ctx: ServiceContext):
        typer.echo(json.dumps({"pending": await ctx.queue.count()}))

    _run(run)


@queue_app.command("clear")
def queue_clear(yes: bool = typer.Option(False, "--yes", help="Skip confirmation")):
    if not yes:
        typer.confirm("Delete every pending export?", abort=True)

    async def run(ctx: ServiceContext):
        await ctx.queue.clear()
        await ctx.feedback.publish(QueueDepthEvent(0, QueueChangeReason.CLEARED))
        typer.echo("ok")

    _run(run)


@queue_app.command("process")
def queue_process(
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-job timeout (s)"),
):
    """Drain the queue once."""

    async def run(ctx: ServiceContext):
        outcome = await QueueProcessor(ctx).process_queue(timeout=timeout)
        typer.echo(outcome.model_dump_json(indent=2))

    _run(run)


# ---------------------------
# Schedule
# ---------------------------


@schedule_app.command("interval")
def schedule_interval(
    platform: str = typer.Option(..., "--platform", help="ios, android, ..."),
    minutes: int = typer.Option(..., "--minutes", help="Requested interval"),
):
    """Show the interval that would actually be registered."""
    typer.echo(resolve_background_fetch_interval_minutes(platform, minutes))


@schedule_app.command("apply")
def schedule_apply(
    enabled: bool = typer.Option(..., "--enabled/--disabled"),
    interval: int = typer.Option(1440, "--interval", help=f"Minutes, one of {SYNC_INTERVALS}"),
):
    """Store the auto-sync config."""
    config = AutoSyncConfig(enabled=enabled, interval_minutes=interval)

    async def run(ctx: ServiceContext):
        await ctx.preferences.save_auto_sync_config(config)
        effective = resolve_background_fetch_interval_minutes(ctx.settings.PLATFORM, interval)
        typer.echo(
            json.dumps({"enabled": config.enabled, "interval_minutes": effective}, indent=2)
        )

    _run(run)


@schedule_app.command("run")
def schedule_run(
    source: Path = typer.Option(..., "--source", exists=True, dir_okay=False),
    probe_interval: float = typer.Option(30.0, "--probe-interval"),
):
    """Run the scheduler in-process until interrupted."""

    async def run(ctx: ServiceContext):
        processor = QueueProcessor(ctx)
        scheduler = BackgroundScheduler(
            AsyncioTaskRegistry(),
            SyncOperation(ctx, JsonFileHealthSource(source), processor),
            ctx.preferences,
            platform=ctx.settings.PLATFORM,
            notifier=LogNotifier(),
        )
        await scheduler.apply()
        watcher = NetworkRecoveryWatcher(ctx.network, processor)
        watcher.start()
        logger.info("[Scheduler] Running, press Ctrl+C to stop")
        try:
            if isinstance(ctx.network, ProbeNetworkStatus):
                await ctx.network.watch(probe_interval)
            else:
                await asyncio.Event().wait()
        finally:
            watcher.stop()
            await scheduler.unregister()

    _run(run)


def main():
    app()


if __name__ == "__main__":
    main()
