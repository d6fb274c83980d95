"""
Demo: queue an export while offline, then drain it when the network returns.

Requires HEALTH_EXPORT_ACCESS_TOKEN (or the OAuth refresh settings) with
Drive and Sheets scope. Writes a CSV into the default export folder.
"""

import asyncio

from loguru import logger

from health_export.context import build_context
from health_export.coordinator import NetworkRecoveryWatcher, QueueDepthEvent, QueueProcessor
from health_export.export.service import handle_export_request
from health_export.logs import configure_logging
from health_export.models import ExportConfig, ExportFormat, HealthData
from health_export.network import NetworkStatus, StaticNetworkStatus
from health_export.settings import get_settings

SAMPLE = {
    "steps": [
        {"date": "2025-01-01", "count": 5400},
        {"date": "2025-01-02", "count": 8120},
    ],
    "sleep": [{"date": "2025-01-02", "duration_minutes": 431, "deep_sleep_percentage": 18.5}],
}


async def on_depth(event: QueueDepthEvent) -> None:
    logger.info(f"Queue depth: {event.pending_count} ({event.reason.value})")


async def main():
    settings = get_settings()
    configure_logging(settings)
    ctx = build_context(settings)
    network = StaticNetworkStatus(NetworkStatus.OFFLINE)
    ctx.network = network
    ctx.feedback.subscribe(on_depth)

    watcher = NetworkRecoveryWatcher(network, QueueProcessor(ctx))
    watcher.start()
    try:
        data = HealthData.model_validate(SAMPLE)
        exported = await handle_export_request(
            ctx, data, config=ExportConfig(formats=[ExportFormat.CSV])
        )
        logger.info(f"Exported immediately: {exported} (pending: {await ctx.queue.count()})")

        logger.info("Network back online, watcher drains the queue")
        await network.set_status(NetworkStatus.ONLINE)
        logger.info(f"Pending after drain: {await ctx.queue.count()}")
    finally:
        watcher.stop()
        await ctx.aclose()


if __name__ == "__main__":
    asyncio.run(main())
