"""
Export entry point used by interactive callers and background sync.

Online requests run immediately and fall back to the queue on failure;
offline requests go straight to the queue. A payload with nothing to export
is rejected and never enqueued.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

from loguru import logger

from ..coordinator.feedback import QueueChangeReason, QueueDepthEvent
from ..errors import AppError, StorageError, ValidationError
from ..metrics import metrics_registry
from ..models import ExportConfig, HealthData
from ..network import NetworkStatus
from .controller import ExportController

if TYPE_CHECKING:
    from ..context import ServiceContext

OFFLINE_MESSAGE = "Network is offline"


async def add_to_export_queue(
    ctx: "ServiceContext",
    health_data: HealthData,
    date_keys: Optional[Iterable[str]] = None,
    config: Optional[ExportConfig] = None,
    *,
    last_error: Optional[str] = None,
) -> str:
    """Enqueue ``health_data`` for a later drain and publish the new depth."""
    if config is None:
        config = await ctx.preferences.load_export_config()
    entry_id = await ctx.queue.add(
        health_data,
        health_data.non_empty_tags(),
        list(date_keys) if date_keys is not None else None,
        last_error=last_error,
        export_config=config,
    )
    pending = await ctx.queue.count()
    metrics_registry.queue_depth.set(pending)
    await ctx.feedback.publish(QueueDepthEvent(pending, QueueChangeReason.ENQUEUED))
    return entry_id


async def handle_export_request(
    ctx: "ServiceContext",
    health_data: HealthData,
    date_keys: Optional[Iterable[str]] = None,
    config: Optional[ExportConfig] = None,
    *,
    controller: Optional[ExportController] = None,
) -> bool:
    """Export now if possible, otherwise queue it.

    Returns:
        True only if the export completed immediately. Queued and rejected
        requests both return False.
    """
    keys = list(date_keys) if date_keys is not None else None
    scoped = health_data.filter_by_dates(keys) if keys is not None else health_data
    if scoped.record_count() == 0:
        logger.warning("[Export] No health data to export, request rejected")
        return False

    if config is None:
        config = await ctx.preferences.load_export_config()

    if await ctx.network.get_status() != NetworkStatus.ONLINE:
        logger.info("[Export] Offline, adding to queue")
        await add_to_export_queue(ctx, health_data, keys, config, last_error=OFFLINE_MESSAGE)
        return False

    controller = controller or ExportController(ctx)
    try:
        result = await controller.execute(health_data, config, keys)
    except Exception as e:
        logger.exception("[Export] Unexpected error during export")
        error: Optional[AppError] = StorageError(f"Unexpected error: {e}", "EXCEPTION", e)
    else:
        if result.is_err():
            error = result.unwrap_err()
        elif not result.unwrap().success:
            error = StorageError(result.unwrap().error_message, "EXPORT_FAILED")
        else:
            error = None

    if error is None:
        return True
    if isinstance(error, ValidationError):
        logger.error(f"[Export] Export rejected: {error}")
        return False

    logger.warning(f"[Export] Export failed, adding to queue: {error}")
    await add_to_export_queue(ctx, health_data, keys, config, last_error=error.message)
    return False
