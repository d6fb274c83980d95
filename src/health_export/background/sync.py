"""
One background sync run: fetch recent data, queue it, drain the queue.

The fetch window grows with the time since the last successful sync so a
device that slept for a week still catches up, bounded to keep the payload
small.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from loguru import logger

from ..coordinator.processor import QueueProcessor
from ..errors import AppError
from ..export.service import add_to_export_queue
from ..models import AutoSyncConfig, ExportFormat, HealthData
from ..utils import date_range_keys, utc_now

if TYPE_CHECKING:
    from ..context import ServiceContext

MIN_FETCH_DAYS = 7
MAX_FETCH_DAYS = 30


class HealthDataSource(Protocol):
    """Platform health store (Health Connect, HealthKit, a fixture file...)."""

    async def fetch(self, start: datetime, end: datetime) -> HealthData: ...


@dataclass(frozen=True)
class SyncExecutionResult:
    success: bool
    has_new_data: bool = False
    has_queue_processed: bool = False


def calculate_fetch_days(last_sync: Optional[datetime], now: datetime) -> int:
    """Days since ``last_sync`` rounded up, clamped to [7, 30]."""
    if last_sync is None:
        return MIN_FETCH_DAYS
    elapsed = (now - last_sync).total_seconds() / 86400
    return min(max(math.ceil(elapsed), MIN_FETCH_DAYS), MAX_FETCH_DAYS)


class SyncOperation:
    def __init__(
        self,
        ctx: "ServiceContext",
        source: HealthDataSource,
        processor: Optional[QueueProcessor] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._ctx = ctx
        self._source = source
        self._processor = processor or QueueProcessor(ctx)
        self._clock = clock

    async def execute(self, config: AutoSyncConfig) -> SyncExecutionResult:
        logger.info("[SyncOperation] Starting execution")
        if not config.enabled:
            logger.info("[SyncOperation] Auto sync is disabled")
            return SyncExecutionResult(success=False)

        success = True
        has_new_data = False
        has_queue_processed = False
        now = self._clock()

        fetch_days = calculate_fetch_days(await self._ctx.preferences.load_last_sync(), now)
        start = (now - timedelta(days=fetch_days)).replace(hour=0, minute=0, second=0, microsecond=0)
        logger.info(f"[SyncOperation] Fetching for {fetch_days} days")

        try:
            health_data = await self._source.fetch(start, now)
        except Exception as e:
            # A failed fetch still lets previously queued jobs drain.
            logger.error(f"[SyncOperation] Fetch error: {type(e).__name__}: {e}")
            health_data = HealthData()

        if health_data.record_count() > 0:
            export_config = (await self._ctx.preferences.load_export_config()).model_copy(
                update={"formats": [ExportFormat.SPREADSHEET], "export_as_pdf": False}
            )
            try:
                await add_to_export_queue(
                    self._ctx, health_data, date_range_keys(start.date(), now.date()), export_config
                )
                logger.info("[SyncOperation] Data queued for export")
            except AppError as e:
                logger.error(f"[SyncOperation] Failed to queue data: {e}")
                success = False
        else:
            logger.info("[SyncOperation] No health data available")

        outcome = await self._processor.process_queue(
            timeout=self._ctx.settings.BACKGROUND_EXECUTION_TIMEOUT_SEC
        )
        if outcome.success_count > 0:
            logger.info(f"[SyncOperation] Queue processed: {outcome.success_count} items")
            has_queue_processed = True
            has_new_data = True

        if has_new_data or has_queue_processed:
            await self._ctx.preferences.save_last_sync(now)

        return SyncExecutionResult(
            success=success, has_new_data=has_new_data, has_queue_processed=has_queue_processed
        )
