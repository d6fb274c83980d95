"""
Queue processor: drains pending exports sequentially.

Only one drain may run per process. A second trigger while a drain is in
flight (manual retry overlapping a scheduled run) is ignored, since the queue
store is read-entire/write-entire and interleaved drains would lose updates.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Callable, Optional

from loguru import logger

from ..adapters.auth import AccessToken, refresh_if_needed
from ..errors import AppError, NetworkError, StorageError
from ..export.controller import ExportController
from ..metrics import metrics_registry
from ..models import ExportOutcome, PendingExport
from ..network import NetworkStatus, NetworkStatusProvider
from .feedback import QueueChangeReason, QueueDepthEvent
from .policy import has_exceeded_max_retries, is_retryable

if TYPE_CHECKING:
    from ..context import ServiceContext

_in_flight = False


def is_processing() -> bool:
    return _in_flight


class QueueProcessor:
    def __init__(self, ctx: "ServiceContext", controller: Optional[ExportController] = None):
        self._ctx = ctx
        self._controller = controller or ExportController(ctx)

    async def process_queue(self, timeout: Optional[float] = None) -> ExportOutcome:
        """Attempt every pending job once, oldest first.

        Args:
            timeout: Per-job attempt timeout in seconds (defaults to
                ``EXECUTION_TIMEOUT_SEC``)

        Returns:
            Counts for this drain. Offline or an already running drain yields
            an all-zero outcome.
        """
        global _in_flight
        if _in_flight:
            logger.info("[QueueProcessor] Already processing, skipping")
            return ExportOutcome()

        _in_flight = True
        try:
            return await self._drain(timeout or self._ctx.settings.EXECUTION_TIMEOUT_SEC)
        finally:
            _in_flight = False

    async def _drain(self, timeout: float) -> ExportOutcome:
        outcome = ExportOutcome()
        queue = self._ctx.queue

        if await self._ctx.network.get_status() != NetworkStatus.ONLINE:
            logger.info("[QueueProcessor] Offline, skipping queue processing")
            return outcome

        try:
            entries = await queue.list()
        except AppError as e:
            logger.error(f"[QueueProcessor] Cannot read queue: {e}")
            outcome.errors.append(e.message)
            return outcome

        logger.info(f"[QueueProcessor] Processing {len(entries)} queued export(s)")
        token: Optional[AccessToken] = None

        try:
            for entry in entries:
                if has_exceeded_max_retries(entry):
                    outcome.skipped_count += 1
                    outcome.errors.append(
                        f"Export {entry.id} dropped after {entry.retry_count} retries: "
                        f"{entry.last_error or 'unknown error'}"
                    )
                    await queue.remove(entry.id)
                    metrics_registry.jobs_total.labels(outcome="evicted").inc()
                    logger.warning(f"[QueueProcessor] Evicted {entry.id} (max retries)")
                    continue

                token, error = await self._attempt(entry, token, timeout)
                if error is None:
                    outcome.success_count += 1
                    await queue.remove(entry.id)
                    metrics_registry.jobs_total.labels(outcome="success").inc()
                    logger.info(f"[QueueProcessor] Exported {entry.id}")
                    continue

                outcome.fail_count += 1
                metrics_registry.jobs_total.labels(outcome="failed").inc()
                await queue.increment_retry(entry.id, error.message)
                if is_retryable(error):
                    logger.warning(f"[QueueProcessor] Export {entry.id} failed: {error}")
                else:
                    logger.error(f"[QueueProcessor] Export {entry.id} needs attention: {error}")

                if await self._ctx.network.get_status() != NetworkStatus.ONLINE:
                    logger.info("[QueueProcessor] Network lost, stopping")
                    break
        except AppError as e:
            logger.error(f"[QueueProcessor] Queue update failed: {e}")
            outcome.errors.append(e.message)

        await self._publish_depth(outcome)
        logger.info(
            f"[QueueProcessor] Done: success={outcome.success_count} "
            f"failed={outcome.fail_count} skipped={outcome.skipped_count}"
        )
        return outcome

    async def _attempt(
        self, entry: PendingExport, token: Optional[AccessToken], timeout: float
    ) -> tuple[Optional[AccessToken], Optional[AppError]]:
        """Run one job; returns the (possibly refreshed) token and the error, if any."""
        started = time.perf_counter()
        try:
            refreshed = await refresh_if_needed(self._ctx.tokens, token)
            if refreshed.is_err():
                return token, refreshed.unwrap_err()
            token = refreshed.unwrap()
            result = await asyncio.wait_for(self._controller.attempt(entry, token), timeout)
        except asyncio.TimeoutError as e:
            return token, NetworkError(f"Export timed out after {timeout:g}s", "TIMEOUT", e)
        except Exception as e:
            logger.exception(f"[QueueProcessor] Unexpected error exporting {entry.id}")
            return token, StorageError(f"Unexpected error: {e}", "EXCEPTION", e)
        finally:
            metrics_registry.attempt_latency.observe(time.perf_counter() - started)

        if result.is_err():
            return token, result.unwrap_err()
        report = result.unwrap()
        if not report.success:
            return token, StorageError(report.error_message or "Export failed", "EXPORT_FAILED")
        return token, None

    async def _publish_depth(self, outcome: ExportOutcome) -> None:
        try:
            remaining = await self._ctx.queue.count()
        except AppError as e:
            logger.error(f"[QueueProcessor] Cannot count queue: {e}")
            return
        metrics_registry.queue_depth.set(remaining)
        await self._ctx.feedback.publish(
            QueueDepthEvent(remaining, QueueChangeReason.DRAINED, processed=outcome.attempted)
        )


class NetworkRecoveryWatcher:
    """Drains the queue whenever connectivity comes back."""

    def __init__(self, network: NetworkStatusProvider, processor: QueueProcessor) -> None:
        self._network = network
        self._processor = processor
        self._last = NetworkStatus.UNKNOWN
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._network.subscribe(self._on_status)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_status(self, status: NetworkStatus) -> None:
        previous, self._last = self._last, status
        if status != NetworkStatus.ONLINE or previous == NetworkStatus.ONLINE:
            return
        logger.info("[QueueProcessor] Network restored, processing queue")
        outcome = await self._processor.process_queue()
        if outcome.success_count:
            logger.info(f"[QueueProcessor] Exported {outcome.success_count} queued item(s)")
