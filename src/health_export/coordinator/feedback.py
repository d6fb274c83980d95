"""
Queue-depth feedback for observers.

Provides in-process pub/sub for the pending-export count. UI badges, widgets
and the CLI subscribe to learn how many exports are still waiting after each
enqueue or drain.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from loguru import logger


class QueueChangeReason(str, Enum):
    """Why the pending count was republished."""

    ENQUEUED = "enqueued"
    DRAINED = "drained"  # processor finished (completed or interrupted)
    CLEARED = "cleared"


@dataclass(frozen=True)
class QueueDepthEvent:
    """Immutable pending-count event.

    Attributes:
        pending_count: Entries left in the queue store
        reason: What triggered the publish
        processed: Entries touched by the drain that triggered it (0 otherwise)
    """

    pending_count: int
    reason: QueueChangeReason
    processed: int = 0

    @property
    def is_empty(self) -> bool:
        return self.pending_count == 0


class QueueSubscriber(Protocol):
    """Async callable accepting QueueDepthEvent.

    Exceptions are caught and logged to prevent cascade failures.
    """

    async def __call__(self, event: QueueDepthEvent) -> None: ...


class QueueFeedbackBus:
    """In-process pub/sub bus for queue depth.

    One subscriber's failure does not affect others. Best-effort delivery.

    Example:
        bus = QueueFeedbackBus()

        async def on_depth(event: QueueDepthEvent):
            badge.set(event.pending_count)

        bus.subscribe(on_depth)
        await bus.publish(QueueDepthEvent(3, QueueChangeReason.ENQUEUED))
    """

    def __init__(self) -> None:
        self._subs: list[QueueSubscriber] = []
        self._last: QueueDepthEvent | None = None

    def subscribe(self, callback: QueueSubscriber) -> None:
        if callback not in self._subs:
            self._subs.append(callback)
            logger.debug(f"Queue subscriber added (total: {len(self._subs)})")

    def unsubscribe(self, callback: QueueSubscriber) -> None:
        """No-op if callback not found (safe to call multiple times)."""
        try:
            self._subs.remove(callback)
            logger.debug(f"Queue subscriber removed (total: {len(self._subs)})")
        except ValueError:
            pass

    async def publish(self, event: QueueDepthEvent) -> None:
        """Publish to all subscribers in registration order."""
        self._last = event
        if not self._subs:
            return

        logger.debug(
            f"Publishing queue depth: pending={event.pending_count} reason={event.reason.value}"
        )

        # Iterate over copy to allow unsubscribe during iteration
        for callback in list(self._subs):
            try:
                await callback(event)
            except Exception as exc:
                logger.debug(f"Queue subscriber error (ignored): {type(exc).__name__}: {exc}")

    @property
    def last_event(self) -> QueueDepthEvent | None:
        return self._last

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)
