"""Export queue coordination

Persisted job queue plus the machinery that drains it:
- QueueStore (read-entire/write-entire durable FIFO)
- Retry/eviction policy (fixed ceiling, no backoff)
- QueueProcessor with a process-wide in-flight guard
- NetworkRecoveryWatcher (drain on reconnect)
- QueueFeedbackBus (pending-count events for observers)
"""

from .feedback import QueueChangeReason, QueueDepthEvent, QueueFeedbackBus, QueueSubscriber
from .policy import MAX_RETRY_COUNT, has_exceeded_max_retries, is_retryable
from .processor import NetworkRecoveryWatcher, QueueProcessor, is_processing
from .queue import QueueStore

__all__ = [
    # storage
    "QueueStore",
    # policies
    "MAX_RETRY_COUNT",
    "has_exceeded_max_retries",
    "is_retryable",
    # runtime
    "QueueProcessor",
    "NetworkRecoveryWatcher",
    "is_processing",
    # feedback
    "QueueFeedbackBus",
    "QueueDepthEvent",
    "QueueChangeReason",
    "QueueSubscriber",
]
