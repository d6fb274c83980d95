"""
Retry and eviction policy.

There is no backoff: each drain attempts every live job once and the caller
decides how often to drain. Every failure bumps the job's retry count, and a
job is evicted (never attempted again) once that count reaches
``MAX_RETRY_COUNT``. ``is_retryable`` only grades how loudly a failure is
reported; it never shortcuts the ceiling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import AppError, NetworkError, ValidationError

if TYPE_CHECKING:
    from ..models import PendingExport

MAX_RETRY_COUNT = 3


def has_exceeded_max_retries(entry: "PendingExport") -> bool:
    return entry.retry_count >= MAX_RETRY_COUNT


def is_retryable(error: AppError) -> bool:
    """Network errors always retry; revoked auth and validation never do."""
    if isinstance(error, NetworkError):
        return True
    if isinstance(error, ValidationError):
        return False
    return error.retryable
