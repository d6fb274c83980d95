from .interval import IOS_BACKGROUND_FETCH_INTERVAL_MINUTES, resolve_background_fetch_interval_minutes
from .notify import LogNotifier, Notifier
from .scheduler import (
    BACKGROUND_SYNC_TASK,
    AsyncioTaskRegistry,
    BackgroundFetchResult,
    BackgroundFetchStatus,
    BackgroundScheduler,
    TaskRegistry,
)
from .sync import HealthDataSource, SyncExecutionResult, SyncOperation, calculate_fetch_days

__all__ = [
    "IOS_BACKGROUND_FETCH_INTERVAL_MINUTES",
    "resolve_background_fetch_interval_minutes",
    "BACKGROUND_SYNC_TASK",
    "TaskRegistry",
    "AsyncioTaskRegistry",
    "BackgroundScheduler",
    "BackgroundFetchResult",
    "BackgroundFetchStatus",
    "SyncOperation",
    "SyncExecutionResult",
    "HealthDataSource",
    "calculate_fetch_days",
    "Notifier",
    "LogNotifier",
]
