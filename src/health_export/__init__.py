"""
Health Export

Offline-durable export of daily health metrics to Google Drive (CSV, JSON)
and Google Sheets, with a persisted retry queue and background sync.

Usage:
    from health_export import build_context, handle_export_request, QueueProcessor

    ctx = build_context()
    await handle_export_request(ctx, health_data)
    await QueueProcessor(ctx).process_queue()
"""

from .context import ServiceContext, build_context
from .coordinator import QueueProcessor, QueueStore
from .errors import AppError, NetworkError, StorageError, ValidationError
from .export.controller import ExportController
from .export.service import add_to_export_queue, handle_export_request
from .models import ExportConfig, ExportFormat, ExportOutcome, HealthData, PendingExport
from .result import Err, Ok, Result

__version__ = "1.0.0"
__all__ = [
    "ServiceContext",
    "build_context",
    "QueueProcessor",
    "QueueStore",
    "ExportController",
    "handle_export_request",
    "add_to_export_queue",
    "AppError",
    "NetworkError",
    "StorageError",
    "ValidationError",
    "ExportConfig",
    "ExportFormat",
    "ExportOutcome",
    "HealthData",
    "PendingExport",
    "Ok",
    "Err",
    "Result",
]
