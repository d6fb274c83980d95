"""
Error taxonomy for the export engine.

Errors are values: collaborator boundaries return them inside a ``Result``
rather than raising. Each error knows whether the job that produced it is
worth retrying.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx


class AppError(Exception):
    """Base error for health-export."""

    default_code = "APP_ERROR"
    retryable = True

    def __init__(self, message: str, code: Optional[str] = None, cause: object = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        if self.cause is not None:
            text += f" (caused by: {self.cause})"
        return text


class NetworkError(AppError):
    """Transport unreachable (DNS, connect, read timeout). Always retryable."""

    default_code = "NETWORK_ERROR"


class StorageError(AppError):
    """Remote API rejected the request or returned a malformed response."""

    default_code = "STORAGE_ERROR"


class AuthError(StorageError):
    """Credentials rejected. Retryable unless the grant was revoked."""

    default_code = "AUTH_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, cause: object = None):
        super().__init__(message, code, cause)
        self.retryable = self.code != "AUTH_REVOKED"


class QueueStorageError(StorageError):
    """Local persistence I/O failed. Fatal for the current operation."""

    default_code = "QUEUE_STORAGE_ERROR"


class ValidationError(AppError):
    """Nothing matched the export filters. Never enqueued."""

    default_code = "VALIDATION_ERROR"
    retryable = False


def map_transport_error(e: BaseException, operation: str = "request") -> AppError:
    """Convert a raw exception raised by a collaborator into the taxonomy."""
    if isinstance(e, AppError):
        return e
    if isinstance(e, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return NetworkError(f"{operation} timed out", "TIMEOUT", e)
    if isinstance(e, (httpx.TransportError, ConnectionError)):
        return NetworkError(f"{operation} network error", "NETWORK_ERROR", e)
    if isinstance(e, httpx.HTTPStatusError):
        return map_http_status(e.response.status_code, operation, e)
    if isinstance(e, (ValueError, KeyError, TypeError)):
        return StorageError(f"{operation} returned a malformed response", "MALFORMED_RESPONSE", e)
    return StorageError(f"{operation} failed: {e}", "EXCEPTION", e)


def map_http_status(status: int, operation: str, cause: object = None) -> AppError:
    code = operation.upper().replace(" ", "_")
    if status == 401:
        return AuthError(f"{operation} unauthorized: {status}", "AUTH_REJECTED", cause)
    if status == 403:
        return AuthError(f"{operation} forbidden: {status}", "AUTH_FORBIDDEN", cause)
    return StorageError(f"{operation} failed: {status}", f"{code}_FAILED", cause)
