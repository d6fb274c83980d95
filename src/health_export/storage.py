"""
Local key/value persistence.

Every persisted record (queue, last sync time, preferences) is a JSON string
stored under one key. ``JsonFileStorage`` keeps one file per key and replaces
it atomically, so a crash mid-write leaves the previous value intact.
"""

from __future__ import annotations

import asyncio
import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from loguru import logger

from .errors import QueueStorageError


class StorageKeys:
    OFFLINE_EXPORT_QUEUE = "@offline_export_queue"
    LAST_SYNC_TIME = "@last_sync_time"
    APP_LANGUAGE = "@app_language"
    EXPORT_FORMATS = "@export_formats"
    EXPORT_SHEET_AS_PDF = "@export_sheet_as_pdf"
    DRIVE_CONFIG = "@drive_config"
    BACKGROUND_SYNC_CONFIG = "@background_sync_config"


class KeyValueStorage(Protocol):
    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage for tests and dry runs."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStorage:
    """One file per key under ``directory``."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE.sub('_', key.lstrip('@'))}.json"

    async def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise QueueStorageError(f"{path} is not valid UTF-8", "CORRUPT_QUEUE", e) from e
        except OSError as e:
            raise QueueStorageError(f"Failed to read {path}", "READ_FAILED", e) from e

    async def set_item(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write_atomic, self._path(key), value)
        except OSError as e:
            logger.error(f"[Storage] Write failed for {key}: {e}")
            raise QueueStorageError(f"Failed to write {key}", "WRITE_FAILED", e) from e

    async def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise QueueStorageError(f"Failed to remove {key}", "REMOVE_FAILED", e) from e

    def _write_atomic(self, path: Path, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
