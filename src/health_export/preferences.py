"""
Typed access to the user preferences kept in key/value storage.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .models import AutoSyncConfig, ExportConfig, ExportFormat, TargetFolder
from .storage import KeyValueStorage, StorageKeys
from .utils import parse_datetime

SUPPORTED_LANGUAGES = ("en", "ja")


class Preferences:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    # ---------- export config ----------

    async def load_export_formats(self) -> list[ExportFormat]:
        raw = await self._storage.get_item(StorageKeys.EXPORT_FORMATS)
        if not raw:
            return [ExportFormat.SPREADSHEET]
        try:
            return [ExportFormat(f) for f in json.loads(raw)]
        except (ValueError, TypeError):
            logger.warning(f"[Preferences] Ignoring invalid export formats: {raw!r}")
            return [ExportFormat.SPREADSHEET]

    async def save_export_formats(self, formats: list[ExportFormat]) -> None:
        await self._storage.set_item(
            StorageKeys.EXPORT_FORMATS, json.dumps([ExportFormat(f).value for f in formats])
        )

    async def load_export_as_pdf(self) -> bool:
        return await self._storage.get_item(StorageKeys.EXPORT_SHEET_AS_PDF) == "true"

    async def save_export_as_pdf(self, enabled: bool) -> None:
        await self._storage.set_item(StorageKeys.EXPORT_SHEET_AS_PDF, "true" if enabled else "false")

    async def load_target_folder(self) -> TargetFolder:
        raw = await self._storage.get_item(StorageKeys.DRIVE_CONFIG)
        if not raw:
            return TargetFolder()
        try:
            return TargetFolder.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("[Preferences] Ignoring invalid drive config")
            return TargetFolder()

    async def save_target_folder(self, folder: TargetFolder) -> None:
        await self._storage.set_item(StorageKeys.DRIVE_CONFIG, folder.model_dump_json())

    async def load_export_config(self) -> ExportConfig:
        return ExportConfig(
            formats=await self.load_export_formats(),
            export_as_pdf=await self.load_export_as_pdf(),
            target_folder=await self.load_target_folder(),
        )

    # ---------- background sync ----------

    async def load_auto_sync_config(self) -> AutoSyncConfig:
        raw = await self._storage.get_item(StorageKeys.BACKGROUND_SYNC_CONFIG)
        if not raw:
            return AutoSyncConfig()
        try:
            return AutoSyncConfig.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("[Preferences] Ignoring invalid background sync config")
            return AutoSyncConfig()

    async def save_auto_sync_config(self, config: AutoSyncConfig) -> None:
        await self._storage.set_item(StorageKeys.BACKGROUND_SYNC_CONFIG, config.model_dump_json())

    async def load_last_sync(self) -> Optional[datetime]:
        raw = await self._storage.get_item(StorageKeys.LAST_SYNC_TIME)
        return parse_datetime(raw) if raw else None

    async def save_last_sync(self, when: datetime) -> None:
        await self._storage.set_item(StorageKeys.LAST_SYNC_TIME, when.isoformat())

    # ---------- language ----------

    async def load_language(self) -> str:
        raw = await self._storage.get_item(StorageKeys.APP_LANGUAGE)
        return raw if raw in SUPPORTED_LANGUAGES else "en"

    async def save_language(self, language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        await self._storage.set_item(StorageKeys.APP_LANGUAGE, language)
