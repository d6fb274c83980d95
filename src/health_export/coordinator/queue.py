from __future__ import annotations

from typing import Optional

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from ..errors import QueueStorageError
from ..models import ExportConfig, HealthData, OfflineQueueData, PendingExport
from ..storage import KeyValueStorage, StorageKeys
from ..utils import utc_now
from .policy import MAX_RETRY_COUNT


class QueueStore:
    """Durable FIFO of pending exports.

    Every operation loads the whole record, mutates it in memory and writes
    it back. Job volume is small, and a single in-flight processor is the
    only writer during a drain.
    """

    def __init__(self, storage: KeyValueStorage, key: str = StorageKeys.OFFLINE_EXPORT_QUEUE):
        self._storage = storage
        self._key = key

    async def add(
        self,
        health_data: HealthData,
        selected_tags: list[str],
        sync_date_range: Optional[list[str]] = None,
        *,
        last_error: Optional[str] = None,
        export_config: Optional[ExportConfig] = None,
    ) -> str:
        """Append a new entry; id, created_at and retry_count are generated."""
        data = await self._load()
        entry = PendingExport(
            health_data=health_data,
            selected_tags=list(selected_tags),
            sync_date_range=list(sync_date_range) if sync_date_range is not None else None,
            last_error=last_error,
            export_config=export_config,
        )
        data.pending.append(entry)
        await self._save(data)
        logger.info(f"[QueueStore] Added entry {entry.id}. Total: {len(data.pending)}")
        return entry.id

    async def remove(self, entry_id: str) -> None:
        data = await self._load()
        before = len(data.pending)
        data.pending = [e for e in data.pending if e.id != entry_id]
        await self._save(data)
        logger.info(
            f"[QueueStore] Removed entry {entry_id}. Before: {before}, After: {len(data.pending)}"
        )

    async def list(self) -> list[PendingExport]:
        """Pending entries, oldest first."""
        data = await self._load()
        return sorted(data.pending, key=lambda e: e.created_at)

    async def peek(self) -> Optional[PendingExport]:
        entries = await self.list()
        return entries[0] if entries else None

    async def count(self) -> int:
        return len((await self._load()).pending)

    async def increment_retry(self, entry_id: str, error: str) -> None:
        """Bump retry_count and record the error. Unknown ids are ignored."""
        data = await self._load()
        for entry in data.pending:
            if entry.id == entry_id:
                entry.retry_count += 1
                entry.last_error = error
                await self._save(data)
                logger.info(
                    f"[QueueStore] Entry {entry_id} retry count: "
                    f"{entry.retry_count}/{MAX_RETRY_COUNT}"
                )
                return
        logger.debug(f"[QueueStore] increment_retry: entry {entry_id} not found")

    async def clear(self) -> None:
        await self._save(OfflineQueueData())
        logger.info("[QueueStore] Queue cleared")

    # ---------- internals ----------

    async def _load(self) -> OfflineQueueData:
        raw = await self._storage.get_item(self._key)
        if not raw:
            return OfflineQueueData()
        try:
            return OfflineQueueData.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error(f"[QueueStore] Failed to load queue: {e}")
            raise QueueStorageError("Stored queue is corrupt", "CORRUPT_QUEUE", e) from e

    async def _save(self, data: OfflineQueueData) -> None:
        data.updated_at = utc_now()
        await self._storage.set_item(self._key, data.model_dump_json())
