"""
Flat-file (CSV) merge exporter.

One ``Health_Data_<year>.csv`` per calendar year in the target folder.
Stored rows are merged with new rows by date (new wins for the whole row)
and the full table is written back, so exporting the same data twice
produces byte-identical content.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable, Optional, Sequence

from loguru import logger

from ..adapters.interfaces import MIME_CSV, FileOperations
from ..errors import AppError, StorageError
from ..models import HealthData
from ..result import Err, Ok, Result
from .results import ExportedDocument
from .rows import (
    dates_in_year,
    export_file_name,
    format_health_data_to_rows,
    index_stored_rows,
    merge_rows,
)


def parse_csv(content: str) -> tuple[list[str], list[list[str]]]:
    """Split stored content into (header, data rows), ignoring blank lines."""
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
    records = [row for row in reader if any(cell.strip() for cell in row)]
    if not records:
        return [], []
    return records[0], records[1:]


def serialize_csv(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue()


class TabularMergeExporter:
    def __init__(self, file_ops: FileOperations) -> None:
        self._files = file_ops

    async def export(
        self,
        health_data: HealthData,
        folder_id: Optional[str] = None,
        date_keys: Optional[Iterable[str]] = None,
    ) -> Result[list[ExportedDocument], AppError]:
        """Merge every year present in ``health_data``.

        ``date_keys`` in a written year get a row even without data.
        """
        keys = list(date_keys) if date_keys is not None else None
        written: list[ExportedDocument] = []
        for year in health_data.years():
            result = await self._export_year(
                health_data.filter_by_year(year), year, folder_id, dates_in_year(keys, year)
            )
            if result.is_err():
                return result
            written.append(result.unwrap())
        return Ok(written)

    async def _export_year(
        self, year_data: HealthData, year: int, folder_id: Optional[str], range_dates: list[str]
    ) -> Result[ExportedDocument, AppError]:
        name = export_file_name(year, "csv", underscore=True)

        found = await self._files.find_file(name, MIME_CSV, folder_id)
        if found.is_err():
            return found
        existing = found.unwrap()

        if existing is None:
            formatted = format_health_data_to_rows(year_data, additional_dates=range_dates)
            content = serialize_csv(formatted.headers, merge_rows({}, formatted.rows))
            uploaded = await self._files.upload_file(content, name, MIME_CSV, folder_id)
            if uploaded.is_err():
                return uploaded
            logger.info(f"[CSV Export] Created: {name}")
            return Ok(ExportedDocument(year=year, file_id=uploaded.unwrap(), created=True))

        downloaded = await self._files.download_file_content(existing.id)
        if downloaded.is_err():
            return downloaded
        old_headers, old_rows = parse_csv(downloaded.unwrap())

        formatted = format_health_data_to_rows(year_data, old_headers, range_dates)
        stored = index_stored_rows(old_rows, old_headers, formatted.headers)
        content = serialize_csv(formatted.headers, merge_rows(stored, formatted.rows))

        updated = await self._files.update_file(existing.id, content, MIME_CSV)
        if updated.is_err():
            return updated
        if not updated.unwrap():
            return Err(StorageError(f"Failed to update {name}", "UPDATE_FILE_FAILED"))
        logger.info(f"[CSV Export] Updated: {name} ({len(stored)} stored rows)")
        return Ok(ExportedDocument(year=year, file_id=existing.id))
