"""
Spreadsheet (grid) merge exporter.

One ``Health Data <year>`` spreadsheet per calendar year. Row 1 holds the
headers, data starts at row 2. The column set can grow (new exercise types);
headers are always rewritten before any row that depends on them.
"""

from __future__ import annotations

from typing import Iterable, Optional

from loguru import logger

from ..adapters.interfaces import SpreadsheetAdapter
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

DATA_START_ROW = 2


class SpreadsheetMergeExporter:
    def __init__(self, sheets: SpreadsheetAdapter) -> None:
        self._sheets = sheets

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

    async def export_pdf(self, spreadsheet_id: str) -> Result[str, AppError]:
        """Rendered printable snapshot as base64. Read-only."""
        result = await self._sheets.fetch_pdf(spreadsheet_id)
        if result.is_ok() and not result.unwrap():
            return Err(StorageError("Empty PDF received", "FETCH_PDF_FAILED"))
        return result

    async def _export_year(
        self, year_data: HealthData, year: int, folder_id: Optional[str], range_dates: list[str]
    ) -> Result[ExportedDocument, AppError]:
        name = export_file_name(year)

        found = await self._sheets.find_spreadsheet(name, folder_id)
        if found.is_err():
            return found
        spreadsheet_id = found.unwrap()

        if spreadsheet_id is None:
            formatted = format_health_data_to_rows(year_data, additional_dates=range_dates)
            created = await self._sheets.create_spreadsheet(name, formatted.headers, folder_id)
            if created.is_err():
                return created
            spreadsheet_id = created.unwrap()
            written = await self._write_rows(spreadsheet_id, merge_rows({}, formatted.rows))
            if written.is_err():
                return written
            logger.info(f"[Sheets Export] Created: {name} ({len(formatted.rows)} rows)")
            return Ok(ExportedDocument(year=year, file_id=spreadsheet_id, created=True))

        sheet = await self._sheets.get_sheet_data(spreadsheet_id)
        if sheet.is_err():
            return sheet
        existing = sheet.unwrap()

        formatted = format_health_data_to_rows(year_data, existing.headers, range_dates)
        if formatted.headers != existing.headers:
            grown = await self._sheets.update_headers(spreadsheet_id, formatted.headers)
            if grown.is_err():
                return grown
            if not grown.unwrap():
                return Err(StorageError(f"Failed to update headers of {name}", "UPDATE_HEADERS_FAILED"))
            logger.info(
                f"[Sheets Export] Headers grown: {len(existing.headers)} -> {len(formatted.headers)}"
            )

        stored = index_stored_rows(existing.rows, existing.headers, formatted.headers)
        written = await self._write_rows(spreadsheet_id, merge_rows(stored, formatted.rows))
        if written.is_err():
            return written
        logger.info(f"[Sheets Export] Updated: {name}")
        return Ok(ExportedDocument(year=year, file_id=spreadsheet_id))

    async def _write_rows(self, spreadsheet_id: str, rows: list[list[str]]) -> Result[bool, AppError]:
        if not rows:
            return Ok(True)
        result = await self._sheets.update_rows(spreadsheet_id, DATA_START_ROW, rows)
        if result.is_ok() and not result.unwrap():
            return Err(StorageError("Failed to write rows", "UPDATE_ROWS_FAILED"))
        return result
