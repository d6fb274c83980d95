"""
Export controller: one attempt at writing a payload to every enabled format.

The attempt succeeds only if every invoked exporter succeeds. Per-format
outcomes are collected in an ``ExportReport`` so callers can log which
format failed; the queue processor turns a failed report into one retry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

from loguru import logger

from ..adapters.auth import AccessToken, refresh_if_needed
from ..adapters.interfaces import MIME_PDF, FileOperations
from ..errors import AppError, StorageError, ValidationError
from ..metrics import metrics_registry
from ..models import ExportConfig, ExportFormat, HealthData, PendingExport, TargetFolder
from ..result import Err, Ok, Result
from .json_doc import JsonMergeExporter
from .results import PDF_FORMAT, ExportedDocument, ExportReport, FormatResult
from .rows import export_file_name
from .sheets import SpreadsheetMergeExporter
from .tabular import TabularMergeExporter

if TYPE_CHECKING:
    from ..context import ServiceContext


async def resolve_folder(files: FileOperations, target: TargetFolder) -> Result[str, AppError]:
    """Configured folder if it still exists, else find-or-create by name."""
    if target.id:
        exists = await files.check_folder_exists(target.id)
        if exists.is_err():
            return exists
        if exists.unwrap():
            return Ok(target.id)
        logger.warning(f"[Export] Configured folder {target.id} no longer exists, recreating")
    return await files.find_or_create_folder(target.name or files.default_folder_name)


async def upload_pdf(
    files: FileOperations, year: int, pdf_base64: str, folder_id: Optional[str]
) -> Result[str, AppError]:
    """Create or replace ``Health_Data_<year>.pdf``."""
    name = export_file_name(year, "pdf", underscore=True)
    found = await files.find_file(name, MIME_PDF, folder_id)
    if found.is_err():
        return found
    existing = found.unwrap()
    if existing is None:
        return await files.upload_file(pdf_base64, name, MIME_PDF, folder_id, is_base64=True)

    updated = await files.update_file(existing.id, pdf_base64, MIME_PDF, is_base64=True)
    if updated.is_err():
        return updated
    if not updated.unwrap():
        return Err(StorageError(f"Failed to update {name}", "UPDATE_FILE_FAILED"))
    return Ok(existing.id)


class ExportController:
    def __init__(self, ctx: "ServiceContext") -> None:
        self._ctx = ctx

    async def attempt(
        self, job: PendingExport, token: Optional[AccessToken] = None
    ) -> Result[ExportReport, AppError]:
        """Run one queued job with its stored tags, date range and config."""
        data = job.health_data.filter_by_tags(job.selected_tags)
        return await self.execute(data, job.export_config, job.sync_date_range, token=token)

    async def execute(
        self,
        health_data: HealthData,
        config: Optional[ExportConfig] = None,
        date_keys: Optional[Iterable[str]] = None,
        *,
        token: Optional[AccessToken] = None,
    ) -> Result[ExportReport, AppError]:
        if date_keys is not None:
            date_keys = list(date_keys)
            health_data = health_data.filter_by_dates(date_keys)
        if health_data.record_count() == 0:
            return Err(ValidationError("No health data to export", "NO_DATA"))

        if config is None:
            config = await self._ctx.preferences.load_export_config()
        formats = list(dict.fromkeys(config.formats))
        if not formats:
            return Err(ValidationError("No export format selected", "NO_FORMAT"))

        refreshed = await refresh_if_needed(self._ctx.tokens, token)
        if refreshed.is_err():
            return refreshed
        token = refreshed.unwrap()
        files = self._ctx.file_ops_factory(token)
        sheets = self._ctx.sheets_factory(token)

        folder = await resolve_folder(files, config.target_folder)
        if folder.is_err():
            return folder
        folder_id = folder.unwrap()

        report = ExportReport(folder_id=folder_id)
        logger.info(
            f"[Export] Exporting {health_data.record_count()} records "
            f"as {[f.value for f in formats]} to folder {folder_id}"
        )

        for fmt in formats:
            if fmt == ExportFormat.SPREADSHEET:
                exporter = SpreadsheetMergeExporter(sheets)
                written = await exporter.export(health_data, folder_id, date_keys)
                self._record(report, fmt, written)
                if written.is_ok() and config.export_as_pdf:
                    for doc in written.unwrap():
                        await self._export_pdf(report, exporter, files, doc, folder_id)
            elif fmt == ExportFormat.CSV:
                written = await TabularMergeExporter(files).export(
                    health_data, folder_id, date_keys
                )
                self._record(report, fmt, written)
            elif fmt == ExportFormat.JSON:
                written = await JsonMergeExporter(files).export(health_data, folder_id)
                self._record(report, fmt, written)

        if report.success:
            logger.info(f"[Export] Completed {len(report.results)} format result(s)")
        else:
            logger.warning(f"[Export] Completed with errors: {report.error_message}")
        return Ok(report)

    async def _export_pdf(
        self,
        report: ExportReport,
        exporter: SpreadsheetMergeExporter,
        files: FileOperations,
        doc: ExportedDocument,
        folder_id: Optional[str],
    ) -> None:
        pdf = await exporter.export_pdf(doc.file_id)
        if pdf.is_ok():
            uploaded = await upload_pdf(files, doc.year, pdf.unwrap(), folder_id)
        else:
            uploaded = pdf
        written = uploaded.map(lambda file_id: [ExportedDocument(year=doc.year, file_id=file_id)])
        self._record(report, PDF_FORMAT, written)

    @staticmethod
    def _record(report: ExportReport, fmt, written: Result) -> None:
        label = fmt.value if isinstance(fmt, ExportFormat) else fmt
        if written.is_ok():
            docs = written.unwrap()
            file_id = docs[-1].file_id if docs else None
            report.results.append(FormatResult(format=fmt, success=True, file_id=file_id))
            metrics_registry.format_total.labels(format=label, outcome="success").inc()
        else:
            error = written.unwrap_err()
            logger.error(f"[Export] {label} failed: {error}")
            report.results.append(FormatResult(format=fmt, success=False, error=error.message))
            metrics_registry.format_total.labels(format=label, outcome="failed").inc()
