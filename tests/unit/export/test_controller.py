"""
Unit tests for ExportController (single job attempt).
"""

import base64

import pytest

from health_export.adapters.interfaces import MIME_PDF
from health_export.errors import StorageError, ValidationError
from health_export.export.controller import ExportController, resolve_folder, upload_pdf
from health_export.export.results import PDF_FORMAT
from health_export.models import ExportConfig, ExportFormat, HealthData, PendingExport, TargetFolder


def config(*formats, pdf=False, folder=None):
    return ExportConfig(formats=list(formats), export_as_pdf=pdf, target_folder=folder or TargetFolder())


@pytest.mark.asyncio
async def test_attempt_filters_by_tags_and_dates(ctx, drive, health_data):
    job = PendingExport(
        health_data=health_data,
        selected_tags=["steps"],
        sync_date_range=["2025-01-02"],
        export_config=config(ExportFormat.CSV),
    )

    result = await ExportController(ctx).attempt(job)

    assert result.unwrap().success
    content = drive.content_of("Health_Data_2025.csv")
    lines = content.strip().split("\n")
    assert len(lines) == 2
    assert lines[1].startswith("2025-01-02,Thursday,7200,")
    assert "Running" not in lines[0]


@pytest.mark.asyncio
async def test_resync_blanks_range_dates_that_lost_data(ctx, drive, sheets):
    controller = ExportController(ctx)
    both = config(ExportFormat.SPREADSHEET, ExportFormat.CSV)
    first = HealthData.model_validate(
        {"steps": [{"date": "2025-01-01", "count": 1000}, {"date": "2025-01-02", "count": 2000}]}
    )
    second = HealthData.model_validate({"steps": [{"date": "2025-01-01", "count": 1500}]})

    await controller.execute(first, both)
    result = await controller.execute(second, both, ["2025-01-01", "2025-01-02"])

    assert result.unwrap().success
    lines = drive.content_of("Health_Data_2025.csv").strip().split("\n")
    assert lines[1].startswith("2025-01-01,Wednesday,1500,")
    assert lines[2].startswith("2025-01-02,Thursday,,")
    sheet_rows = sheets.by_name("Health Data 2025")["rows"]
    assert [r[2] for r in sheet_rows] == ["1500", ""]


@pytest.mark.asyncio
async def test_nothing_to_export_is_validation_error(ctx, health_data):
    job = PendingExport(health_data=health_data, selected_tags=["sleep"])

    result = await ExportController(ctx).attempt(job)

    assert result.is_err()
    assert isinstance(result.unwrap_err(), ValidationError)


@pytest.mark.asyncio
async def test_runs_every_enabled_format(ctx, drive, sheets, health_data):
    result = await ExportController(ctx).execute(
        health_data, config(ExportFormat.SPREADSHEET, ExportFormat.CSV, ExportFormat.JSON)
    )

    report = result.unwrap()
    assert report.success
    assert [r.format for r in report.results] == [
        ExportFormat.SPREADSHEET,
        ExportFormat.CSV,
        ExportFormat.JSON,
    ]
    assert sheets.by_name("Health Data 2025") is not None
    assert drive.content_of("Health_Data_2025.csv") is not None
    assert drive.content_of("Health_Data_2025.json") is not None


@pytest.mark.asyncio
async def test_one_failing_format_fails_attempt(ctx, drive, health_data):
    drive.fail["upload_file"] = StorageError("quota exceeded", "UPLOAD_FILE_FAILED")

    result = await ExportController(ctx).execute(
        health_data, config(ExportFormat.SPREADSHEET, ExportFormat.CSV)
    )

    report = result.unwrap()
    assert not report.success
    assert report.errors == ["csv: quota exceeded"]


@pytest.mark.asyncio
async def test_pdf_uploaded_per_spreadsheet(ctx, drive, sheets, health_data):
    result = await ExportController(ctx).execute(
        health_data, config(ExportFormat.SPREADSHEET, pdf=True)
    )

    report = result.unwrap()
    assert report.success
    assert [r.format for r in report.results] == [ExportFormat.SPREADSHEET, PDF_FORMAT]
    pdf = next(f for f in drive.files.values() if f["name"] == "Health_Data_2025.pdf")
    assert pdf["mime"] == MIME_PDF
    assert pdf["is_base64"] is True
    assert base64.b64decode(pdf["content"]).startswith(b"%PDF")


@pytest.mark.asyncio
async def test_default_config_from_preferences(ctx, drive, health_data):
    await ctx.preferences.save_export_formats([ExportFormat.JSON])

    result = await ExportController(ctx).execute(health_data)

    assert [r.format for r in result.unwrap().results] == [ExportFormat.JSON]


@pytest.mark.asyncio
async def test_folder_reused_when_present(drive):
    folder_id = (await drive.find_or_create_folder("Mine")).unwrap()

    result = await resolve_folder(drive, TargetFolder(id=folder_id, name="Mine"))

    assert result.unwrap() == folder_id
    assert len(drive.calls_to("find_or_create_folder")) == 1


@pytest.mark.asyncio
async def test_missing_folder_recreated_by_name(drive):
    result = await resolve_folder(drive, TargetFolder(id="gone", name="Exports"))

    assert result.unwrap() == drive.folders["Exports"]


@pytest.mark.asyncio
async def test_default_folder_name(drive):
    result = await resolve_folder(drive, TargetFolder())

    assert result.unwrap() == drive.folders[drive.default_folder_name]


@pytest.mark.asyncio
async def test_upload_pdf_updates_existing(drive):
    first = (await upload_pdf(drive, 2025, "JVBERg==", "f")).unwrap()
    second = (await upload_pdf(drive, 2025, "JVBERi0=", "f")).unwrap()

    assert first == second
    assert drive.files[first]["content"] == "JVBERi0="
