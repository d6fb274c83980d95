"""
Unit tests for the JSON document exporter.
"""

import json

import pytest

from health_export.adapters.interfaces import MIME_JSON
from health_export.export.json_doc import JsonMergeExporter, build_document, daily_records, parse_document
from health_export.models import HealthData

NAME = "Health_Data_2025.json"


def test_daily_records_group_by_date(health_data):
    records = daily_records(health_data)

    assert records["2025-01-01"] == {"date": "2025-01-01", "steps": 5000, "weight": 70.5}
    assert records["2025-01-02"]["exercise"] == [
        {"type": "Running", "durationMinutes": 30.0},
        {"type": "Running", "durationMinutes": 15.0},
    ]


def test_nutrition_keys_camel_cased():
    data = HealthData.model_validate(
        {"nutrition": [{"date": "2025-01-01", "calories": 1800, "total_fat": 60}]}
    )
    assert daily_records(data)["2025-01-01"]["nutrition"] == {"calories": 1800.0, "totalFat": 60.0}


def test_document_summary():
    doc = json.loads(build_document(2025, {"2025-02-01": {"date": "2025-02-01"}, "2025-01-01": {"date": "2025-01-01"}}))

    assert doc["year"] == 2025
    assert doc["summary"] == {
        "totalDays": 2,
        "dateRange": {"start": "2025-01-01", "end": "2025-02-01"},
    }
    assert [r["date"] for r in doc["records"]] == ["2025-01-01", "2025-02-01"]
    assert "exportedAt" not in doc


def test_parse_document_tolerates_garbage():
    assert parse_document("not json") == {}
    assert parse_document('{"records": "nope"}') == {}
    assert parse_document('{"records": [{"date": "bad"}, {"date": "2025-01-01", "steps": 1}]}') == {
        "2025-01-01": {"date": "2025-01-01", "steps": 1}
    }


@pytest.mark.asyncio
async def test_create_then_merge(drive, health_data):
    exporter = JsonMergeExporter(drive)
    await exporter.export(health_data, "folder-1")

    newer = HealthData.model_validate({"steps": [{"date": "2025-01-01", "count": 9000}]})
    await exporter.export(newer, "folder-1")

    doc = json.loads(drive.content_of(NAME))
    by_date = {r["date"]: r for r in doc["records"]}
    assert by_date["2025-01-01"] == {"date": "2025-01-01", "steps": 9000}
    assert "exercise" in by_date["2025-01-02"]
    assert drive.files[next(iter(drive.files))]["mime"] == MIME_JSON


@pytest.mark.asyncio
async def test_reexport_is_identical(drive, health_data):
    exporter = JsonMergeExporter(drive)
    for _ in range(3):
        await exporter.export(health_data, None)

    updates = drive.calls_to("update_file")
    assert updates[0][2] == updates[1][2]


@pytest.mark.asyncio
async def test_unparseable_stored_content_replaced(drive, health_data):
    exporter = JsonMergeExporter(drive)
    await exporter.export(health_data, None)
    file_id = next(iter(drive.files))
    drive.files[file_id]["content"] = "{corrupt"

    result = await exporter.export(health_data, None)

    assert result.is_ok()
    doc = json.loads(drive.content_of(NAME))
    assert doc["summary"]["totalDays"] == 2
