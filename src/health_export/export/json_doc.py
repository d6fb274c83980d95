"""
JSON document exporter.

One ``Health_Data_<year>.json`` per year holding one record per date, merged
by date like the other exporters. The document carries no wall-clock
timestamp so identical input re-exports identically.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from loguru import logger

from ..adapters.interfaces import MIME_JSON, FileOperations
from ..errors import AppError, StorageError
from ..models import HealthData
from ..result import Err, Ok, Result
from .results import ExportedDocument
from .rows import export_file_name, is_date_key


def daily_records(health_data: HealthData) -> dict[str, dict[str, Any]]:
    records: dict[str, dict[str, Any]] = {}

    def record(date_key: str) -> dict[str, Any]:
        return records.setdefault(date_key, {"date": date_key})

    for d in health_data.steps:
        record(d.date)["steps"] = d.count
    for d in health_data.weight:
        record(d.date)["weight"] = d.value
    for d in health_data.body_fat:
        record(d.date)["bodyFat"] = d.percentage
    for d in health_data.total_calories_burned:
        record(d.date)["totalCaloriesBurned"] = d.value
    for d in health_data.basal_metabolic_rate:
        record(d.date)["basalMetabolicRate"] = d.value
    for d in health_data.sleep:
        sleep = {"durationMinutes": d.duration_minutes}
        if d.deep_sleep_percentage is not None:
            sleep["deepSleepPercentage"] = d.deep_sleep_percentage
        record(d.date)["sleep"] = sleep
    for d in health_data.nutrition:
        nutrition = d.model_dump(exclude={"date"}, exclude_none=True)
        record(d.date)["nutrition"] = {_camel(k): v for k, v in nutrition.items()}
    for d in health_data.exercise:
        record(d.date).setdefault("exercise", []).append(
            {"type": d.type, "durationMinutes": d.duration_minutes}
        )
    return records


def build_document(year: int, records: dict[str, dict[str, Any]]) -> str:
    ordered = [records[k] for k in sorted(records)]
    doc = {
        "year": year,
        "dataType": "HealthData",
        "description": "Health data exported for AI analysis",
        "summary": {
            "totalDays": len(ordered),
            "dateRange": {
                "start": ordered[0]["date"] if ordered else "N/A",
                "end": ordered[-1]["date"] if ordered else "N/A",
            },
        },
        "records": ordered,
    }
    return json.dumps(doc, indent=2, ensure_ascii=False) + "\n"


def parse_document(content: str) -> dict[str, dict[str, Any]]:
    """Stored records keyed by date; unreadable content yields nothing."""
    try:
        data = json.loads(content)
    except ValueError:
        logger.warning("[JSON Export] Failed to parse existing file, starting fresh")
        return {}
    stored = data.get("records") if isinstance(data, dict) else None
    if not isinstance(stored, list):
        return {}
    return {
        r["date"]: r
        for r in stored
        if isinstance(r, dict) and isinstance(r.get("date"), str) and is_date_key(r["date"])
    }


class JsonMergeExporter:
    def __init__(self, file_ops: FileOperations) -> None:
        self._files = file_ops

    async def export(
        self, health_data: HealthData, folder_id: Optional[str] = None
    ) -> Result[list[ExportedDocument], AppError]:
        written = []
        for year in health_data.years():
            name = export_file_name(year, "json", underscore=True)
            incoming = daily_records(health_data.filter_by_year(year))

            found = await self._files.find_file(name, MIME_JSON, folder_id)
            if found.is_err():
                return found
            existing = found.unwrap()

            if existing is None:
                uploaded = await self._files.upload_file(
                    build_document(year, incoming), name, MIME_JSON, folder_id
                )
                if uploaded.is_err():
                    return uploaded
                logger.info(f"[JSON Export] Created: {name}")
                written.append(ExportedDocument(year=year, file_id=uploaded.unwrap(), created=True))
                continue

            downloaded = await self._files.download_file_content(existing.id)
            if downloaded.is_err():
                return downloaded
            merged = {**parse_document(downloaded.unwrap()), **incoming}

            updated = await self._files.update_file(existing.id, build_document(year, merged), MIME_JSON)
            if updated.is_err():
                return updated
            if not updated.unwrap():
                return Err(StorageError(f"Failed to update {name}", "UPDATE_FILE_FAILED"))
            logger.info(f"[JSON Export] Updated: {name}")
            written.append(ExportedDocument(year=year, file_id=existing.id))
        return Ok(written)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)
