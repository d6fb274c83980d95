"""
Pydantic data models for the export engine.

HealthData is read-only once fetched; PendingExport and OfflineQueueData are
the persisted queue records.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from .utils import generate_id, utc_now

# Series names double as the "tags" a user selects for export.
ALL_DATA_TAGS = (
    "steps",
    "weight",
    "body_fat",
    "total_calories_burned",
    "basal_metabolic_rate",
    "sleep",
    "exercise",
    "nutrition",
)

SYNC_INTERVALS = (5, 60, 180, 360, 720, 1440, 2880, 4320)


class DatedRecord(BaseModel):
    """Any record keyed by a calendar date (YYYY-MM-DD)."""

    date: str

    @field_validator("date")
    @classmethod
    def _validate_date(cls, v: str) -> str:
        date.fromisoformat(v)
        return v

    @property
    def year(self) -> int:
        return int(self.date[:4])


class StepsRecord(DatedRecord):
    count: int
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class WeightRecord(DatedRecord):
    value: float
    unit: str = "kg"
    time: Optional[str] = None


class BodyFatRecord(DatedRecord):
    percentage: float
    time: Optional[str] = None


class CaloriesRecord(DatedRecord):
    value: float
    unit: str = "kcal"


class BasalMetabolicRateRecord(DatedRecord):
    value: float
    unit: str = "kcal/day"
    time: Optional[str] = None


class SleepRecord(DatedRecord):
    duration_minutes: float
    deep_sleep_percentage: Optional[float] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class ExerciseRecord(DatedRecord):
    type: str
    duration_minutes: float
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class NutritionRecord(DatedRecord):
    calories: Optional[float] = None
    protein: Optional[float] = None
    total_fat: Optional[float] = None
    total_carbohydrate: Optional[float] = None
    dietary_fiber: Optional[float] = None
    saturated_fat: Optional[float] = None


class HealthData(BaseModel):
    """Named metric series, each an ordered list of dated records."""

    steps: list[StepsRecord] = Field(default_factory=list)
    weight: list[WeightRecord] = Field(default_factory=list)
    body_fat: list[BodyFatRecord] = Field(default_factory=list)
    total_calories_burned: list[CaloriesRecord] = Field(default_factory=list)
    basal_metabolic_rate: list[BasalMetabolicRateRecord] = Field(default_factory=list)
    sleep: list[SleepRecord] = Field(default_factory=list)
    exercise: list[ExerciseRecord] = Field(default_factory=list)
    nutrition: list[NutritionRecord] = Field(default_factory=list)

    def series(self) -> Iterable[tuple[str, list[DatedRecord]]]:
        for tag in ALL_DATA_TAGS:
            yield tag, getattr(self, tag)

    def all_dates(self) -> set[str]:
        return {r.date for _, records in self.series() for r in records}

    def years(self) -> list[int]:
        return sorted({int(d[:4]) for d in self.all_dates()})

    def record_count(self) -> int:
        return sum(len(records) for _, records in self.series())

    def non_empty_tags(self) -> list[str]:
        return [tag for tag, records in self.series() if records]

    def filter_by_tags(self, tags: Iterable[str]) -> "HealthData":
        """Copy with unselected series emptied."""
        selected = set(tags)
        return HealthData(
            **{tag: list(records) if tag in selected else [] for tag, records in self.series()}
        )

    def filter_by_dates(self, dates: Iterable[str]) -> "HealthData":
        keep = set(dates)
        return HealthData(
            **{tag: [r for r in records if r.date in keep] for tag, records in self.series()}
        )

    def filter_by_year(self, year: int) -> "HealthData":
        return HealthData(
            **{tag: [r for r in records if r.year == year] for tag, records in self.series()}
        )


class ExportFormat(str, Enum):
    SPREADSHEET = "googleSheets"
    CSV = "csv"
    JSON = "json"


class TargetFolder(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class ExportConfig(BaseModel):
    """Which formats to write and where. Stored with each job."""

    formats: list[ExportFormat] = Field(default_factory=lambda: [ExportFormat.SPREADSHEET])
    export_as_pdf: bool = False
    target_folder: TargetFolder = Field(default_factory=TargetFolder)


class PendingExport(BaseModel):
    """One deferred export attempt."""

    id: str = Field(default_factory=generate_id)
    created_at: datetime = Field(default_factory=utc_now)
    health_data: HealthData
    selected_tags: list[str]
    sync_date_range: Optional[list[str]] = None
    retry_count: int = 0
    last_error: Optional[str] = None
    export_config: Optional[ExportConfig] = None


class OfflineQueueData(BaseModel):
    pending: list[PendingExport] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)


class ExportOutcome(BaseModel):
    """Summary of one queue drain."""

    success_count: int = 0
    fail_count: int = 0
    skipped_count: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.success_count + self.fail_count + self.skipped_count


class AutoSyncConfig(BaseModel):
    enabled: bool = False
    interval_minutes: int = 1440
    wifi_only: bool = True

    @field_validator("interval_minutes")
    @classmethod
    def _validate_interval(cls, v: int) -> int:
        if v not in SYNC_INTERVALS:
            raise ValueError(f"Invalid sync interval: {v}. Must be one of {SYNC_INTERVALS}")
        return v
