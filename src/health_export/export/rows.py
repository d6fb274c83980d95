"""
Row formatting shared by the tabular and spreadsheet exporters.

A row is one calendar date. Columns are a fixed block followed by one
``Exercise: <type> (min)`` column per exercise type ever seen in the
document, sorted by type name.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from ..adapters.interfaces import Cell
from ..models import HealthData
from ..utils import day_of_week

FIXED_HEADERS = [
    "Date",
    "Day of Week",
    "Steps",
    "Weight (kg)",
    "Body Fat (%)",
    "Calories Burned (kcal)",
    "BMR (kcal/day)",
    "Sleep (hours)",
    "Deep Sleep (%)",
    "Calories (kcal)",
    "Protein (g)",
    "Total Fat (g)",
    "Total Carbs (g)",
    "Fiber (g)",
    "Saturated Fat (g)",
    "Exercise: Total (min)",
]

_EXERCISE_HEADER = re.compile(r"^Exercise: (.+) \(min\)$")


def exercise_header(exercise_type: str) -> str:
    return f"Exercise: {exercise_type} (min)"


def exercise_types_in(headers: Iterable[str]) -> set[str]:
    types = set()
    for h in headers:
        m = _EXERCISE_HEADER.match(h)
        if m and m.group(1) != "Total":
            types.add(m.group(1))
    return types


def build_headers(health_data: HealthData, existing_headers: Sequence[str] = ()) -> list[str]:
    """Fixed headers plus the union of stored and new exercise columns."""
    types = exercise_types_in(existing_headers) | {e.type for e in health_data.exercise}
    return FIXED_HEADERS + [exercise_header(t) for t in sorted(types)]


def export_file_name(year: int, extension: Optional[str] = None, underscore: bool = False) -> str:
    """``Health Data 2025`` for spreadsheets, ``Health_Data_2025.csv`` for files."""
    base = f"Health_Data_{year}" if underscore else f"Health Data {year}"
    return f"{base}.{extension}" if extension else base


@dataclass
class FormattedRows:
    headers: list[str]
    rows: dict[str, list[Cell]]  # date key -> row, in date order


def format_health_data_to_rows(
    health_data: HealthData,
    existing_headers: Sequence[str] = (),
    additional_dates: Iterable[str] = (),
) -> FormattedRows:
    """One row per date with data, plus a row for each of ``additional_dates``.

    Additional dates without data produce blank rows, so a merge overwrites
    whatever the document previously held for them.
    """
    headers = build_headers(health_data, existing_headers)
    dynamic_columns = headers[len(FIXED_HEADERS):]

    steps = {d.date: d.count for d in health_data.steps}
    weight = {d.date: d.value for d in health_data.weight}
    body_fat = {d.date: d.percentage for d in health_data.body_fat}
    calories = {d.date: d.value for d in health_data.total_calories_burned}
    bmr = {d.date: d.value for d in health_data.basal_metabolic_rate}
    sleep = {d.date: d for d in health_data.sleep}
    nutrition = {d.date: d for d in health_data.nutrition}

    exercise: dict[str, dict[str, float]] = defaultdict(dict)
    for e in health_data.exercise:
        day = exercise[e.date]
        day[exercise_header(e.type)] = day.get(exercise_header(e.type), 0) + e.duration_minutes

    rows: dict[str, list[Cell]] = {}
    dates = health_data.all_dates() | {d for d in additional_dates if is_date_key(d)}
    for date_key in sorted(dates):
        s = sleep.get(date_key)
        n = nutrition.get(date_key)
        day_ex = exercise.get(date_key)
        total_exercise = sum(day_ex.values()) if day_ex else None

        row: list[Cell] = [
            date_key,
            day_of_week(date_key),
            steps.get(date_key),
            weight.get(date_key),
            body_fat.get(date_key),
            calories.get(date_key),
            bmr.get(date_key),
            round(s.duration_minutes / 60, 2) if s and s.duration_minutes else None,
            s.deep_sleep_percentage if s else None,
            n.calories if n else None,
            n.protein if n else None,
            n.total_fat if n else None,
            n.total_carbohydrate if n else None,
            n.dietary_fiber if n else None,
            n.saturated_fat if n else None,
            total_exercise,
        ]
        row.extend(day_ex.get(h) if day_ex else None for h in dynamic_columns)
        rows[date_key] = row

    return FormattedRows(headers=headers, rows=rows)


def format_cell(value: Cell) -> str:
    """Canonical text for a cell; integral floats lose their ``.0``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def is_date_key(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        return False
    return len(value) == 10


def index_stored_rows(
    rows: Iterable[Sequence[str]], old_headers: Sequence[str], new_headers: Sequence[str]
) -> dict[str, list[str]]:
    """Stored rows keyed by date, realigned to ``new_headers``. Non-date rows are dropped."""
    indexed = {}
    for row in rows:
        if row and is_date_key(row[0]):
            indexed[row[0]] = realign_row(row, old_headers, new_headers)
    return indexed


def realign_row(
    row: Sequence[str], old_headers: Sequence[str], new_headers: Sequence[str]
) -> list[str]:
    """Move a stored row into the positions of ``new_headers`` by column name.

    The date stays in the first column and the weekday is recomputed from it.
    """
    by_name = {h: str(row[i]) if i < len(row) else "" for i, h in enumerate(old_headers)}
    realigned = [by_name.get(h, "") for h in new_headers]
    realigned[0] = row[0]
    realigned[1] = day_of_week(row[0])
    return realigned


def merge_rows(
    existing: dict[str, list[str]], incoming: dict[str, list[Cell]]
) -> list[list[str]]:
    """Incoming rows replace stored rows with the same date; result sorted by date."""
    merged = dict(existing)
    for date_key, row in incoming.items():
        merged[date_key] = [format_cell(v) for v in row]
    return [merged[k] for k in sorted(merged)]


def dates_in_year(date_keys: Optional[Iterable[str]], year: int) -> list[str]:
    """The valid date keys of ``date_keys`` that fall in ``year``."""
    if date_keys is None:
        return []
    prefix = f"{year:04d}-"
    return [d for d in date_keys if d.startswith(prefix) and is_date_key(d)]
