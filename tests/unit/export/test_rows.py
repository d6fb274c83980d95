"""
Unit tests for shared row formatting.
"""

import pytest

from health_export.export.rows import (
    FIXED_HEADERS,
    build_headers,
    dates_in_year,
    export_file_name,
    format_cell,
    format_health_data_to_rows,
    index_stored_rows,
    is_date_key,
    merge_rows,
)
from health_export.models import HealthData


def test_headers_are_fixed_plus_sorted_exercise_types():
    data = HealthData.model_validate(
        {
            "exercise": [
                {"date": "2025-03-01", "type": "Yoga", "duration_minutes": 20},
                {"date": "2025-03-01", "type": "Cycling", "duration_minutes": 40},
            ]
        }
    )
    headers = build_headers(data, FIXED_HEADERS + ["Exercise: Swimming (min)"])

    assert headers[: len(FIXED_HEADERS)] == FIXED_HEADERS
    assert headers[len(FIXED_HEADERS) :] == [
        "Exercise: Cycling (min)",
        "Exercise: Swimming (min)",
        "Exercise: Yoga (min)",
    ]


def test_format_rows(health_data):
    formatted = format_health_data_to_rows(health_data)

    assert list(formatted.rows) == ["2025-01-01", "2025-01-02"]
    first = formatted.rows["2025-01-01"]
    assert first[:4] == ["2025-01-01", "Wednesday", 5000, 70.5]

    second = formatted.rows["2025-01-02"]
    headers = formatted.headers
    assert second[headers.index("Day of Week")] == "Thursday"
    assert second[headers.index("Exercise: Total (min)")] == 45
    assert second[headers.index("Exercise: Running (min)")] == 45
    assert len(second) == len(headers)


def test_sleep_hours_rounded():
    data = HealthData.model_validate(
        {"sleep": [{"date": "2025-05-05", "duration_minutes": 455, "deep_sleep_percentage": 18.5}]}
    )
    row = format_health_data_to_rows(data).rows["2025-05-05"]

    assert row[FIXED_HEADERS.index("Sleep (hours)")] == 7.58
    assert row[FIXED_HEADERS.index("Deep Sleep (%)")] == 18.5


def test_additional_dates_get_blank_rows(health_data):
    formatted = format_health_data_to_rows(health_data, additional_dates=["2025-01-03", "2025-01-01"])

    assert list(formatted.rows) == ["2025-01-01", "2025-01-02", "2025-01-03"]
    blank = formatted.rows["2025-01-03"]
    assert blank[:2] == ["2025-01-03", "Friday"]
    assert all(cell is None for cell in blank[2:])
    assert formatted.rows["2025-01-01"][2] == 5000


def test_dates_in_year():
    keys = ["2024-12-31", "2025-01-01", "2025-02-30", "2025-01-02"]
    assert dates_in_year(keys, 2025) == ["2025-01-01", "2025-01-02"]
    assert dates_in_year(keys, 2024) == ["2024-12-31"]
    assert dates_in_year(None, 2025) == []


@pytest.mark.parametrize(
    "value,expected",
    [(None, ""), (5000, "5000"), (45.0, "45"), (70.5, "70.5"), ("Monday", "Monday")],
)
def test_format_cell(value, expected):
    assert format_cell(value) == expected


def test_is_date_key():
    assert is_date_key("2025-01-31")
    assert not is_date_key("Date")
    assert not is_date_key("")


def test_export_file_name():
    assert export_file_name(2025) == "Health Data 2025"
    assert export_file_name(2025, "csv", underscore=True) == "Health_Data_2025.csv"


def test_stored_rows_realigned_by_column_name():
    """A stored row moves with its column when new columns are inserted."""
    old_headers = FIXED_HEADERS + ["Exercise: Yoga (min)"]
    new_headers = FIXED_HEADERS + ["Exercise: Cycling (min)", "Exercise: Yoga (min)"]
    stored = ["2025-02-01", "stale", "1200"] + [""] * (len(FIXED_HEADERS) - 3) + ["25"]

    indexed = index_stored_rows([stored, ["", "junk"]], old_headers, new_headers)

    row = indexed["2025-02-01"]
    assert list(indexed) == ["2025-02-01"]
    assert row[1] == "Saturday"
    assert row[2] == "1200"
    assert row[new_headers.index("Exercise: Cycling (min)")] == ""
    assert row[new_headers.index("Exercise: Yoga (min)")] == "25"


def test_merge_new_row_wins_and_sorted():
    existing = {"2025-01-03": ["2025-01-03", "Friday", "10"], "2025-01-01": ["2025-01-01", "Wednesday", "1000"]}
    incoming = {"2025-01-01": ["2025-01-01", "Wednesday", 5000]}

    merged = merge_rows(existing, incoming)

    assert merged == [["2025-01-01", "Wednesday", "5000"], ["2025-01-03", "Friday", "10"]]
