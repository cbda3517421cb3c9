from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from curtailment_watch.models import NormalizedRow
from curtailment_watch.preprocess.time import hour_ending_instant, project

UTC = timezone.utc


@pytest.mark.parametrize("hour_ending", range(1, 24))
def test_hour_ending_one_to_twenty_three_stays_on_same_day(hour_ending: int) -> None:
    row = NormalizedRow(calendar_date=date(2025, 8, 10), hour_ending=hour_ending, price=1.0)
    assert hour_ending_instant(row) == datetime(2025, 8, 10, hour_ending, tzinfo=UTC)


@pytest.mark.parametrize(
    ("calendar_date", "expected"),
    [
        (date(2025, 8, 10), datetime(2025, 8, 11, 0, tzinfo=UTC)),
        (date(2025, 8, 31), datetime(2025, 9, 1, 0, tzinfo=UTC)),
        (date(2025, 12, 31), datetime(2026, 1, 1, 0, tzinfo=UTC)),
        (date(2024, 2, 28), datetime(2024, 2, 29, 0, tzinfo=UTC)),
    ],
)
def test_hour_ending_twenty_four_rolls_to_next_day_midnight(
    calendar_date: date, expected: datetime
) -> None:
    row = NormalizedRow(calendar_date=calendar_date, hour_ending=24, price=1.0)
    assert hour_ending_instant(row) == expected


def test_project_truncates_explicit_instants_and_normalizes_to_utc() -> None:
    chicago = ZoneInfo("America/Chicago")
    rows = [
        NormalizedRow(
            calendar_date=date(2025, 8, 10),
            explicit_instant=datetime(2025, 8, 10, 4, 45, 12, tzinfo=chicago),
            price=10.0,
        ),
        NormalizedRow(
            calendar_date=date(2025, 8, 10),
            explicit_instant=datetime(2025, 8, 10, 7, 59, 59),
            price=11.0,
        ),
    ]

    projected = project(rows)

    assert [interval.instant_utc for interval in projected] == [
        datetime(2025, 8, 10, 7, tzinfo=UTC),
        datetime(2025, 8, 10, 9, tzinfo=UTC),
    ]
    assert projected[0].price == 11.0


def test_project_sorts_stably_and_keeps_duplicates() -> None:
    rows = [
        NormalizedRow(calendar_date=date(2025, 8, 11), hour_ending=1, price=1.0),
        NormalizedRow(calendar_date=date(2025, 8, 10), hour_ending=24, price=2.0),
        NormalizedRow(calendar_date=date(2025, 8, 10), hour_ending=23, price=3.0),
        NormalizedRow(calendar_date=date(2025, 8, 11), hour_ending=1, price=4.0),
    ]

    projected = project(rows)

    assert [interval.price for interval in projected] == [3.0, 2.0, 1.0, 4.0]
    instants = [interval.instant_utc for interval in projected]
    assert instants == sorted(instants)
    assert instants[2] == instants[3]
    assert instants[1] - instants[0] == timedelta(hours=1)


def test_project_local_display_is_display_only() -> None:
    rows = [NormalizedRow(calendar_date=date(2025, 8, 10), hour_ending=6, price=1.0)]

    projected = project(rows, display_timezone="America/Chicago")

    assert projected[0].instant_utc == datetime(2025, 8, 10, 6, tzinfo=UTC)
    assert projected[0].local_display == "2025-08-10T01:00:00"
    assert project(rows)[0].local_display is None


def test_normalized_row_rejects_invalid_shapes() -> None:
    with pytest.raises(ValueError):
        NormalizedRow(calendar_date=date(2025, 8, 10), hour_ending=25, price=1.0)
    with pytest.raises(ValueError):
        NormalizedRow(calendar_date=date(2025, 8, 10), price=1.0)
    with pytest.raises(ValueError):
        NormalizedRow(calendar_date=date(2025, 8, 10), hour_ending=1, price=float("nan"))
