from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence
from zoneinfo import ZoneInfo

from curtailment_watch.models import NormalizedRow, ProjectedInterval

LOCAL_DISPLAY_FORMAT = "%Y-%m-%dT%H:%M:%S"


def hour_ending_instant(row: NormalizedRow) -> datetime:
    """HE 1..23 -> same day at that hour; HE 24 -> next day at 00:00 (UTC)."""
    if row.hour_ending is None:
        raise ValueError("row has no hour_ending value")
    day = row.calendar_date
    instant = datetime(day.year, day.month, day.day, row.hour_ending % 24, tzinfo=timezone.utc)
    if row.hour_ending == 24:
        instant += timedelta(days=1)
    return instant


def explicit_instant(row: NormalizedRow) -> datetime:
    if row.explicit_instant is None:
        raise ValueError("row has no explicit_instant value")
    value = row.explicit_instant
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def row_instant(row: NormalizedRow) -> datetime:
    if row.hour_ending is not None:
        return hour_ending_instant(row)
    return explicit_instant(row)


def format_local(instant: datetime, timezone_name: str) -> str:
    return instant.astimezone(ZoneInfo(timezone_name)).strftime(LOCAL_DISPLAY_FORMAT)


def project(
    rows: Sequence[NormalizedRow],
    display_timezone: str | None = None,
) -> list[ProjectedInterval]:
    """Project normalized rows onto ascending UTC hour instants.

    Duplicate instants are kept and retain their input order. The display
    timezone only fills ``local_display``.
    """
    projected = [
        ProjectedInterval(
            instant_utc=instant,
            price=row.price,
            local_display=format_local(instant, display_timezone) if display_timezone else None,
        )
        for row, instant in ((row, row_instant(row)) for row in rows)
    ]
    # list.sort is stable.
    projected.sort(key=lambda interval: interval.instant_utc)
    return projected
