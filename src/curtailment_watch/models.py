from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


class ResolutionStrategy(str, Enum):
    explicit_timestamp = "explicit_timestamp"
    filename_timestamp_suffix = "filename_timestamp_suffix"
    positional_last = "positional_last"
    fallback_last = "fallback_last"


class FormatHint(str, Enum):
    delimited = "delimited"
    spreadsheet = "spreadsheet"


class RowShape(str, Enum):
    hour_ending = "hour_ending"
    explicit_timestamp = "explicit_timestamp"


def isoformat_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ArtifactDescriptor:
    display_text: str
    sequence_position: int
    bytes_ref: str
    embedded_timestamp: datetime | None = None


@dataclass(frozen=True)
class ResolvedArtifact:
    descriptor: ArtifactDescriptor
    strategy_used: ResolutionStrategy
    content: bytes
    file_name: str
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class NormalizedRow:
    calendar_date: date
    price: float
    hour_ending: int | None = None
    explicit_instant: datetime | None = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.price):
            raise ValueError(f"price must be finite, got {self.price!r}")
        if (self.hour_ending is None) == (self.explicit_instant is None):
            raise ValueError("exactly one of hour_ending/explicit_instant must be set")
        if self.hour_ending is not None and not 1 <= self.hour_ending <= 24:
            raise ValueError(f"hour_ending must be in [1, 24], got {self.hour_ending}")

    @property
    def shape(self) -> RowShape:
        if self.hour_ending is not None:
            return RowShape.hour_ending
        return RowShape.explicit_timestamp


@dataclass(frozen=True)
class ProjectedInterval:
    instant_utc: datetime
    price: float
    local_display: str | None = None

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "instant_utc": isoformat_utc(self.instant_utc),
            "price": self.price,
        }
        if self.local_display is not None:
            record["local_display"] = self.local_display
        return record


@dataclass(frozen=True)
class AlertSet:
    rows: tuple[ProjectedInterval, ...] = ()

    @property
    def count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class NotificationPayload:
    idempotency_key: str
    file_name: str
    file_sha256: str
    threshold: float
    comparator: str
    timezone_label: str
    sheet_label: str
    generated_at_utc: datetime
    window_start_utc: datetime
    window_end_utc: datetime
    window_policy: str
    strategy_used: ResolutionStrategy
    rows_evaluated: int
    flagged: tuple[ProjectedInterval, ...]
    raw_intervals: tuple[ProjectedInterval, ...]
    report_text: str
    inline_text: str
    source: str = "curtailment_watch"
    portal_reference: str | None = None
    interval_minutes: int = 60
    notes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def flagged_count(self) -> int:
        return len(self.flagged)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "idempotency_key": self.idempotency_key,
            "file_name": self.file_name,
            "file_sha256": self.file_sha256,
            "portal_reference": self.portal_reference,
            "threshold": self.threshold,
            "comparator": self.comparator,
            "timezone_label": self.timezone_label,
            "sheet_label": self.sheet_label,
            "generated_at_utc": isoformat_utc(self.generated_at_utc),
            "window_start_utc": isoformat_utc(self.window_start_utc),
            "window_end_utc": isoformat_utc(self.window_end_utc),
            "window_policy": self.window_policy,
            "strategy_used": self.strategy_used.value,
            "interval_minutes": self.interval_minutes,
            "rows_evaluated": self.rows_evaluated,
            "flagged_count": self.flagged_count,
            "flagged": [row.to_dict() for row in self.flagged],
            "raw_intervals": [row.to_dict() for row in self.raw_intervals],
            "report_text": self.report_text,
            "inline_text": self.inline_text,
            "notes": list(self.notes),
        }
