from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Sequence, Union

from curtailment_watch.config import WindowConfig
from curtailment_watch.models import ProjectedInterval

Comparator = Literal[">=", ">"]
COMPARATORS: tuple[Comparator, ...] = (">=", ">")


def meets_threshold(price: float, threshold: float, comparator: Comparator) -> bool:
    if comparator == ">=":
        return price >= threshold
    if comparator == ">":
        return price > threshold
    raise ValueError(f"Unsupported comparator: {comparator}")


@dataclass(frozen=True)
class WindowSelection:
    rows: tuple[ProjectedInterval, ...]
    start: datetime
    end: datetime


@dataclass(frozen=True)
class RowCountWindow:
    rows: int

    def __post_init__(self) -> None:
        if self.rows < 1:
            raise ValueError(f"row count window must be >= 1, got {self.rows}")

    def describe(self) -> str:
        return f"first {self.rows}"

    def select(self, series: Sequence[ProjectedInterval], now: datetime) -> WindowSelection:
        selected = tuple(series[: self.rows])
        if not selected:
            return WindowSelection(rows=(), start=now, end=now)
        return WindowSelection(
            rows=selected,
            start=selected[0].instant_utc,
            end=selected[-1].instant_utc,
        )


@dataclass(frozen=True)
class TimeLookaheadWindow:
    hours: float

    def __post_init__(self) -> None:
        if self.hours <= 0:
            raise ValueError(f"lookahead window must be positive, got {self.hours}")

    def describe(self) -> str:
        return f"next {self.hours:g}h"

    def select(self, series: Sequence[ProjectedInterval], now: datetime) -> WindowSelection:
        end = now + timedelta(hours=self.hours)
        selected = tuple(row for row in series if now <= row.instant_utc <= end)
        return WindowSelection(rows=selected, start=now, end=end)


WindowPolicy = Union[RowCountWindow, TimeLookaheadWindow]


def window_policy_from_config(config: WindowConfig) -> WindowPolicy:
    if config.policy == "row_count":
        return RowCountWindow(rows=config.row_count)
    return TimeLookaheadWindow(hours=config.lookahead_hours)
