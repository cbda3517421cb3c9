from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from curtailment_watch.alerts.window import Comparator, WindowPolicy, meets_threshold
from curtailment_watch.models import AlertSet, ProjectedInterval


@dataclass(frozen=True)
class Evaluation:
    considered: tuple[ProjectedInterval, ...]
    alerts: AlertSet
    window_start: datetime
    window_end: datetime
    window_label: str
    threshold: float
    comparator: Comparator

    def is_alert(self, row: ProjectedInterval) -> bool:
        return meets_threshold(row.price, self.threshold, self.comparator)


def evaluate(
    series: Sequence[ProjectedInterval],
    policy: WindowPolicy,
    threshold: float,
    comparator: Comparator,
    now: datetime | None = None,
) -> Evaluation:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    selection = policy.select(series, now)
    flagged = tuple(
        row for row in selection.rows if meets_threshold(row.price, threshold, comparator)
    )
    return Evaluation(
        considered=selection.rows,
        alerts=AlertSet(rows=flagged),
        window_start=selection.start,
        window_end=selection.end,
        window_label=policy.describe(),
        threshold=threshold,
        comparator=comparator,
    )
