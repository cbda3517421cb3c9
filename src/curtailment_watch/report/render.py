from __future__ import annotations

from datetime import date

from curtailment_watch.alerts.evaluate import Evaluation
from curtailment_watch.models import AlertSet, ProjectedInterval

ALERT_MARKER = " ⚠️"
INLINE_ARROW = "→"


def _hour_label(row: ProjectedInterval) -> str:
    return f"{row.instant_utc.hour:02d}:00"


def _price_label(price: float) -> str:
    return f"{price:.2f}"


def group_by_date(
    rows: tuple[ProjectedInterval, ...] | list[ProjectedInterval],
) -> dict[date, list[ProjectedInterval]]:
    # dict preserves first-appearance order of each date.
    grouped: dict[date, list[ProjectedInterval]] = {}
    for row in rows:
        grouped.setdefault(row.instant_utc.date(), []).append(row)
    return grouped


def render_summary_line(evaluation: Evaluation) -> str:
    count = evaluation.alerts.count
    noun = "hour requires" if count == 1 else "hours require"
    return (
        f"{count} {noun} curtailment on the forecasted prices ({evaluation.window_label})."
    )


def render_report(evaluation: Evaluation, *, file_name: str | None = None) -> str:
    lines: list[str] = []
    if file_name:
        lines.append(f"file: {file_name}")
    lines.append(render_summary_line(evaluation))
    for day, rows in group_by_date(evaluation.considered).items():
        lines.append(f"date {day.isoformat()};")
        for row in rows:
            marker = ALERT_MARKER if evaluation.is_alert(row) else ""
            lines.append(f"- {_hour_label(row)}: {_price_label(row.price)}{marker}")
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def render_inline_list(alerts: AlertSet, window_label: str) -> str:
    if not alerts.rows:
        return f"Above threshold ({window_label}): none"
    entries = ", ".join(
        f"{_hour_label(row)} {INLINE_ARROW} {_price_label(row.price)}" for row in alerts.rows
    )
    return f"Above threshold ({window_label}): {entries}"
