from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from curtailment_watch.alerts.evaluate import Evaluation, evaluate
from curtailment_watch.alerts.window import window_policy_from_config
from curtailment_watch.config import AppConfig
from curtailment_watch.delivery.sinks import NotificationSink
from curtailment_watch.errors import DeliveryFailure, PipelineError, ResolutionFailure, SchemaError
from curtailment_watch.io.idempotency import build_key, compute_bytes_sha256, key_mode_for
from curtailment_watch.io.schema import detect_format_hint, normalize
from curtailment_watch.models import NotificationPayload, ProjectedInterval, ResolvedArtifact
from curtailment_watch.portal.base import PortalAccess, collect_descriptors
from curtailment_watch.preprocess.time import project
from curtailment_watch.report.render import render_inline_list, render_report
from curtailment_watch.resolver.chain import default_strategies, resolve

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactAnalysis:
    series: tuple[ProjectedInterval, ...]
    evaluation: Evaluation
    report_text: str
    inline_text: str


def analyze_content(
    content: bytes,
    file_name: str,
    config: AppConfig,
    *,
    now: datetime,
) -> ArtifactAnalysis:
    rows = normalize(content, detect_format_hint(file_name, content))
    series = tuple(project(rows, display_timezone=config.display.timezone))
    evaluation = evaluate(
        series,
        policy=window_policy_from_config(config.window),
        threshold=config.alert.threshold,
        comparator=config.alert.comparator,
        now=now,
    )
    return ArtifactAnalysis(
        series=series,
        evaluation=evaluation,
        report_text=render_report(evaluation, file_name=file_name),
        inline_text=render_inline_list(evaluation.alerts, evaluation.window_label),
    )


def build_payload(
    resolved: ResolvedArtifact,
    analysis: ArtifactAnalysis,
    config: AppConfig,
    *,
    now: datetime,
    portal_reference: str | None = None,
) -> NotificationPayload:
    evaluation = analysis.evaluation
    return NotificationPayload(
        idempotency_key=build_key(resolved.content, key_mode_for(config.idempotency.bypass)),
        file_name=resolved.file_name,
        file_sha256=compute_bytes_sha256(resolved.content),
        threshold=config.alert.threshold,
        comparator=config.alert.comparator,
        timezone_label=config.display.timezone,
        sheet_label=config.display.sheet_label,
        generated_at_utc=now,
        window_start_utc=evaluation.window_start,
        window_end_utc=evaluation.window_end,
        window_policy=evaluation.window_label,
        strategy_used=resolved.strategy_used,
        rows_evaluated=len(analysis.series),
        flagged=evaluation.alerts.rows,
        raw_intervals=evaluation.considered,
        report_text=analysis.report_text,
        inline_text=analysis.inline_text,
        source=config.delivery.source,
        portal_reference=portal_reference,
        notes=(*resolved.warnings, analysis.inline_text),
    )


def build_error_payload(
    exc: PipelineError,
    *,
    file_name: str | None,
    portal_reference: str | None,
    source: str = "curtailment_watch",
    file_sha256: str | None = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {"message": str(exc), "stage": exc.stage}
    if isinstance(exc, SchemaError):
        error["headers"] = list(exc.headers)
    document: dict[str, Any] = {
        "source": source,
        "error": error,
        "file_name": file_name,
        "portal_reference": portal_reference,
    }
    if file_sha256:
        document["file_sha256"] = file_sha256
    return document


def _deliver_error(sink: NotificationSink, document: dict[str, Any]) -> None:
    try:
        sink.deliver(document)
    except DeliveryFailure:
        LOGGER.exception("Failed delivering error payload")


def run_once(
    config: AppConfig,
    portal: PortalAccess,
    sink: NotificationSink,
    *,
    now: datetime | None = None,
) -> NotificationPayload:
    """Resolve, parse, evaluate and deliver one forecast artifact."""
    now = now or datetime.now(timezone.utc)
    portal_reference = getattr(portal, "reference", None) or config.portal.reference
    resolved: ResolvedArtifact | None = None
    try:
        descriptors = collect_descriptors(portal, max_workers=config.portal.max_workers)
        resolved = resolve(descriptors, portal.fetch, default_strategies(config.resolver))
        analysis = analyze_content(resolved.content, resolved.file_name, config, now=now)
    except (ResolutionFailure, SchemaError) as exc:
        _deliver_error(
            sink,
            build_error_payload(
                exc,
                file_name=resolved.file_name if resolved else None,
                portal_reference=portal_reference,
                source=config.delivery.source,
                file_sha256=compute_bytes_sha256(resolved.content) if resolved else None,
            ),
        )
        raise

    payload = build_payload(
        resolved, analysis, config, now=now, portal_reference=portal_reference
    )
    sink.deliver(payload.to_dict())
    LOGGER.info(
        "Delivered %s: flagged=%s rows=%s",
        payload.file_name,
        payload.flagged_count,
        payload.rows_evaluated,
    )
    return payload
