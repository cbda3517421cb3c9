from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import typer

from curtailment_watch.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from curtailment_watch.delivery.sinks import FileSink, NotificationSink, WebhookSink
from curtailment_watch.errors import PipelineError
from curtailment_watch.io.idempotency import build_key, key_mode_for
from curtailment_watch.logging import configure_logging
from curtailment_watch.pipeline.run import analyze_content, run_once
from curtailment_watch.portal.base import collect_descriptors
from curtailment_watch.portal.local import LocalDirectoryPortal
from curtailment_watch.resolver.chain import default_strategies, select_descriptor
from curtailment_watch.resolver.strategies import parse_embedded_timestamp

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _build_portal(cfg: AppConfig, listing_dirs: list[Path] | None) -> LocalDirectoryPortal:
    directories = [str(path) for path in listing_dirs or []] or cfg.portal.listing_dirs
    if not directories:
        raise typer.BadParameter(
            "No listing directories. Pass --listing-dir or set portal.listing_dirs in config."
        )
    return LocalDirectoryPortal(
        directories=directories,
        pattern=cfg.portal.file_glob,
        reference=cfg.portal.reference,
    )


def _build_sink(cfg: AppConfig, out: Path | None) -> NotificationSink:
    if out is not None:
        return FileSink(out)
    if not cfg.delivery.webhook_url:
        raise typer.BadParameter(
            "Missing webhook URL. Set delivery.webhook_url, CURTAILMENT_WATCH_WEBHOOK_URL "
            "or MAKE_WEBHOOK_URL, or pass --out to write the payload to a file."
        )
    return WebhookSink(cfg.delivery.webhook_url, timeout=cfg.delivery.timeout_seconds)


def _parse_now(now: str | None) -> datetime:
    if not now:
        return datetime.now(timezone.utc)
    try:
        parsed = pd.Timestamp(now)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid --now value: {now}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize("UTC")
    return parsed.tz_convert("UTC").to_pydatetime()


@app.command()
def run(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    listing_dir: list[Path] | None = typer.Option(
        None,
        exists=True,
        file_okay=False,
        resolve_path=True,
        help="Directory to list as a portal source. Repeatable; overrides portal.listing_dirs.",
    ),
    out: Path | None = typer.Option(
        None,
        resolve_path=True,
        help="Write the payload to this JSON file instead of posting to the webhook.",
    ),
    bypass_dedupe: bool = typer.Option(
        False,
        help="Generate a unique idempotency key to exercise the delivery path.",
    ),
    log_level: str = typer.Option("INFO"),
) -> None:
    """Resolve the newest forecast, evaluate it and deliver the notification."""
    configure_logging(log_level)
    cfg = _load_app_config(config)
    if bypass_dedupe:
        cfg.idempotency.bypass = True
    portal = _build_portal(cfg, listing_dir)
    sink = _build_sink(cfg, out)
    try:
        payload = run_once(cfg, portal, sink)
    except PipelineError as exc:
        typer.echo(f"{exc.stage} failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(
        f"Run complete. file={payload.file_name} flagged={payload.flagged_count} "
        f"rows={payload.rows_evaluated} key={payload.idempotency_key}"
    )


@app.command("inspect")
def inspect_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    now: str | None = typer.Option(
        None, help="Evaluation time (ISO-8601) for lookahead windows. Defaults to now."
    ),
) -> None:
    """Parse and evaluate a local artifact without delivering anything."""
    configure_logging()
    cfg = _load_app_config(config)
    content = file.read_bytes()
    try:
        analysis = analyze_content(content, file.name, cfg, now=_parse_now(now))
    except PipelineError as exc:
        typer.echo(f"{exc.stage} failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(analysis.report_text)
    typer.echo(analysis.inline_text)
    typer.echo(f"rows_evaluated: {len(analysis.series)}")
    typer.echo(f"idempotency_key: {build_key(content, key_mode_for(cfg.idempotency.bypass))}")


@app.command("resolve")
def resolve_command(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    listing_dir: list[Path] | None = typer.Option(
        None, exists=True, file_okay=False, resolve_path=True
    ),
) -> None:
    """List portal descriptors and show which one the strategy chain selects."""
    configure_logging()
    cfg = _load_app_config(config)
    portal = _build_portal(cfg, listing_dir)
    descriptors = collect_descriptors(portal, max_workers=cfg.portal.max_workers)
    for descriptor in descriptors:
        parsed = descriptor.embedded_timestamp or parse_embedded_timestamp(
            descriptor.display_text
        )
        stamp = parsed.isoformat() if parsed else "-"
        typer.echo(f"[{descriptor.sequence_position}] {descriptor.display_text} ts={stamp}")
    try:
        winner, strategy, warnings = select_descriptor(
            descriptors, default_strategies(cfg.resolver)
        )
    except PipelineError as exc:
        typer.echo(f"{exc.stage} failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    for message in warnings:
        typer.echo(f"warning: {message}")
    typer.echo(f"Selected: {winner.display_text} ({strategy.value})")


if __name__ == "__main__":
    app()
