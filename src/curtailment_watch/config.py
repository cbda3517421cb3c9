from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FILENAME_PATTERN = r"_(\d{14})\.(?:csv|xlsx?)$"
DEFAULT_FILE_GLOB = "*_rt_price_forecast_*"
WEBHOOK_URL_ENV_VARS = ("CURTAILMENT_WATCH_WEBHOOK_URL", "MAKE_WEBHOOK_URL")
PORTAL_REFERENCE_ENV_VAR = "PORTAL_URL"


class AlertConfig(BaseModel):
    threshold: float = 80.0
    comparator: Literal[">=", ">"] = ">="


class WindowConfig(BaseModel):
    policy: Literal["row_count", "time_lookahead"] = "time_lookahead"
    row_count: int = Field(default=24, ge=1)
    lookahead_hours: float = Field(default=6.0, gt=0.0)


class DisplayConfig(BaseModel):
    timezone: str = "America/Chicago"
    sheet_label: str = "AMIL.WVPA"

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"invalid display timezone: {value}") from exc
        return value


class ResolverConfig(BaseModel):
    force_last: bool = False
    filename_pattern: str = DEFAULT_FILENAME_PATTERN

    @field_validator("filename_pattern")
    @classmethod
    def _validate_pattern(cls, value: str) -> str:
        try:
            compiled = re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid filename_pattern: {exc}") from exc
        if compiled.groups < 1:
            raise ValueError("filename_pattern must capture the numeric suffix in a group")
        return value


class IdempotencyConfig(BaseModel):
    bypass: bool = False


class PortalConfig(BaseModel):
    reference: str | None = None
    listing_dirs: list[str] = Field(default_factory=list)
    file_glob: str = DEFAULT_FILE_GLOB
    max_workers: int = Field(default=4, ge=1)


class DeliveryConfig(BaseModel):
    webhook_url: str | None = None
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    source: str = "curtailment_watch"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    alert: AlertConfig = Field(default_factory=AlertConfig)
    window: WindowConfig = Field(default_factory=WindowConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    idempotency: IdempotencyConfig = Field(default_factory=IdempotencyConfig)
    portal: PortalConfig = Field(default_factory=PortalConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def normalize_portal_reference(reference: str | None) -> str | None:
    if not reference:
        return None
    cleaned = reference.strip()
    if cleaned.startswith("hhttps://"):
        cleaned = cleaned[1:]
    return cleaned or None


def _first_env(names: tuple[str, ...]) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.portal.listing_dirs = [
        resolved
        for resolved in (
            _resolve_optional_path(entry, base_dir) for entry in config.portal.listing_dirs
        )
        if resolved
    ]
    config.portal.reference = normalize_portal_reference(
        config.portal.reference or os.getenv(PORTAL_REFERENCE_ENV_VAR)
    )
    config.delivery.webhook_url = config.delivery.webhook_url or _first_env(WEBHOOK_URL_ENV_VARS)
    return config
