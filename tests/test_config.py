from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from curtailment_watch.config import AppConfig, load_config


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CURTAILMENT_WATCH_WEBHOOK_URL", "MAKE_WEBHOOK_URL", "PORTAL_URL"):
        monkeypatch.delenv(name, raising=False)


def test_load_config_defaults_from_empty_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")

    cfg = load_config(config_path)

    assert cfg.alert.threshold == 80.0
    assert cfg.alert.comparator == ">="
    assert cfg.window.policy == "time_lookahead"
    assert cfg.window.row_count == 24
    assert cfg.window.lookahead_hours == 6.0
    assert cfg.display.timezone == "America/Chicago"
    assert cfg.display.sheet_label == "AMIL.WVPA"
    assert cfg.resolver.force_last is False
    assert cfg.idempotency.bypass is False
    assert cfg.delivery.webhook_url is None


def test_load_config_resolves_relative_listing_dirs(tmp_path: Path) -> None:
    (tmp_path / "downloads").mkdir()
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"portal": {"listing_dirs": ["downloads", "/abs/listing"]}}),
        encoding="utf-8",
    )

    cfg = load_config(config_path)

    assert cfg.portal.listing_dirs[0] == str((tmp_path / "downloads").resolve())
    assert cfg.portal.listing_dirs[1] == str(Path("/abs/listing"))


def test_load_config_uses_env_fallbacks(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("{}", encoding="utf-8")
    monkeypatch.setenv("MAKE_WEBHOOK_URL", "https://hook.example/make")
    monkeypatch.setenv("PORTAL_URL", "hhttps://portal.example")

    cfg = load_config(config_path)

    assert cfg.delivery.webhook_url == "https://hook.example/make"
    assert cfg.portal.reference == "https://portal.example"


def test_load_config_prefers_explicit_values_over_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"delivery": {"webhook_url": "https://hook.example/yaml"}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("CURTAILMENT_WATCH_WEBHOOK_URL", "https://hook.example/env")

    cfg = load_config(config_path)

    assert cfg.delivery.webhook_url == "https://hook.example/yaml"


def test_load_config_overrides_comparator_and_window(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "alert": {"threshold": 95.5, "comparator": ">"},
                "window": {"policy": "row_count", "row_count": 48},
            }
        ),
        encoding="utf-8",
    )

    cfg = load_config(config_path)

    assert cfg.alert.threshold == 95.5
    assert cfg.alert.comparator == ">"
    assert cfg.window.policy == "row_count"
    assert cfg.window.row_count == 48


@pytest.mark.parametrize(
    "payload",
    [
        {"alert": {"comparator": "<"}},
        {"window": {"row_count": 0}},
        {"display": {"timezone": "Mars/Olympus"}},
        {"resolver": {"filename_pattern": r"\d{14}"}},
        {"unknown_section": {}},
    ],
)
def test_app_config_rejects_invalid_values(payload: dict) -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate(payload)


def test_repository_default_config_loads() -> None:
    cfg_path = Path(__file__).resolve().parents[1] / "configs/default.yaml"
    cfg = load_config(cfg_path)
    assert cfg.resolver.filename_pattern == r"_(\d{14})\.(?:csv|xlsx?)$"
