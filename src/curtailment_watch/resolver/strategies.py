from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from curtailment_watch.config import DEFAULT_FILENAME_PATTERN
from curtailment_watch.models import ArtifactDescriptor, ResolutionStrategy

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimestampTemplate:
    order: str
    pattern: re.Pattern[str]


# Portals differ in date order; each template still demands HH:MM:SS.
TIMESTAMP_TEMPLATES: tuple[TimestampTemplate, ...] = (
    TimestampTemplate(
        "DMY", re.compile(r"(?<!\d)(\d{2})-(\d{2})-(\d{4})\s+(\d{2}):(\d{2}):(\d{2})(?!\d)")
    ),
    TimestampTemplate(
        "YMD", re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2}):(\d{2})(?!\d)")
    ),
    TimestampTemplate(
        "MDY", re.compile(r"(?<!\d)(\d{2})/(\d{2})/(\d{4})\s+(\d{2}):(\d{2}):(\d{2})(?!\d)")
    ),
)


def _build_datetime(order: str, groups: tuple[str, ...]) -> datetime:
    first, second, third, hour, minute, second_of_minute = (int(part) for part in groups)
    if order == "DMY":
        year, month, day = third, second, first
    elif order == "YMD":
        year, month, day = first, second, third
    else:
        year, month, day = third, first, second
    # Only relative ordering matters, so parsed values are pinned to UTC.
    return datetime(year, month, day, hour, minute, second_of_minute, tzinfo=timezone.utc)


def parse_embedded_timestamp(text: str) -> datetime | None:
    for template in TIMESTAMP_TEMPLATES:
        match = template.pattern.search(text or "")
        if not match:
            continue
        try:
            return _build_datetime(template.order, match.groups())
        except ValueError:
            continue
    return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _pick_max(scored: list[tuple[object, ArtifactDescriptor]]) -> ArtifactDescriptor | None:
    if not scored:
        return None
    _, winner = max(scored, key=lambda item: (item[0], item[1].sequence_position))
    return winner


class Strategy:
    name: ResolutionStrategy

    def attempt(self, descriptors: Sequence[ArtifactDescriptor]) -> ArtifactDescriptor | None:
        raise NotImplementedError


class ExplicitTimestampStrategy(Strategy):
    name = ResolutionStrategy.explicit_timestamp

    def attempt(self, descriptors: Sequence[ArtifactDescriptor]) -> ArtifactDescriptor | None:
        scored: list[tuple[object, ArtifactDescriptor]] = []
        for descriptor in descriptors:
            if descriptor.embedded_timestamp is not None:
                instant = _as_utc(descriptor.embedded_timestamp)
            else:
                instant = parse_embedded_timestamp(descriptor.display_text)
            if instant is not None:
                scored.append((instant, descriptor))
        return _pick_max(scored)


class FilenameTimestampSuffixStrategy(Strategy):
    name = ResolutionStrategy.filename_timestamp_suffix

    def __init__(self, pattern: str = DEFAULT_FILENAME_PATTERN) -> None:
        self.pattern = re.compile(pattern, re.IGNORECASE)

    def attempt(self, descriptors: Sequence[ArtifactDescriptor]) -> ArtifactDescriptor | None:
        scored: list[tuple[object, ArtifactDescriptor]] = []
        for descriptor in descriptors:
            match = self.pattern.search(descriptor.display_text)
            if match and match.group(1) and match.group(1).isdigit():
                scored.append((int(match.group(1)), descriptor))
        return _pick_max(scored)


class PositionalLastStrategy(Strategy):
    name = ResolutionStrategy.positional_last

    def attempt(self, descriptors: Sequence[ArtifactDescriptor]) -> ArtifactDescriptor | None:
        if not descriptors:
            return None
        return max(descriptors, key=lambda descriptor: descriptor.sequence_position)


class FallbackLastStrategy(PositionalLastStrategy):
    name = ResolutionStrategy.fallback_last
