from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Sequence

from curtailment_watch.models import ArtifactDescriptor

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingEntry:
    display_text: str
    bytes_ref: str
    embedded_timestamp: datetime | None = None


@dataclass(frozen=True)
class FetchedArtifact:
    content: bytes
    file_name: str


class PortalAccess(Protocol):
    """Collaborator that lists candidate artifacts and retrieves their bytes.

    Browser navigation, login, waiting for listings to settle and download
    capture all live behind this boundary, including their timeouts.
    """

    reference: str | None

    def listing_sources(self) -> Sequence[str]: ...

    def probe(self, source: str) -> list[ListingEntry]: ...

    def fetch(self, descriptor: ArtifactDescriptor) -> FetchedArtifact: ...


def _probe_safely(portal: PortalAccess, source: str) -> list[ListingEntry]:
    try:
        return list(portal.probe(source))
    except Exception:
        LOGGER.exception("Failed probing listing source %s", source)
        return []


def merge_listings(listings: Sequence[Sequence[ListingEntry]]) -> list[ArtifactDescriptor]:
    """Flatten per-source listings into descriptors with unique positions.

    Sources are merged in the order given and a display text seen in an
    earlier source shadows later repeats.
    """
    seen: set[str] = set()
    descriptors: list[ArtifactDescriptor] = []
    for entries in listings:
        for entry in entries:
            text = entry.display_text.strip()
            if not text or text in seen:
                continue
            seen.add(text)
            descriptors.append(
                ArtifactDescriptor(
                    display_text=text,
                    sequence_position=len(descriptors),
                    bytes_ref=entry.bytes_ref,
                    embedded_timestamp=entry.embedded_timestamp,
                )
            )
    return descriptors


def collect_descriptors(portal: PortalAccess, max_workers: int = 4) -> list[ArtifactDescriptor]:
    sources = list(portal.listing_sources())
    if not sources:
        return []
    if len(sources) == 1:
        listings = [_probe_safely(portal, sources[0])]
    else:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(sources)))) as pool:
            # map() yields in submission order, so the merge ignores completion order.
            listings = list(pool.map(lambda source: _probe_safely(portal, source), sources))
    descriptors = merge_listings(listings)
    LOGGER.info(
        "Collected %s descriptors from %s listing sources", len(descriptors), len(sources)
    )
    return descriptors
