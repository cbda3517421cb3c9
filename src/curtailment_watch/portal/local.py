from __future__ import annotations

from pathlib import Path
from typing import Sequence

from curtailment_watch.models import ArtifactDescriptor
from curtailment_watch.portal.base import FetchedArtifact, ListingEntry


class LocalDirectoryPortal:
    """Portal backed by local directories, one listing source per directory.

    Files are listed oldest-modified first, which is the ascending
    chronological order the web portals show.
    """

    def __init__(
        self,
        directories: Sequence[Path | str],
        pattern: str = "*",
        reference: str | None = None,
    ) -> None:
        self.directories = [Path(directory) for directory in directories]
        self.pattern = pattern
        self.reference = reference

    def listing_sources(self) -> list[str]:
        return [str(directory) for directory in self.directories]

    def probe(self, source: str) -> list[ListingEntry]:
        directory = Path(source)
        if not directory.is_dir():
            raise FileNotFoundError(f"Listing directory not found: {directory}")
        files = [path for path in directory.glob(self.pattern) if path.is_file()]
        files.sort(key=lambda path: (path.stat().st_mtime, path.name))
        return [ListingEntry(display_text=path.name, bytes_ref=str(path)) for path in files]

    def fetch(self, descriptor: ArtifactDescriptor) -> FetchedArtifact:
        path = Path(descriptor.bytes_ref)
        return FetchedArtifact(content=path.read_bytes(), file_name=path.name)
