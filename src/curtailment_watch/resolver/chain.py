from __future__ import annotations

import logging
from typing import Callable, Sequence

from curtailment_watch.config import ResolverConfig
from curtailment_watch.errors import ResolutionFailure
from curtailment_watch.models import ArtifactDescriptor, ResolutionStrategy, ResolvedArtifact
from curtailment_watch.portal.base import FetchedArtifact
from curtailment_watch.resolver.strategies import (
    ExplicitTimestampStrategy,
    FallbackLastStrategy,
    FilenameTimestampSuffixStrategy,
    PositionalLastStrategy,
    Strategy,
)

LOGGER = logging.getLogger(__name__)

Fetcher = Callable[[ArtifactDescriptor], FetchedArtifact]


def default_strategies(config: ResolverConfig | None = None) -> list[Strategy]:
    config = config or ResolverConfig()
    if config.force_last:
        return [FallbackLastStrategy()]
    return [
        ExplicitTimestampStrategy(),
        FilenameTimestampSuffixStrategy(pattern=config.filename_pattern),
        PositionalLastStrategy(),
    ]


def select_descriptor(
    descriptors: Sequence[ArtifactDescriptor],
    strategies: Sequence[Strategy] | None = None,
) -> tuple[ArtifactDescriptor, ResolutionStrategy, tuple[str, ...]]:
    """Run the strategy chain and return the winner, the strategy and any warnings."""
    if not descriptors:
        raise ResolutionFailure("No artifact descriptors available from the portal listing")

    chain = list(strategies) if strategies is not None else default_strategies()
    last_position = max(descriptor.sequence_position for descriptor in descriptors)
    for strategy in chain:
        winner = strategy.attempt(descriptors)
        if winner is None:
            LOGGER.debug("Strategy %s produced no candidate", strategy.name.value)
            continue

        warnings: list[str] = []
        if strategy.name == ResolutionStrategy.positional_last:
            warnings.append(
                "Could not parse any timestamps from the listing; "
                f"falling back to last position {winner.sequence_position}."
            )
        elif winner.sequence_position != last_position:
            warnings.append(
                f"Newest by timestamp is position {winner.sequence_position}, "
                f"but last position is {last_position}. Proceeding with timestamp pick."
            )
        for message in warnings:
            LOGGER.warning(message)
        LOGGER.info(
            "Selected '%s' at position %s of %s (%s)",
            winner.display_text,
            winner.sequence_position,
            len(descriptors),
            strategy.name.value,
        )
        return winner, strategy.name, tuple(warnings)

    raise ResolutionFailure(
        f"No resolution strategy selected an artifact among {len(descriptors)} descriptors"
    )


def resolve(
    descriptors: Sequence[ArtifactDescriptor],
    fetch: Fetcher,
    strategies: Sequence[Strategy] | None = None,
) -> ResolvedArtifact:
    descriptor, strategy_used, warnings = select_descriptor(descriptors, strategies)
    fetched = fetch(descriptor)
    return ResolvedArtifact(
        descriptor=descriptor,
        strategy_used=strategy_used,
        content=fetched.content,
        file_name=fetched.file_name or descriptor.display_text,
        warnings=warnings,
    )
