"""Best release/track selection for a query title."""

from __future__ import annotations

from collections.abc import Sequence

from roomguard.core.similarity import lcs_length
from roomguard.core.types import MatchResult, NormalizedTitle, Release


def select_best(query_title: NormalizedTitle, releases: Sequence[Release]) -> MatchResult | None:
    """Scan every track once and keep the first global maximum."""

    best: MatchResult | None = None
    for release in releases:
        for track in release.tracks:
            similarity = lcs_length(query_title.text, track)
            if best is None or similarity > best.similarity:
                best = MatchResult(release=release, track=track, similarity=similarity)
    return best


__all__ = ["select_best"]
