"""Confidence-gated accept/reject decision for a resolved match."""

from __future__ import annotations

from collections.abc import Iterable

from roomguard.config import PolicyConfig
from roomguard.core.artist import extract_artist
from roomguard.core.normalizer import normalize_title
from roomguard.core.similarity import relevance
from roomguard.core.types import (
    Accept,
    Artist,
    Decision,
    MatchResult,
    NoData,
    RejectCategory,
    RejectGenre,
    RejectStyle,
)


def _blocked(values: Iterable[str], blocklist: frozenset[str]) -> frozenset[str]:
    folded = {item.casefold() for item in blocklist}
    return frozenset(value for value in values if value.casefold() in folded)


def artist_relevance(query_artist: Artist, match: MatchResult) -> float:
    """How well the artist guessed from the best track matches the query's."""

    track_artist = extract_artist(normalize_title(match.track))
    return relevance(query_artist.text, track_artist.text)


def decide(
    match: MatchResult | None,
    query_artist: Artist,
    host_category_ok: bool,
    policy: PolicyConfig,
) -> Decision:
    """Apply the blocklists to ``match``.

    A genre or style only vetoes a track when the matched release plausibly
    belongs to the same artist; a weak match neither accepts nor rejects.
    The host category is consulted only when the catalog found nothing.
    """

    if match is None:
        if not host_category_ok:
            return RejectCategory()
        return NoData(reason="no catalog match")

    score = artist_relevance(query_artist, match)
    matched_genres = _blocked(match.release.genres, policy.blocked_genres)
    matched_styles = _blocked(match.release.styles, policy.blocked_styles)

    if matched_genres and score > policy.genre_relevance_threshold:
        return RejectGenre(matched=matched_genres)
    if matched_styles and score > policy.genre_relevance_threshold:
        return RejectStyle(matched=matched_styles)
    if score >= policy.accept_relevance_threshold:
        return Accept(reference_url=match.release.canonical_url)
    return NoData(reason="insufficient artist relevance")


__all__ = ["artist_relevance", "decide"]
