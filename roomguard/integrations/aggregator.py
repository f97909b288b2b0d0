"""Multi-query catalog candidate aggregation."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Iterable, Sequence
from typing import TypeVar

from roomguard.core.artist import extract_artist
from roomguard.core.normalizer import clean_title, normalize_title
from roomguard.core.similarity import lcs_length
from roomguard.core.types import Artist, Candidate, CandidateSource, NormalizedTitle, Release
from roomguard.integrations.contracts import (
    CatalogClient,
    CatalogRelease,
    CatalogSearchHit,
    ProviderNotFoundError,
    WebSearchClient,
    WebSearchHit,
)
from roomguard.integrations.normalizers import join_artists
from roomguard.integrations.provider_gateway import ProviderGateway
from roomguard.logging import get_logger
from roomguard.logging_events import log_event

T = TypeVar("T")

logger = get_logger(__name__)

COMPILATION_ARTIST = "various"
DEFAULT_MAX_CANDIDATES = 4

_RELEASE_LINK = re.compile(r"/release/(\d+)")
_SITE_SUFFIX = re.compile(r"\s*[|\-–—]\s*(?:releases\s*[|\-–—]\s*)?discogs\s*$", re.IGNORECASE)


async def gather_all(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    """Await every awaitable; the first failure cancels the rest and is raised."""

    tasks = [asyncio.ensure_future(item) for item in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def release_id_from_link(link: str) -> int | None:
    match = _RELEASE_LINK.search(link)
    return int(match.group(1)) if match else None


class CandidateAggregator:
    """Fan out catalog queries, keep the best-scoring hits, fetch their releases."""

    def __init__(
        self,
        *,
        catalog: CatalogClient,
        gateway: ProviderGateway,
        web_search: WebSearchClient | None = None,
        web_search_site: str = "discogs.com",
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
    ) -> None:
        self._catalog = catalog
        self._gateway = gateway
        self._web_search = web_search
        self._site = web_search_site
        self._max_candidates = max(1, max_candidates)

    async def aggregate(
        self,
        title: NormalizedTitle,
        artist: Artist,
        *,
        raw_title: str | None = None,
    ) -> list[Release]:
        """Return releases for the surviving candidates; ``[]`` means no data.

        Any provider failure propagates so the caller can retry the whole pass.
        """

        raw = raw_title if raw_title is not None else title.text
        cleaned = clean_title(raw) or title.text

        branches: list[Awaitable[list[Candidate]]] = [
            self._search_catalog(raw, artist, CandidateSource.CATALOG_RAW),
            self._search_catalog(cleaned, artist, CandidateSource.CATALOG_CLEAN),
        ]
        if self._web_search is not None:
            branches.append(self._search_web(cleaned, artist))
        results = await gather_all(branches)

        hits = [candidate for branch in results for candidate in branch]
        selected = self.select_candidates(hits)
        log_event(
            logger,
            "aggregator.candidates",
            component="aggregator",
            status="ok",
            hits=len(hits),
            selected=len(selected),
            meta={"ids": [candidate.id for candidate in selected]},
        )
        if not selected:
            return []

        details = await gather_all(self._fetch_release(candidate) for candidate in selected)
        return [release for release in details if release is not None]

    def select_candidates(self, hits: Sequence[Candidate]) -> list[Candidate]:
        """Keep max-score and compilation hits, first occurrence per id, capped.

        Max-score hits fill the slots first so a run of compilations listed
        ahead of the real match can never crowd it out.
        """

        if not hits:
            return []
        best = max(candidate.score for candidate in hits)
        seen: set[int] = set()
        leaders: list[Candidate] = []
        compilations: list[Candidate] = []
        for candidate in hits:
            if candidate.score != best and candidate.artist != COMPILATION_ARTIST:
                continue
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            if candidate.score == best:
                leaders.append(candidate)
            else:
                compilations.append(candidate)
        return (leaders + compilations)[: self._max_candidates]

    @staticmethod
    def score_hit(
        release_id: int,
        hit_title: str,
        query_artist: Artist,
        source: CandidateSource,
        *,
        genres: Iterable[str] = (),
        styles: Iterable[str] = (),
    ) -> Candidate:
        hit_artist = extract_artist(normalize_title(hit_title)).text
        return Candidate(
            id=release_id,
            title=hit_title,
            score=lcs_length(query_artist.text, hit_artist),
            source_provider=source,
            artist=hit_artist,
            genres=frozenset(genres),
            styles=frozenset(styles),
        )

    async def _search_catalog(
        self, text: str, artist: Artist, source: CandidateSource
    ) -> list[Candidate]:
        hits: list[CatalogSearchHit] = await self._gateway.call(
            self._catalog.name,
            "search_releases",
            lambda: self._catalog.search_releases(text),
        )
        return [
            self.score_hit(hit.id, hit.title, artist, source, genres=hit.genres, styles=hit.styles)
            for hit in hits
        ]

    async def _search_web(self, text: str, artist: Artist) -> list[Candidate]:
        assert self._web_search is not None
        client = self._web_search
        query = f"{text} site:{self._site}"
        hits: list[WebSearchHit] = await self._gateway.call(
            client.name, "search", lambda: client.search(query)
        )
        candidates: list[Candidate] = []
        for hit in hits:
            release_id = release_id_from_link(hit.link)
            if release_id is None:
                continue
            title = _SITE_SUFFIX.sub("", hit.title)
            candidates.append(self.score_hit(release_id, title, artist, CandidateSource.WEB_SEARCH))
        return candidates

    async def _fetch_release(self, candidate: Candidate) -> Release | None:
        try:
            detail: CatalogRelease = await self._gateway.call(
                self._catalog.name,
                "get_release",
                lambda: self._catalog.get_release(candidate.id),
            )
        except ProviderNotFoundError:
            # Stale ids (mostly from web-search links) drop the candidate only.
            logger.info("Release %d no longer exists in the catalog; dropping it", candidate.id)
            return None
        return build_release(detail, fallback=candidate)


def build_release(detail: CatalogRelease, *, fallback: Candidate | None = None) -> Release | None:
    """Map a catalog record onto a :class:`Release` (``None`` if it has no tracks)."""

    release_artists = join_artists(detail.artists)
    tracks = [
        (join_artists(track.artists) if track.artists else release_artists, track.title)
        for track in detail.tracklist
        if track.kind != "heading"
    ]
    genres = detail.genres or (tuple(fallback.genres) if fallback else ())
    styles = detail.styles or (tuple(fallback.styles) if fallback else ())
    return Release.build(
        id=detail.id,
        genres=genres,
        styles=styles,
        canonical_url=detail.uri or f"https://www.discogs.com/release/{detail.id}",
        tracks=tracks,
    )


__all__ = [
    "COMPILATION_ARTIST",
    "CandidateAggregator",
    "build_release",
    "gather_all",
    "release_id_from_link",
]
