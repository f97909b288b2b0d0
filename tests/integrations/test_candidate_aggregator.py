from __future__ import annotations

import asyncio

import pytest

from roomguard.core.artist import extract_artist
from roomguard.core.normalizer import normalize_title
from roomguard.core.types import Candidate, CandidateSource
from roomguard.integrations.aggregator import (
    CandidateAggregator,
    build_release,
    gather_all,
    release_id_from_link,
)
from roomguard.integrations.contracts import (
    CatalogRelease,
    CatalogSearchHit,
    CatalogTrack,
    ProviderDependencyError,
    ReleaseArtist,
    WebSearchHit,
)
from tests.fakes import FakeCatalog, FakeWebSearch, make_gateway, make_release

RAW = "Artist X - Cool Song (Official Video) [HD]"
CLEAN = "Artist X - Cool Song"


def _query():
    title = normalize_title(RAW)
    return title, extract_artist(title)


def _hit(release_id: int, title: str, *genres: str) -> CatalogSearchHit:
    return CatalogSearchHit(id=release_id, title=title, genres=tuple(genres))


@pytest.mark.asyncio
async def test_searches_raw_and_cleaned_titles() -> None:
    catalog = FakeCatalog()
    aggregator = CandidateAggregator(catalog=catalog, gateway=make_gateway())
    title, artist = _query()

    assert await aggregator.aggregate(title, artist, raw_title=RAW) == []
    assert sorted(catalog.queries) == sorted([RAW, CLEAN])
    assert catalog.fetched == []


@pytest.mark.asyncio
async def test_keeps_max_score_hits_capped_and_deduplicated() -> None:
    raw_hits = [_hit(index, f"Artist X - Song {index}") for index in range(1, 6)]
    clean_hits = [_hit(2, "Artist X - Song 2"), _hit(9, "Zed - Thing")]
    catalog = FakeCatalog(
        searches={RAW: raw_hits, CLEAN: clean_hits},
        releases={index: make_release(index, "Artist X", [f"Song {index}"]) for index in range(1, 10)},
    )
    aggregator = CandidateAggregator(catalog=catalog, gateway=make_gateway())
    title, artist = _query()

    releases = await aggregator.aggregate(title, artist, raw_title=RAW)

    assert [release.id for release in releases] == [1, 2, 3, 4]
    assert sorted(catalog.fetched) == [1, 2, 3, 4]


def test_select_candidates_keeps_compilations() -> None:
    aggregator = CandidateAggregator(catalog=FakeCatalog(), gateway=make_gateway())
    artist = extract_artist("artist x - cool song")
    hits = [
        CandidateAggregator.score_hit(1, "Artist X - Cool Song", artist, CandidateSource.CATALOG_RAW),
        CandidateAggregator.score_hit(2, "Various - Summer Hits", artist, CandidateSource.CATALOG_RAW),
        CandidateAggregator.score_hit(3, "Nobody - Else", artist, CandidateSource.CATALOG_CLEAN),
    ]

    selected = aggregator.select_candidates(hits)

    assert [candidate.id for candidate in selected] == [1, 2]
    assert selected[1].artist == "various"


@pytest.mark.parametrize("cap", [1, 2, 4])
def test_select_candidates_never_exceeds_cap_and_keeps_a_maximum(cap: int) -> None:
    aggregator = CandidateAggregator(catalog=FakeCatalog(), gateway=make_gateway(), max_candidates=cap)
    compilations = [
        Candidate(
            id=100 + index,
            title=f"Various - Hits {index}",
            score=4,
            source_provider=CandidateSource.CATALOG_RAW,
            artist="various",
        )
        for index in range(4)
    ]
    hits = compilations + [
        Candidate(id=index, title=str(index), score=score, source_provider=CandidateSource.CATALOG_RAW)
        for index, score in enumerate([3, 8, 8, 2, 8, 8, 8, 1])
    ]

    selected = aggregator.select_candidates(hits)

    assert 1 <= len(selected) <= cap
    assert all(candidate.score == 8 for candidate in selected)
    assert selected[0].id == 1


def test_compilations_listed_first_do_not_crowd_out_the_best_hit() -> None:
    aggregator = CandidateAggregator(catalog=FakeCatalog(), gateway=make_gateway())
    artist = extract_artist("artist x - cool song")
    hits = [
        CandidateAggregator.score_hit(index, f"Various - Hits {index}", artist, CandidateSource.CATALOG_RAW)
        for index in range(1, 5)
    ]
    hits.append(
        CandidateAggregator.score_hit(9, "Artist X - Cool Song", artist, CandidateSource.CATALOG_CLEAN)
    )

    selected = aggregator.select_candidates(hits)

    assert len(selected) == 4
    assert selected[0].id == 9
    assert [candidate.id for candidate in selected[1:]] == [1, 2, 3]


def test_select_candidates_empty() -> None:
    aggregator = CandidateAggregator(catalog=FakeCatalog(), gateway=make_gateway())
    assert aggregator.select_candidates([]) == []


@pytest.mark.asyncio
async def test_web_search_branch_adds_release_links() -> None:
    catalog = FakeCatalog(releases={77: make_release(77, "Artist X", ["Cool Song"])})
    web = FakeWebSearch(
        hits=[
            WebSearchHit("Artist X - Cool Song | Releases | Discogs", "https://www.discogs.com/release/77-Cool"),
            WebSearchHit("Artist X - Discography", "https://www.discogs.com/artist/12-Artist-X"),
        ]
    )
    aggregator = CandidateAggregator(catalog=catalog, gateway=make_gateway(), web_search=web)
    title, artist = _query()

    releases = await aggregator.aggregate(title, artist, raw_title=RAW)

    assert web.queries == [f"{CLEAN} site:discogs.com"]
    assert [release.id for release in releases] == [77]


@pytest.mark.asyncio
async def test_stale_release_link_is_dropped_not_fatal() -> None:
    catalog = FakeCatalog(
        searches={CLEAN: [_hit(5, "Artist X - Cool Song")]},
        releases={5: make_release(5, "Artist X", ["Cool Song"])},
    )
    web = FakeWebSearch(
        hits=[WebSearchHit("Artist X - Cool Song | Discogs", "https://www.discogs.com/release/404-Gone")]
    )
    aggregator = CandidateAggregator(catalog=catalog, gateway=make_gateway(), web_search=web)
    title, artist = _query()

    releases = await aggregator.aggregate(title, artist, raw_title=RAW)

    assert sorted(catalog.fetched) == [5, 404]
    assert [release.id for release in releases] == [5]


@pytest.mark.asyncio
async def test_failed_branch_fails_the_aggregation() -> None:
    catalog = FakeCatalog(errors=[ProviderDependencyError("discogs", "down")])
    aggregator = CandidateAggregator(catalog=catalog, gateway=make_gateway())
    title, artist = _query()

    with pytest.raises(ProviderDependencyError):
        await aggregator.aggregate(title, artist, raw_title=RAW)


@pytest.mark.asyncio
async def test_gather_all_cancels_siblings_on_failure() -> None:
    cancelled = asyncio.Event()

    async def slow() -> int:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return 1

    async def failing() -> int:
        await asyncio.sleep(0)
        raise ProviderDependencyError("discogs", "down")

    with pytest.raises(ProviderDependencyError):
        await gather_all([slow(), failing()])
    assert cancelled.is_set()


def test_release_id_from_link() -> None:
    assert release_id_from_link("https://www.discogs.com/release/123-Foo") == 123
    assert release_id_from_link("https://www.discogs.com/master/5") is None


def test_build_release_skips_headings_and_uses_track_credits() -> None:
    detail = CatalogRelease(
        id=5,
        artists=(ReleaseArtist("Artist X", "&"), ReleaseArtist("Y")),
        tracklist=(
            CatalogTrack(title="Side A", kind="heading"),
            CatalogTrack(title="Cool Song"),
            CatalogTrack(title="Guest Spot", artists=(ReleaseArtist("Guest"),)),
            CatalogTrack(title="  "),
        ),
        genres=(),
        styles=("Ballad",),
        uri="",
    )
    fallback = Candidate(
        id=5,
        title="t",
        score=1,
        source_provider=CandidateSource.CATALOG_RAW,
        genres=frozenset({"Pop"}),
    )

    release = build_release(detail, fallback=fallback)

    assert release is not None
    assert release.tracks == ("artist x & y - cool song", "guest - guest spot")
    assert release.genres == frozenset({"Pop"})
    assert release.styles == frozenset({"Ballad"})
    assert release.canonical_url == "https://www.discogs.com/release/5"


def test_build_release_without_tracks_is_dropped() -> None:
    detail = make_release(6, "Artist", [])

    assert build_release(detail) is None
