"""Value types flowing through a single track resolution."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class HostingPlatform(str, Enum):
    VIDEO_HOST = "video_host"
    AUDIO_HOST = "audio_host"

    @classmethod
    def from_provider_id(cls, provider_id: str) -> HostingPlatform:
        """Audio-host ids are purely numeric; everything else is a video id."""

        text = str(provider_id).strip()
        return cls.AUDIO_HOST if text.isdigit() else cls.VIDEO_HOST


class CandidateSource(str, Enum):
    CATALOG_RAW = "catalog_raw"
    CATALOG_CLEAN = "catalog_clean"
    WEB_SEARCH = "web_search"


@dataclass(slots=True, frozen=True)
class Query:
    raw_title: str
    hosting_platform: HostingPlatform
    provider_id: str


@dataclass(slots=True, frozen=True)
class NormalizedTitle:
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(slots=True, frozen=True)
class Artist:
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(slots=True, frozen=True)
class Candidate:
    """A raw search hit with its artist score fixed at construction."""

    id: int
    title: str
    score: int
    source_provider: CandidateSource
    artist: str = ""
    genres: frozenset[str] = frozenset()
    styles: frozenset[str] = frozenset()


@dataclass(slots=True, frozen=True)
class Release:
    id: int
    genres: frozenset[str]
    styles: frozenset[str]
    canonical_url: str
    tracks: tuple[str, ...]

    @classmethod
    def build(
        cls,
        *,
        id: int,
        genres: Iterable[str],
        styles: Iterable[str],
        canonical_url: str,
        tracks: Iterable[tuple[str, str]],
    ) -> Release | None:
        """Assemble a release from ``(artist, title)`` pairs.

        Blank titles are dropped and a blank artist leaves the bare title;
        ``None`` is returned when nothing survives.
        """

        joined = tuple(
            (f"{artist.strip()} - {title.strip()}" if artist.strip() else title.strip()).lower()
            for artist, title in tracks
            if title and title.strip()
        )
        if not joined:
            return None
        return cls(
            id=id,
            genres=frozenset(genres),
            styles=frozenset(styles),
            canonical_url=canonical_url,
            tracks=joined,
        )


@dataclass(slots=True, frozen=True)
class MatchResult:
    release: Release
    track: str
    similarity: int


class DecisionKind(str, Enum):
    ACCEPT = "accept"
    REJECT_DURATION = "reject_duration"
    REJECT_EMBEDDABILITY = "reject_embeddability"
    REJECT_CATEGORY = "reject_category"
    REJECT_HOST_TAG = "reject_host_tag"
    REJECT_GENRE = "reject_genre"
    REJECT_STYLE = "reject_style"
    NO_DATA = "no_data"


@dataclass(slots=True, frozen=True)
class Decision:
    kind: ClassVar[DecisionKind]

    @property
    def is_rejection(self) -> bool:
        return self.kind.value.startswith("reject_")


@dataclass(slots=True, frozen=True)
class Accept(Decision):
    reference_url: str
    kind: ClassVar[DecisionKind] = DecisionKind.ACCEPT


@dataclass(slots=True, frozen=True)
class RejectDuration(Decision):
    remaining_seconds: float = 0.0
    kind: ClassVar[DecisionKind] = DecisionKind.REJECT_DURATION


@dataclass(slots=True, frozen=True)
class RejectEmbeddability(Decision):
    kind: ClassVar[DecisionKind] = DecisionKind.REJECT_EMBEDDABILITY


@dataclass(slots=True, frozen=True)
class RejectCategory(Decision):
    category_id: str | None = None
    kind: ClassVar[DecisionKind] = DecisionKind.REJECT_CATEGORY


@dataclass(slots=True, frozen=True)
class RejectHostTag(Decision):
    tag: str
    kind: ClassVar[DecisionKind] = DecisionKind.REJECT_HOST_TAG


@dataclass(slots=True, frozen=True)
class RejectGenre(Decision):
    matched: frozenset[str]
    kind: ClassVar[DecisionKind] = DecisionKind.REJECT_GENRE


@dataclass(slots=True, frozen=True)
class RejectStyle(Decision):
    matched: frozenset[str]
    kind: ClassVar[DecisionKind] = DecisionKind.REJECT_STYLE


@dataclass(slots=True, frozen=True)
class NoData(Decision):
    reason: str = "no catalog data"
    kind: ClassVar[DecisionKind] = DecisionKind.NO_DATA


__all__ = [
    "Accept",
    "Artist",
    "Candidate",
    "CandidateSource",
    "Decision",
    "DecisionKind",
    "HostingPlatform",
    "MatchResult",
    "NoData",
    "NormalizedTitle",
    "Query",
    "RejectCategory",
    "RejectDuration",
    "RejectEmbeddability",
    "RejectGenre",
    "RejectHostTag",
    "RejectStyle",
    "Release",
]
