"""Contracts shared by provider clients, the gateway and the resolver."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True, frozen=True)
class CatalogSearchHit:
    id: int
    title: str
    genres: tuple[str, ...] = ()
    styles: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ReleaseArtist:
    """Artist credit; ``join`` is the connector to the next credit ("&", ",")."""

    name: str
    join: str = ""


@dataclass(slots=True, frozen=True)
class CatalogTrack:
    title: str
    artists: tuple[ReleaseArtist, ...] = ()
    kind: str = "track"


@dataclass(slots=True, frozen=True)
class CatalogRelease:
    id: int
    artists: tuple[ReleaseArtist, ...]
    tracklist: tuple[CatalogTrack, ...]
    genres: tuple[str, ...]
    styles: tuple[str, ...]
    uri: str


@dataclass(slots=True, frozen=True)
class HostItem:
    """Item metadata from a media host.

    The audio host reports neither a category nor embeddability, so both are
    ``None``/``True`` there.
    """

    title: str
    tags: tuple[str, ...] = ()
    category_id: str | None = None
    embeddable: bool = True


@dataclass(slots=True, frozen=True)
class WebSearchHit:
    title: str
    link: str


class ProviderError(RuntimeError):
    """Base exception raised when a provider request fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.cause = cause


class ProviderTimeoutError(ProviderError):
    """Raised when the provider did not respond within the configured timeout."""

    def __init__(self, provider: str, timeout_ms: int, *, cause: Exception | None = None) -> None:
        super().__init__(provider, f"{provider} timed out after {timeout_ms}ms", cause=cause)
        self.timeout_ms = timeout_ms


class ProviderRateLimitedError(ProviderError):
    """Raised when a provider applied rate limits to the request."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retry_after_ms: int | None = None,
        status_code: int | None = 429,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(provider, message, status_code=status_code, cause=cause)
        self.retry_after_ms = retry_after_ms


class ProviderNotFoundError(ProviderError):
    """Raised when the provider reported that the requested id does not exist."""


class ProviderDependencyError(ProviderError):
    """Raised for transport failures and upstream 5xx responses."""


class ProviderValidationError(ProviderError):
    """Raised when the provider rejected the request (4xx other than 404/429)."""


class MalformedResponseError(ProviderError):
    """Raised when a payload cannot be mapped onto the contract types."""


class CatalogClient(Protocol):
    name: str

    async def search_releases(self, text: str) -> list[CatalogSearchHit]:
        """Return release hits for a free-text query."""

    async def get_release(self, release_id: int) -> CatalogRelease:
        """Return the full release record."""


class HostClient(Protocol):
    name: str

    async def get_item(self, item_id: str) -> HostItem:
        """Return item metadata for a provider id."""


class WebSearchClient(Protocol):
    name: str

    async def search(self, query: str) -> list[WebSearchHit]:
        """Return general web results for ``query``."""


class RoomClient(Protocol):
    """Moderation capabilities and event stream of the room being guarded."""

    async def connect(self) -> None:
        """(Re)establish the room session."""

    def events(self) -> AsyncIterator[object]:
        """Yield ``AdvanceEvent``/``ChatEvent`` objects until the session closes."""

    async def get_remaining_time(self) -> float:
        """Seconds left on the current track."""

    async def get_current_performer_id(self) -> str | None:
        """Identifier of the performer whose track is playing."""

    async def send_chat(self, text: str) -> None: ...

    async def remove_performer(self, performer_id: str) -> None: ...

    async def force_skip(self) -> None: ...

    async def signal_positive_reaction(self) -> None: ...


__all__ = [
    "CatalogClient",
    "CatalogRelease",
    "CatalogSearchHit",
    "CatalogTrack",
    "HostClient",
    "HostItem",
    "MalformedResponseError",
    "ProviderDependencyError",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderRateLimitedError",
    "ProviderTimeoutError",
    "ProviderValidationError",
    "ReleaseArtist",
    "RoomClient",
    "WebSearchClient",
    "WebSearchHit",
]
