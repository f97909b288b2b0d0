"""Utility functions for normalising provider payloads into contract types."""

from __future__ import annotations

import shlex
from collections.abc import Iterable, Mapping
from typing import Any

from roomguard.integrations.contracts import (
    CatalogRelease,
    CatalogSearchHit,
    CatalogTrack,
    HostItem,
    MalformedResponseError,
    ReleaseArtist,
    WebSearchHit,
)


def _coerce_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned.isdigit():
            return int(cleaned)
    return None


def _iter_sequence(obj: Any) -> Iterable[Any]:
    if isinstance(obj, (list, tuple)):
        return obj
    if obj is None:
        return ()
    return (obj,)


def _str_tuple(obj: Any) -> tuple[str, ...]:
    values: list[str] = []
    for entry in _iter_sequence(obj):
        text = _coerce_str(entry)
        if text and text not in values:
            values.append(text)
    return tuple(values)


def _require_mapping(provider: str, payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MalformedResponseError(provider, f"{provider} returned a non-object {what}")
    return payload


def _artists(value: Any) -> tuple[ReleaseArtist, ...]:
    credits: list[ReleaseArtist] = []
    for entry in _iter_sequence(value):
        if not isinstance(entry, Mapping):
            continue
        name = _coerce_str(entry.get("anv")) or _coerce_str(entry.get("name"))
        if not name:
            continue
        credits.append(ReleaseArtist(name=name, join=_coerce_str(entry.get("join")) or ""))
    return tuple(credits)


def join_artists(artists: Iterable[ReleaseArtist]) -> str:
    """Render artist credits the way a catalog tracklist reads them."""

    parts: list[str] = []
    credits = list(artists)
    for index, credit in enumerate(credits):
        parts.append(credit.name)
        if index < len(credits) - 1:
            connector = credit.join.strip()
            if connector in ("", ","):
                parts.append(", " if connector == "," else " ")
            else:
                parts.append(f" {connector} ")
    return "".join(parts).strip()


def parse_catalog_search(provider: str, payload: Any) -> list[CatalogSearchHit]:
    body = _require_mapping(provider, payload, "search payload")
    results = body.get("results")
    if results is None:
        return []
    if not isinstance(results, list):
        raise MalformedResponseError(provider, f"{provider} search results are not a list")
    hits: list[CatalogSearchHit] = []
    for entry in results:
        if not isinstance(entry, Mapping):
            continue
        release_id = _coerce_int(entry.get("id"))
        title = _coerce_str(entry.get("title"))
        if release_id is None or title is None:
            continue
        hits.append(
            CatalogSearchHit(
                id=release_id,
                title=title,
                genres=_str_tuple(entry.get("genre")),
                styles=_str_tuple(entry.get("style")),
            )
        )
    return hits


def parse_catalog_release(provider: str, payload: Any) -> CatalogRelease:
    body = _require_mapping(provider, payload, "release payload")
    release_id = _coerce_int(body.get("id"))
    if release_id is None:
        raise MalformedResponseError(provider, f"{provider} release payload lacks an id")
    tracklist = body.get("tracklist")
    if tracklist is not None and not isinstance(tracklist, list):
        raise MalformedResponseError(provider, f"{provider} tracklist is not a list")
    tracks: list[CatalogTrack] = []
    for entry in tracklist or ():
        if not isinstance(entry, Mapping):
            continue
        tracks.append(
            CatalogTrack(
                title=str(entry.get("title") or ""),
                artists=_artists(entry.get("artists")),
                kind=_coerce_str(entry.get("type_")) or "track",
            )
        )
    return CatalogRelease(
        id=release_id,
        artists=_artists(body.get("artists")),
        tracklist=tuple(tracks),
        genres=_str_tuple(body.get("genres")),
        styles=_str_tuple(body.get("styles")),
        uri=_coerce_str(body.get("uri")) or "",
    )


def parse_video_item(provider: str, payload: Any) -> HostItem:
    body = _require_mapping(provider, payload, "video payload")
    items = body.get("items")
    if not isinstance(items, list) or not items or not isinstance(items[0], Mapping):
        raise MalformedResponseError(provider, f"{provider} returned no video item")
    item = items[0]
    snippet = item.get("snippet")
    if not isinstance(snippet, Mapping):
        raise MalformedResponseError(provider, f"{provider} video lacks a snippet")
    status = item.get("status") if isinstance(item.get("status"), Mapping) else {}
    embeddable = status.get("embeddable", True)
    return HostItem(
        title=str(snippet.get("title") or "").strip(),
        tags=_str_tuple(snippet.get("tags")),
        category_id=_coerce_str(snippet.get("categoryId")),
        embeddable=embeddable is not False,
    )


def split_tag_list(raw: str | None) -> tuple[str, ...]:
    """Split a space separated tag list where multi-word tags are quoted."""

    if not raw:
        return ()
    try:
        parts = shlex.split(raw)
    except ValueError:
        parts = raw.replace('"', " ").split()
    return tuple(part.strip() for part in parts if part.strip())


def parse_audio_item(provider: str, payload: Any) -> HostItem:
    body = _require_mapping(provider, payload, "track payload")
    title = _coerce_str(body.get("title"))
    if title is None:
        raise MalformedResponseError(provider, f"{provider} track payload lacks a title")
    tags = list(split_tag_list(_coerce_str(body.get("tag_list"))))
    genre = _coerce_str(body.get("genre"))
    if genre and genre not in tags:
        tags.append(genre)
    return HostItem(title=title, tags=tuple(tags))


def parse_web_search(provider: str, payload: Any) -> list[WebSearchHit]:
    body = _require_mapping(provider, payload, "search payload")
    items = body.get("items")
    if items is None:
        return []
    if not isinstance(items, list):
        raise MalformedResponseError(provider, f"{provider} items are not a list")
    hits: list[WebSearchHit] = []
    for entry in items:
        if not isinstance(entry, Mapping):
            continue
        title = _coerce_str(entry.get("title"))
        link = _coerce_str(entry.get("link"))
        if title and link:
            hits.append(WebSearchHit(title=title, link=link))
    return hits


__all__ = [
    "join_artists",
    "parse_audio_item",
    "parse_catalog_release",
    "parse_catalog_search",
    "parse_video_item",
    "parse_web_search",
    "split_tag_list",
]
