"""Guess the performing artist from a normalized title."""

from __future__ import annotations

from roomguard.core.types import Artist, NormalizedTitle

# Spaced separators come first so a stray colon or hyphenated name inside
# the artist part does not win over the real "artist - title" split.
SEPARATORS: tuple[str, ...] = (
    " - ",
    " – ",
    " — ",
    " | ",
    " _ ",
    " : ",
    " . ",
    ": ",
    "- ",
    " -",
    "–",
    "—",
    "-",
    "|",
    "_",
    ":",
    ".",
)


def extract_artist(title: NormalizedTitle | str) -> Artist:
    """Return the text before the highest-priority separator.

    Falls back to the whole title when no separator yields a non-blank prefix.
    """

    text = title.text if isinstance(title, NormalizedTitle) else title
    for separator in SEPARATORS:
        index = text.find(separator)
        if index <= 0:
            continue
        prefix = text[:index].strip()
        if prefix:
            return Artist(prefix)
    return Artist(text.strip())


__all__ = ["SEPARATORS", "extract_artist"]
