"""Title cleanup for noisy, human-authored media titles."""

from __future__ import annotations

import re

from roomguard.core.types import NormalizedTitle

_OPENERS = frozenset("([{")
_CLOSERS = frozenset(")]}")

# Longer phrases must precede their substrings ("official music video"
# before "official video" before "official").
_NOISE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"official\s*music\s*video",
        r"official\s*lyrics?\s*video",
        r"official\s*audio",
        r"official\s*video",
        r"\blyrics?\s*video\b",
        r"\bofficial\b",
        r"full\s*album",
        r"\bfull\b",
        r"\blive\s+at\b.*",
        r"\blive\s+in\b.*",
        r"(?<![a-z])h[dq](?![a-z])",
        r"(?<![a-z0-9])4k(?![a-z])",
        r"(?<![a-z0-9])\d{3,4}p(?![a-z])",
    )
)

_WHITESPACE = re.compile(r"\s+")


def strip_brackets(text: str) -> str:
    """Drop every balanced ``()``, ``[]`` and ``{}`` span, nested or not.

    An unmatched closer at depth zero is kept as-is.
    """

    depth = 0
    kept: list[str] = []
    for char in text:
        if char in _OPENERS:
            depth += 1
            continue
        if char in _CLOSERS and depth > 0:
            depth -= 1
            continue
        if depth == 0:
            kept.append(char)
    return "".join(kept)


def _remove_noise(text: str) -> str:
    # A removal can leave another phrase exposed once whitespace collapses, so
    # run to a fixpoint; every productive pass shortens the string.
    current = _WHITESPACE.sub(" ", text).strip()
    while True:
        cleaned = current
        for pattern in _NOISE_PATTERNS:
            cleaned = pattern.sub(" ", cleaned)
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        if cleaned == current:
            return cleaned
        current = cleaned


def clean_title(raw: str) -> str:
    """Bracket and noise-phrase cleanup that keeps the original casing.

    Used for the second catalog query, which benefits from readable text.
    """

    return _remove_noise(strip_brackets(raw or ""))


def normalize_title(raw: str) -> NormalizedTitle:
    """Return the lower-cased, bracket-free, noise-free form of ``raw``."""

    return NormalizedTitle(_remove_noise(strip_brackets(raw or "").lower()))


__all__ = ["clean_title", "normalize_title", "strip_brackets"]
