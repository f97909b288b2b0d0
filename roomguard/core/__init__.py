"""Fuzzy title resolution and policy decisions."""

from __future__ import annotations

from .artist import extract_artist
from .matching import select_best
from .normalizer import clean_title, normalize_title
from .policy import decide
from .similarity import lcs_length, relevance

__all__ = [
    "clean_title",
    "decide",
    "extract_artist",
    "lcs_length",
    "normalize_title",
    "relevance",
    "select_best",
]
