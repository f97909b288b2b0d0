"""Longest-common-subsequence scoring shared by the whole pipeline."""

from __future__ import annotations

import threading
from array import array
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

DEFAULT_BUFFER_CELLS = 16_384
DEFAULT_POOL_SIZE = 4


class LcsScratchPool:
    """Reusable DP tables handed out to one computation at a time.

    Checkout is exclusive: a buffer is removed from the pool while in use, so
    concurrent scorers (threads or interleaved callers) never share cells.
    A request larger than ``capacity`` gets a dedicated table that is
    discarded afterwards instead of being written past the pooled bounds.
    """

    def __init__(self, *, capacity: int = DEFAULT_BUFFER_CELLS, size: int = DEFAULT_POOL_SIZE) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._size = max(0, size)
        self._lock = threading.Lock()
        self._free: list[array] = []

    @property
    def available(self) -> int:
        with self._lock:
            return len(self._free)

    @contextmanager
    def checkout(self, cells: int) -> Iterator[array]:
        if cells > self.capacity:
            yield array("I", bytes(4 * cells))
            return
        with self._lock:
            buffer = self._free.pop() if self._free else None
        if buffer is None:
            buffer = array("I", bytes(4 * self.capacity))
        try:
            yield buffer
        finally:
            with self._lock:
                if len(self._free) < self._size:
                    self._free.append(buffer)


_DEFAULT_POOL = LcsScratchPool()


def lcs_length(a: Sequence[str], b: Sequence[str], *, pool: LcsScratchPool | None = None) -> int:
    """Length of the longest common subsequence of ``a`` and ``b``."""

    m = len(a)
    n = len(b)
    if m == 0 or n == 0:
        return 0
    width = n + 1
    cells = (m + 1) * width
    scratch = pool if pool is not None else _DEFAULT_POOL
    with scratch.checkout(cells) as table:
        if len(table) < cells:
            raise ValueError(f"scratch buffer holds {len(table)} cells, {cells} required")
        for j in range(width):
            table[j] = 0
        for i in range(1, m + 1):
            row = i * width
            above = row - width
            table[row] = 0
            char = a[i - 1]
            for j in range(1, width):
                if char == b[j - 1]:
                    table[row + j] = table[above + j - 1] + 1
                else:
                    up = table[above + j]
                    left = table[row + j - 1]
                    table[row + j] = up if up > left else left
        return table[cells - 1]


def relevance(a: str, b: str, *, pool: LcsScratchPool | None = None) -> float:
    """LCS length normalised by the longer input; ``0.0`` when both are empty."""

    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return lcs_length(a, b, pool=pool) / longest


__all__ = ["LcsScratchPool", "lcs_length", "relevance"]
