"""Process-wide holder of the last accepted reference URL."""

from __future__ import annotations

import threading


class ReferenceStore:
    """Single writer (the resolver), many readers (chat commands).

    Reads and writes swap one reference under a lock, so a reader sees either
    the previous URL or the new one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._url: str | None = None

    @property
    def current(self) -> str | None:
        with self._lock:
            return self._url

    def set(self, url: str) -> None:
        with self._lock:
            self._url = url

    def clear(self) -> None:
        with self._lock:
            self._url = None

    def view(self) -> ReferenceView:
        return ReferenceView(self)


class ReferenceView:
    """Read-only accessor handed to the chat command handler."""

    __slots__ = ("_store",)

    def __init__(self, store: ReferenceStore) -> None:
        self._store = store

    @property
    def current(self) -> str | None:
        return self._store.current


__all__ = ["ReferenceStore", "ReferenceView"]
