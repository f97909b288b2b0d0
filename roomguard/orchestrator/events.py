"""Room events consumed by the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class MediaPayload:
    """Media attached to a track advance.

    ``title``/``author`` are what the room reports; host metadata wins when
    the host lookup succeeds.
    """

    provider_id: str
    title: str = ""
    author: str = ""

    @property
    def display_title(self) -> str:
        if self.author and self.title:
            return f"{self.author} - {self.title}"
        return self.title or self.author


@dataclass(slots=True, frozen=True)
class AdvanceEvent:
    media: MediaPayload | None
    performer_id: str | None = None


@dataclass(slots=True, frozen=True)
class ChatEvent:
    text: str
    sender_id: str | None = None


__all__ = ["AdvanceEvent", "ChatEvent", "MediaPayload"]
