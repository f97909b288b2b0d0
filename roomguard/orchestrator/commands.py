"""On-demand chat commands."""

from __future__ import annotations

from roomguard.config import DEFAULT_REFERENCE_COMMAND
from roomguard.orchestrator.state import ReferenceView


class ChatCommandHandler:
    def __init__(self, references: ReferenceView, *, token: str = DEFAULT_REFERENCE_COMMAND) -> None:
        self._references = references
        self._token = token.strip()

    def handle(self, text: str) -> str | None:
        """Echo the retained reference URL for the reference command, else ``None``."""

        if (text or "").strip() != self._token:
            return None
        return self._references.current


__all__ = ["ChatCommandHandler"]
