"""Application level errors for roomguard."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes attached to application errors and log events."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    RESOLUTION_ERROR = "RESOLUTION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class RoomGuardError(Exception):
    """Base exception for roomguard specific failures."""

    __slots__ = ("message", "code", "meta")

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        meta: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.meta = dict(meta) if meta is not None else None


class ConfigurationError(RoomGuardError):
    """Raised at startup when a credential or policy list is missing."""

    def __init__(self, message: str, *, missing: tuple[str, ...] = ()) -> None:
        super().__init__(
            message,
            code=ErrorCode.CONFIGURATION_ERROR,
            meta={"missing": list(missing)} if missing else None,
        )
        self.missing = missing


class ResolutionError(RoomGuardError):
    """Raised when catalog resolution failed after every retry attempt."""

    def __init__(self, message: str, *, attempts: int, cause: Exception | None = None) -> None:
        super().__init__(
            message,
            code=ErrorCode.RESOLUTION_ERROR,
            meta={"attempts": attempts},
        )
        self.attempts = attempts
        self.cause = cause


__all__ = [
    "ConfigurationError",
    "ErrorCode",
    "ResolutionError",
    "RoomGuardError",
]
