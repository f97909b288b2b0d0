"""Structured logging helpers for roomguard components."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from time import perf_counter
from typing import Any

_JSON_PRIMITIVES = (str, int, float, bool, type(None))


def _check_flat(name: str, value: Any) -> None:
    if not isinstance(value, _JSON_PRIMITIVES):
        raise TypeError(f"Field '{name}' must be a flat JSON-compatible value")


def _check_nested(value: Any, *, path: str) -> None:
    if isinstance(value, _JSON_PRIMITIVES):
        return
    if isinstance(value, Mapping):
        for key, nested in value.items():
            if not isinstance(key, str):
                raise TypeError(f"Keys in '{path}' must be strings")
            _check_nested(nested, path=f"{path}.{key}")
        return
    if isinstance(value, (list, tuple, frozenset, set)):
        for index, nested in enumerate(value):
            _check_nested(nested, path=f"{path}[{index}]")
        return
    raise TypeError(f"Unsupported value in '{path}': {type(value).__name__}")


def log_event(logger: Any, event: str, /, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a structured log event.

    Top-level fields must be JSON primitives. Nested data goes into ``meta``,
    which may contain mappings and sequences of primitives; sets are emitted
    as sorted lists so log lines stay stable.
    """

    if not isinstance(event, str) or not event.strip():
        raise ValueError("event must be a non-empty string")

    meta = fields.pop("meta", None)
    extra: dict[str, Any] = {"event": event}
    for name, value in fields.items():
        _check_flat(name, value)
        extra[name] = value
    if meta is not None:
        if not isinstance(meta, Mapping):
            raise TypeError("meta must be a mapping if provided")
        _check_nested(meta, path="meta")
        extra["meta"] = {
            key: sorted(value) if isinstance(value, (set, frozenset)) else value
            for key, value in meta.items()
        }

    logger.log(level, event, extra=extra)


def elapsed_ms(started: float) -> int:
    """Return whole milliseconds elapsed since a ``perf_counter`` reading."""

    return int((perf_counter() - started) * 1000)
