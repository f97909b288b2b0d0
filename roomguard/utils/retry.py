"""Bounded retry with exponential backoff for provider calls."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class BackoffPolicy:
    """Exponential backoff schedule with symmetric jitter."""

    base_ms: int = 250
    jitter_pct: int = 0
    max_delay_ms: int = 10_000

    def delays(self, attempts: int) -> list[int]:
        """Nominal delays (ms) before retries ``2..attempts``, without jitter."""

        base = max(1, int(self.base_ms))
        ceiling = max(base, int(self.max_delay_ms))
        return [min(ceiling, base * (2**index)) for index in range(max(0, attempts - 1))]

    def jittered(self, delay_ms: int) -> float:
        delay = max(0, int(delay_ms))
        pct = max(0, int(self.jitter_pct))
        if delay <= 0 or pct <= 0:
            return float(delay)
        spread = delay * pct / 100.0
        return random.uniform(max(0.0, delay - spread), delay + spread)


@dataclass(frozen=True)
class RetryDirective:
    """Instruction returned from ``classify_err`` for ``with_retry``."""

    retry: bool
    delay_override_ms: int | None = None
    error: Exception | None = None


AsyncFactory = Callable[[], Awaitable[T]]
Classifier = Callable[[Exception], RetryDirective | bool]
RetryHook = Callable[[int, Exception, float], None]


def _resolve_directive(result: RetryDirective | bool, error: Exception) -> RetryDirective:
    if isinstance(result, RetryDirective):
        return RetryDirective(
            retry=bool(result.retry),
            delay_override_ms=(
                max(0, int(result.delay_override_ms))
                if result.delay_override_ms is not None
                else None
            ),
            error=result.error if result.error is not None else error,
        )
    if isinstance(result, bool):
        return RetryDirective(retry=result, error=error)
    raise TypeError("classify_err must return a boolean or RetryDirective")


async def with_retry(
    async_fn: AsyncFactory[T],
    *,
    attempts: int,
    backoff: BackoffPolicy,
    timeout_ms: int | None,
    classify_err: Classifier,
    on_retry: RetryHook | None = None,
) -> T:
    """Run ``async_fn`` at most ``attempts`` times.

    Each attempt builds a fresh awaitable from the factory, so no call
    arguments are captured between attempts. The last classified error is
    raised once attempts are exhausted or the classifier declines a retry.
    """

    max_attempts = max(1, int(attempts))
    timeout = int(timeout_ms) if timeout_ms is not None else None
    delays = backoff.delays(max_attempts)

    for attempt in range(1, max_attempts + 1):
        try:
            call = async_fn()
            if timeout is not None and timeout > 0:
                return await asyncio.wait_for(call, timeout / 1000.0)
            return await call
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            directive = _resolve_directive(classify_err(exc), exc)
            if not (directive.retry and attempt < max_attempts):
                if directive.error is exc:
                    raise
                raise directive.error from exc

            delay_ms = directive.delay_override_ms
            if delay_ms is None:
                delay_ms = delays[attempt - 1]
            sleep_ms = backoff.jittered(delay_ms)
            if on_retry is not None:
                on_retry(attempt, directive.error or exc, sleep_ms)
            if sleep_ms > 0:
                await asyncio.sleep(sleep_ms / 1000.0)
    raise RuntimeError("Retry loop exited unexpectedly")


__all__ = [
    "BackoffPolicy",
    "RetryDirective",
    "with_retry",
]
