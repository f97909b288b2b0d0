"""Gateway applying timeout and retry policies to every provider call."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from time import perf_counter
from typing import TypeVar

from roomguard.config import AppConfig, ExternalCallPolicy
from roomguard.integrations.contracts import (
    MalformedResponseError,
    ProviderDependencyError,
    ProviderError,
    ProviderRateLimitedError,
    ProviderTimeoutError,
)
from roomguard.logging import get_logger
from roomguard.logging_events import elapsed_ms, log_event
from roomguard.utils.retry import BackoffPolicy, RetryDirective, with_retry

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class ProviderRetryPolicy:
    """Retry and timeout behaviour for a provider."""

    timeout_ms: int
    retry_max: int
    backoff_base_ms: int
    jitter_pct: float

    @classmethod
    def from_external(cls, policy: ExternalCallPolicy) -> ProviderRetryPolicy:
        return cls(
            timeout_ms=max(100, policy.timeout_ms),
            retry_max=max(0, policy.retry_max),
            backoff_base_ms=max(1, policy.backoff_base_ms),
            jitter_pct=max(0.0, policy.jitter_pct),
        )

    @property
    def attempts(self) -> int:
        return self.retry_max + 1

    def backoff(self) -> BackoffPolicy:
        # Stored as a fraction (0.2) like the environment parser produces.
        pct = self.jitter_pct * 100 if self.jitter_pct <= 1 else self.jitter_pct
        return BackoffPolicy(base_ms=self.backoff_base_ms, jitter_pct=int(round(pct)))


@dataclass(slots=True, frozen=True)
class ProviderGatewayConfig:
    default_policy: ProviderRetryPolicy
    provider_policies: Mapping[str, ProviderRetryPolicy]

    def policy_for(self, provider: str) -> ProviderRetryPolicy:
        return self.provider_policies.get(provider.lower(), self.default_policy)

    @classmethod
    def from_settings(cls, config: AppConfig) -> ProviderGatewayConfig:
        return cls(
            default_policy=ProviderRetryPolicy.from_external(config.external),
            provider_policies={
                name.lower(): ProviderRetryPolicy.from_external(profile.policy)
                for name, profile in config.provider_profiles.items()
            },
        )


_RETRYABLE = (
    ProviderTimeoutError,
    ProviderRateLimitedError,
    ProviderDependencyError,
    MalformedResponseError,
)


class ProviderGateway:
    """Runs provider coroutines under their policy and normalises failures."""

    def __init__(self, config: ProviderGatewayConfig) -> None:
        self._config = config

    def policy_for(self, provider: str) -> ProviderRetryPolicy:
        return self._config.policy_for(provider)

    async def call(
        self,
        provider: str,
        operation: str,
        factory: Callable[[], Awaitable[T]],
    ) -> T:
        """Await ``factory()`` with the provider's timeout and retry budget.

        Raises a :class:`ProviderError` subclass once the budget is spent.
        """

        policy = self._config.policy_for(provider)
        attempt = 0
        started = perf_counter()

        async def _call() -> T:
            nonlocal attempt, started
            attempt += 1
            started = perf_counter()
            return await factory()

        def _classify(exc: Exception) -> RetryDirective:
            error = self._normalise_error(provider, policy, exc)
            self._log(provider, operation, attempt, policy.attempts, started, error)
            delay = error.retry_after_ms if isinstance(error, ProviderRateLimitedError) else None
            return RetryDirective(
                retry=isinstance(error, _RETRYABLE),
                delay_override_ms=delay,
                error=error,
            )

        result = await with_retry(
            _call,
            attempts=policy.attempts,
            backoff=policy.backoff(),
            timeout_ms=policy.timeout_ms,
            classify_err=_classify,
        )
        self._log(provider, operation, attempt, policy.attempts, started)
        return result

    @staticmethod
    def _normalise_error(
        provider: str, policy: ProviderRetryPolicy, exc: Exception
    ) -> ProviderError:
        if isinstance(exc, ProviderError):
            return exc
        if isinstance(exc, asyncio.TimeoutError):
            return ProviderTimeoutError(provider, policy.timeout_ms, cause=exc)
        return ProviderDependencyError(provider, f"{provider} failed unexpectedly", cause=exc)

    @staticmethod
    def _log(
        provider: str,
        operation: str,
        attempt: int,
        attempts: int,
        started: float,
        error: ProviderError | None = None,
    ) -> None:
        meta: dict[str, object] = {"attempt": attempt, "max_attempts": attempts}
        if error is not None:
            meta["error"] = error.__class__.__name__
            if error.status_code is not None:
                meta["status_code"] = error.status_code
            if isinstance(error, ProviderTimeoutError):
                meta["timeout_ms"] = error.timeout_ms
        log_event(
            logger,
            "api.dependency",
            level=logging.INFO if error is None else logging.WARNING,
            component="provider_gateway",
            dependency=provider,
            operation=operation,
            status="ok" if error is None else "error",
            duration_ms=elapsed_ms(started),
            meta=meta,
        )


__all__ = [
    "ProviderGateway",
    "ProviderGatewayConfig",
    "ProviderRetryPolicy",
]
