from __future__ import annotations

import asyncio

import pytest

from roomguard.utils.retry import BackoffPolicy, RetryDirective, with_retry


class _Flaky:
    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or ConnectionError("flaky")
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "done"


def test_backoff_delays_are_exponential_and_capped() -> None:
    policy = BackoffPolicy(base_ms=100, max_delay_ms=350)

    assert policy.delays(1) == []
    assert policy.delays(4) == [100, 200, 350]


def test_jitter_stays_within_bounds() -> None:
    policy = BackoffPolicy(base_ms=100, jitter_pct=10)

    for _ in range(50):
        assert 90.0 <= policy.jittered(100) <= 110.0
    assert policy.jittered(0) == 0.0


@pytest.mark.asyncio
async def test_with_retry_succeeds_after_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    sleeps: list[float] = []
    retries: list[int] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    operation = _Flaky(failures=2)

    result = await with_retry(
        operation,
        attempts=3,
        backoff=BackoffPolicy(base_ms=10),
        timeout_ms=None,
        classify_err=lambda exc: True,
        on_retry=lambda attempt, error, delay: retries.append(attempt),
    )

    assert result == "done"
    assert operation.calls == 3
    assert sleeps == [pytest.approx(0.01), pytest.approx(0.02)]
    assert retries == [1, 2]


@pytest.mark.asyncio
async def test_with_retry_is_bounded() -> None:
    operation = _Flaky(failures=10)

    with pytest.raises(ConnectionError):
        await with_retry(
            operation,
            attempts=2,
            backoff=BackoffPolicy(base_ms=1),
            timeout_ms=None,
            classify_err=lambda exc: True,
        )

    assert operation.calls == 2


@pytest.mark.asyncio
async def test_classifier_can_stop_and_replace_the_error() -> None:
    operation = _Flaky(failures=5, error=KeyError("missing"))

    with pytest.raises(LookupError, match="terminal"):
        await with_retry(
            operation,
            attempts=5,
            backoff=BackoffPolicy(base_ms=1),
            timeout_ms=None,
            classify_err=lambda exc: RetryDirective(retry=False, error=LookupError("terminal")),
        )

    assert operation.calls == 1


@pytest.mark.asyncio
async def test_timeout_is_applied_per_attempt() -> None:
    async def slow() -> str:
        await asyncio.sleep(1)
        return "late"

    with pytest.raises(asyncio.TimeoutError):
        await with_retry(
            slow,
            attempts=1,
            backoff=BackoffPolicy(),
            timeout_ms=10,
            classify_err=lambda exc: False,
        )


@pytest.mark.asyncio
async def test_invalid_classifier_result_is_a_type_error() -> None:
    with pytest.raises(TypeError):
        await with_retry(
            _Flaky(failures=1),
            attempts=2,
            backoff=BackoffPolicy(base_ms=1),
            timeout_ms=None,
            classify_err=lambda exc: "yes",
        )
