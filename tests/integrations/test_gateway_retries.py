from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import pytest

from roomguard.config import ExternalCallPolicy, load_config
from roomguard.integrations.contracts import (
    MalformedResponseError,
    ProviderDependencyError,
    ProviderNotFoundError,
    ProviderRateLimitedError,
    ProviderTimeoutError,
)
from roomguard.integrations.provider_gateway import (
    ProviderGateway,
    ProviderGatewayConfig,
    ProviderRetryPolicy,
)


@dataclass
class _StubProvider:
    name: str
    responses: list[Any]
    calls: int = field(default=0)

    async def get_item(self, item_id: str):
        self.calls += 1
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return await result(item_id)
        return result


def _make_config(
    *, retry_max: int = 2, backoff_ms: int = 10, jitter: float = 0.0, timeout_ms: int = 100
) -> ProviderGatewayConfig:
    policy = ProviderRetryPolicy(
        timeout_ms=timeout_ms,
        retry_max=retry_max,
        backoff_base_ms=backoff_ms,
        jitter_pct=jitter,
    )
    return ProviderGatewayConfig(default_policy=policy, provider_policies={"stub": policy})


def _record_sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


@pytest.mark.asyncio
async def test_gateway_retries_with_exponential_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    provider = _StubProvider(
        name="stub",
        responses=[
            ProviderDependencyError("stub", "dep"),
            MalformedResponseError("stub", "bad shape"),
            "item",
        ],
    )
    delays = _record_sleeps(monkeypatch)
    gateway = ProviderGateway(_make_config())

    result = await gateway.call("stub", "get_item", lambda: provider.get_item("1"))

    assert result == "item"
    assert provider.calls == 3
    assert delays == [pytest.approx(0.01), pytest.approx(0.02)]


@pytest.mark.asyncio
async def test_gateway_raises_after_budget_is_spent(monkeypatch: pytest.MonkeyPatch) -> None:
    provider = _StubProvider(
        name="stub",
        responses=[ProviderDependencyError("stub", "dep") for _ in range(3)],
    )
    _record_sleeps(monkeypatch)
    gateway = ProviderGateway(_make_config())

    with pytest.raises(ProviderDependencyError):
        await gateway.call("stub", "get_item", lambda: provider.get_item("1"))

    assert provider.calls == 3


@pytest.mark.asyncio
async def test_rate_limit_uses_retry_after(monkeypatch: pytest.MonkeyPatch) -> None:
    provider = _StubProvider(
        name="stub",
        responses=[ProviderRateLimitedError("stub", "slow down", retry_after_ms=1500), "ok"],
    )
    delays = _record_sleeps(monkeypatch)
    gateway = ProviderGateway(_make_config())

    assert await gateway.call("stub", "get_item", lambda: provider.get_item("1")) == "ok"
    assert delays == [pytest.approx(1.5)]


@pytest.mark.asyncio
async def test_not_found_is_not_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    provider = _StubProvider(
        name="stub",
        responses=[ProviderNotFoundError("stub", "gone", status_code=404), "never"],
    )
    delays = _record_sleeps(monkeypatch)
    gateway = ProviderGateway(_make_config())

    with pytest.raises(ProviderNotFoundError):
        await gateway.call("stub", "get_item", lambda: provider.get_item("1"))

    assert provider.calls == 1
    assert delays == []


@pytest.mark.asyncio
async def test_slow_call_becomes_timeout_error() -> None:
    async def _slow(_: str) -> str:
        await asyncio.sleep(1)
        return "late"

    provider = _StubProvider(name="stub", responses=[_slow])
    gateway = ProviderGateway(_make_config(retry_max=0, timeout_ms=20))

    with pytest.raises(ProviderTimeoutError) as excinfo:
        await gateway.call("stub", "get_item", lambda: provider.get_item("1"))

    assert excinfo.value.timeout_ms == 20


@pytest.mark.asyncio
async def test_unexpected_errors_are_normalised(monkeypatch: pytest.MonkeyPatch) -> None:
    provider = _StubProvider(name="stub", responses=[ValueError("boom"), "fine"])
    _record_sleeps(monkeypatch)
    gateway = ProviderGateway(_make_config())

    assert await gateway.call("stub", "get_item", lambda: provider.get_item("1")) == "fine"


@pytest.mark.asyncio
async def test_gateway_emits_dependency_events(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    provider = _StubProvider(name="stub", responses=[ProviderDependencyError("stub", "dep"), "ok"])
    _record_sleeps(monkeypatch)
    gateway = ProviderGateway(_make_config())

    with caplog.at_level(logging.INFO, logger="roomguard.integrations.provider_gateway"):
        await gateway.call("stub", "get_item", lambda: provider.get_item("1"))

    events = [record for record in caplog.records if getattr(record, "event", None) == "api.dependency"]
    assert [record.status for record in events] == ["error", "ok"]
    assert events[0].levelno == logging.WARNING
    assert events[0].meta["error"] == "ProviderDependencyError"
    assert events[1].meta["attempt"] == 2
    assert all(record.dependency == "stub" for record in events)


def test_policy_backoff_converts_fractional_jitter() -> None:
    policy = ProviderRetryPolicy(timeout_ms=100, retry_max=1, backoff_base_ms=50, jitter_pct=0.2)

    assert policy.attempts == 2
    assert policy.backoff().jitter_pct == 20


def test_gateway_config_uses_provider_profiles() -> None:
    config = load_config(
        {"EXTERNAL_RETRY_MAX": "1", "PROVIDER_DISCOGS_RETRY_MAX": "4", "PROVIDER_DISCOGS_TIMEOUT_MS": "2500"}
    )

    gateway_config = ProviderGatewayConfig.from_settings(config)

    assert gateway_config.policy_for("discogs").retry_max == 4
    assert gateway_config.policy_for("DISCOGS").timeout_ms == 2500
    assert gateway_config.policy_for("youtube").retry_max == 1


def test_from_external_clamps_values() -> None:
    policy = ProviderRetryPolicy.from_external(
        ExternalCallPolicy(timeout_ms=5, retry_max=-2, backoff_base_ms=0, jitter_pct=-1.0)
    )

    assert policy.timeout_ms == 100
    assert policy.retry_max == 0
    assert policy.backoff_base_ms == 1
    assert policy.jitter_pct == 0.0
