"""Shared HTTPX plumbing for the provider clients."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from roomguard.integrations.contracts import (
    MalformedResponseError,
    ProviderDependencyError,
    ProviderNotFoundError,
    ProviderRateLimitedError,
    ProviderTimeoutError,
    ProviderValidationError,
)


def build_timeout(timeout_ms: int) -> httpx.Timeout:
    timeout_seconds = max(timeout_ms, 100) / 1000
    return httpx.Timeout(
        timeout_seconds,
        connect=min(timeout_seconds, 5.0),
        read=timeout_seconds,
        write=timeout_seconds,
    )


def parse_retry_after_ms(headers: Mapping[str, Any]) -> int | None:
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        numeric = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return max(0, numeric * 1000)


class HttpProvider:
    """Single-attempt JSON GETs; retries and deadlines belong to the gateway."""

    name = "http"

    def __init__(
        self,
        *,
        base_url: str,
        timeout_ms: int = 8_000,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_ms = timeout_ms
        self._headers = {"Accept": "application/json", **dict(headers or {})}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=build_timeout(self._timeout_ms),
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str, *, params: Mapping[str, Any] | None = None) -> Any:
        try:
            response = await self._http().get(path, params=params)
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(self.name, self._timeout_ms, cause=exc) from exc
        except httpx.HTTPError as exc:
            raise ProviderDependencyError(
                self.name, f"{self.name} request failed: {exc}", cause=exc
            ) from exc

        status = response.status_code
        if status == httpx.codes.TOO_MANY_REQUESTS:
            raise ProviderRateLimitedError(
                self.name,
                f"{self.name} rate limited the request",
                retry_after_ms=parse_retry_after_ms(response.headers),
            )
        if status == httpx.codes.NOT_FOUND:
            raise ProviderNotFoundError(self.name, f"{self.name} has no {path}", status_code=status)
        if 500 <= status < 600:
            raise ProviderDependencyError(
                self.name, f"{self.name} returned a server error", status_code=status
            )
        if status >= 400:
            raise ProviderValidationError(
                self.name, f"{self.name} rejected the request", status_code=status
            )
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                self.name, f"{self.name} returned invalid JSON", cause=exc
            ) from exc


__all__ = ["HttpProvider", "build_timeout", "parse_retry_after_ms"]
