"""Google Custom Search client used as an optional candidate source."""

from __future__ import annotations

import httpx

from roomguard.config import WebSearchConfig
from roomguard.integrations.contracts import WebSearchHit
from roomguard.integrations.http import HttpProvider
from roomguard.integrations.normalizers import parse_web_search


class GoogleSearchClient(HttpProvider):
    name = "websearch"

    def __init__(
        self,
        config: WebSearchConfig,
        *,
        timeout_ms: int = 8_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url=config.base_url, timeout_ms=timeout_ms, transport=transport)
        self._api_key = config.api_key
        self._engine_id = config.engine_id

    async def search(self, query: str) -> list[WebSearchHit]:
        params = {"q": query, "key": self._api_key or "", "cx": self._engine_id or ""}
        payload = await self._get_json("/v1", params=params)
        return parse_web_search(self.name, payload)


__all__ = ["GoogleSearchClient"]
