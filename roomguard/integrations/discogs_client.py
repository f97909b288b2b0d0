"""Async client for the Discogs database API."""

from __future__ import annotations

import httpx

from roomguard.config import DiscogsConfig
from roomguard.integrations.contracts import CatalogRelease, CatalogSearchHit
from roomguard.integrations.http import HttpProvider
from roomguard.integrations.normalizers import parse_catalog_release, parse_catalog_search


class DiscogsClient(HttpProvider):
    name = "discogs"

    def __init__(
        self,
        config: DiscogsConfig,
        *,
        timeout_ms: int = 8_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"User-Agent": config.user_agent}
        if config.consumer_key and config.consumer_secret:
            headers["Authorization"] = (
                f"Discogs key={config.consumer_key}, secret={config.consumer_secret}"
            )
        super().__init__(
            base_url=config.base_url,
            timeout_ms=timeout_ms,
            headers=headers,
            transport=transport,
        )

    async def search_releases(self, text: str) -> list[CatalogSearchHit]:
        payload = await self._get_json("/database/search", params={"q": text, "type": "release"})
        return parse_catalog_search(self.name, payload)

    async def get_release(self, release_id: int) -> CatalogRelease:
        payload = await self._get_json(f"/releases/{int(release_id)}")
        return parse_catalog_release(self.name, payload)


__all__ = ["DiscogsClient"]
