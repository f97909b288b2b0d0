"""Async client for YouTube Data API video lookups."""

from __future__ import annotations

import httpx

from roomguard.config import YouTubeConfig
from roomguard.integrations.contracts import HostItem
from roomguard.integrations.http import HttpProvider
from roomguard.integrations.normalizers import parse_video_item


class YouTubeClient(HttpProvider):
    name = "youtube"

    def __init__(
        self,
        config: YouTubeConfig,
        *,
        timeout_ms: int = 8_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url=config.base_url, timeout_ms=timeout_ms, transport=transport)
        self._api_key = config.api_key

    async def get_item(self, item_id: str) -> HostItem:
        params = {"part": "snippet,status", "id": item_id}
        if self._api_key:
            params["key"] = self._api_key
        payload = await self._get_json("/videos", params=params)
        return parse_video_item(self.name, payload)


__all__ = ["YouTubeClient"]
