"""Async client for SoundCloud track lookups."""

from __future__ import annotations

import httpx

from roomguard.config import SoundCloudConfig
from roomguard.integrations.contracts import HostItem
from roomguard.integrations.http import HttpProvider
from roomguard.integrations.normalizers import parse_audio_item


class SoundCloudClient(HttpProvider):
    name = "soundcloud"

    def __init__(
        self,
        config: SoundCloudConfig,
        *,
        timeout_ms: int = 8_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url=config.base_url, timeout_ms=timeout_ms, transport=transport)
        self._client_id = config.client_id

    async def get_item(self, item_id: str) -> HostItem:
        params = {"client_id": self._client_id} if self._client_id else None
        payload = await self._get_json(f"/tracks/{item_id}", params=params)
        return parse_audio_item(self.name, payload)


__all__ = ["SoundCloudClient"]
