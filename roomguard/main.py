"""Application wiring: provider clients, resolver, dispatcher and health API."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import uvicorn
from fastapi import FastAPI

from roomguard import __version__
from roomguard.api import health as health_api
from roomguard.config import AppConfig, load_config, validate_config
from roomguard.integrations.aggregator import CandidateAggregator
from roomguard.integrations.contracts import RoomClient
from roomguard.integrations.discogs_client import DiscogsClient
from roomguard.integrations.http import HttpProvider
from roomguard.integrations.provider_gateway import ProviderGateway, ProviderGatewayConfig
from roomguard.integrations.soundcloud_client import SoundCloudClient
from roomguard.integrations.web_search_client import GoogleSearchClient
from roomguard.integrations.youtube_client import YouTubeClient
from roomguard.logging import configure_logging, get_logger
from roomguard.orchestrator.commands import ChatCommandHandler
from roomguard.orchestrator.dispatcher import RoomDispatcher
from roomguard.orchestrator.resolver import ResolutionOrchestrator
from roomguard.orchestrator.state import ReferenceStore

logger = get_logger(__name__)


@dataclass(slots=True)
class Runtime:
    """Everything one room session needs, plus the HTTP clients to close."""

    config: AppConfig
    references: ReferenceStore
    orchestrator: ResolutionOrchestrator
    dispatcher: RoomDispatcher
    clients: list[HttpProvider] = field(default_factory=list)

    async def aclose(self) -> None:
        for client in self.clients:
            await client.aclose()


def build_runtime(room: RoomClient, config: AppConfig) -> Runtime:
    def timeout(provider: str) -> int:
        return config.policy_for(provider).timeout_ms

    catalog = DiscogsClient(config.discogs, timeout_ms=timeout(DiscogsClient.name))
    video_host = YouTubeClient(config.youtube, timeout_ms=timeout(YouTubeClient.name))
    audio_host = SoundCloudClient(config.soundcloud, timeout_ms=timeout(SoundCloudClient.name))
    clients: list[HttpProvider] = [catalog, video_host, audio_host]

    web_search: GoogleSearchClient | None = None
    if config.web_search.enabled:
        web_search = GoogleSearchClient(
            config.web_search, timeout_ms=timeout(GoogleSearchClient.name)
        )
        clients.append(web_search)

    gateway = ProviderGateway(ProviderGatewayConfig.from_settings(config))
    aggregator = CandidateAggregator(
        catalog=catalog,
        gateway=gateway,
        web_search=web_search,
        web_search_site=config.web_search.site,
        max_candidates=config.resolver.max_candidates,
    )
    references = ReferenceStore()
    orchestrator = ResolutionOrchestrator(
        room=room,
        aggregator=aggregator,
        gateway=gateway,
        video_host=video_host,
        audio_host=audio_host,
        references=references,
        policy=config.policy,
        config=config.resolver,
    )
    dispatcher = RoomDispatcher(
        room=room,
        orchestrator=orchestrator,
        commands=ChatCommandHandler(
            references.view(), token=config.resolver.reference_command
        ),
        config=config.resolver,
    )
    return Runtime(
        config=config,
        references=references,
        orchestrator=orchestrator,
        dispatcher=dispatcher,
        clients=clients,
    )


def create_app(runtime: Runtime | None = None) -> FastAPI:
    """Build the health API; with a runtime, its dispatcher runs for the app's lifetime."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task: asyncio.Task[None] | None = None
        if runtime is not None:
            task = asyncio.create_task(runtime.dispatcher.run(), name="room-dispatcher")
            logger.info("Room dispatcher started")
        try:
            yield
        finally:
            if runtime is not None:
                runtime.dispatcher.stop()
                if task is not None:
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
                await runtime.aclose()
                logger.info("Room dispatcher stopped")

    app = FastAPI(title="Room Guard", version=__version__, lifespan=lifespan)
    app.state.dispatcher = runtime.dispatcher if runtime is not None else None
    app.include_router(health_api.router)
    return app


def run(room: RoomClient, config: AppConfig | None = None) -> None:
    """Validate configuration, then serve the health API while guarding ``room``."""

    config = validate_config(config or load_config())
    configure_logging(config.logging.level, config.logging.log_file)
    app = create_app(build_runtime(room, config))
    uvicorn.run(app, host=config.health.host, port=config.health.port, log_config=None)


__all__ = ["Runtime", "build_runtime", "create_app", "run"]
