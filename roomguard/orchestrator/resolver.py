"""Per-advance resolution: prechecks, catalog lookup, policy, moderation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from time import perf_counter

from roomguard.config import PolicyConfig, ResolverConfig
from roomguard.core.artist import extract_artist
from roomguard.core.matching import select_best
from roomguard.core.normalizer import normalize_title
from roomguard.core.policy import decide
from roomguard.core.types import (
    Accept,
    Artist,
    Decision,
    HostingPlatform,
    NoData,
    NormalizedTitle,
    Query,
    RejectDuration,
    RejectEmbeddability,
    RejectHostTag,
    Release,
)
from roomguard.errors import ResolutionError
from roomguard.integrations.aggregator import CandidateAggregator
from roomguard.integrations.contracts import HostClient, HostItem, ProviderError, RoomClient
from roomguard.integrations.provider_gateway import ProviderGateway
from roomguard.logging import get_logger
from roomguard.logging_events import elapsed_ms, log_event
from roomguard.orchestrator.events import AdvanceEvent
from roomguard.orchestrator.messages import ModerationAction, Resolution, render_decision
from roomguard.orchestrator.state import ReferenceStore
from roomguard.utils.retry import BackoffPolicy, RetryDirective, with_retry

logger = get_logger(__name__)


class ResolutionStage(str, Enum):
    DURATION_CHECK = "duration_check"
    HOST_PRECHECK = "host_precheck"
    CATALOG_RESOLVE = "catalog_resolve"
    POLICY_DECISION = "policy_decision"


@dataclass(slots=True, frozen=True)
class HostCheck:
    """Outcome of the host precheck: a rejection, or what the catalog needs."""

    title: str
    category_ok: bool
    decision: Decision | None = None


def find_forbidden_tag(tags: tuple[str, ...], forbidden: tuple[str, ...]) -> str | None:
    """First host tag containing any forbidden term (case-insensitive)."""

    terms = [term.lower() for term in forbidden if term]
    for tag in tags:
        lowered = tag.lower()
        if any(term in lowered for term in terms):
            return tag
    return None


class ResolutionOrchestrator:
    """Drives one track advance from raw event to a single moderation action.

    Advances are handled strictly one at a time by the dispatcher; nothing
    here is shared between resolutions except the reference store.
    """

    def __init__(
        self,
        *,
        room: RoomClient,
        aggregator: CandidateAggregator,
        gateway: ProviderGateway,
        video_host: HostClient,
        audio_host: HostClient,
        references: ReferenceStore,
        policy: PolicyConfig,
        config: ResolverConfig | None = None,
    ) -> None:
        self._room = room
        self._aggregator = aggregator
        self._gateway = gateway
        self._video_host = video_host
        self._audio_host = audio_host
        self._references = references
        self._policy = policy
        self._config = config or ResolverConfig()

    @property
    def references(self) -> ReferenceStore:
        return self._references

    async def handle_advance(self, event: AdvanceEvent) -> Resolution | None:
        if event.media is None:
            return None
        query = Query(
            raw_title=event.media.display_title,
            hosting_platform=HostingPlatform.from_provider_id(event.media.provider_id),
            provider_id=event.media.provider_id,
        )
        started = perf_counter()
        decision, stage = await self.resolve(query)
        resolution = render_decision(decision, self._policy, reject_action=self._config.reject_action)
        log_event(
            logger,
            "resolver.decision",
            component="resolver",
            status=decision.kind.value,
            stage=stage.value,
            provider_id=query.provider_id,
            action=resolution.action.value,
            duration_ms=elapsed_ms(started),
        )
        await self._apply(resolution, performer_id=event.performer_id)
        return resolution

    async def resolve(self, query: Query) -> tuple[Decision, ResolutionStage]:
        """Return the decision and the stage that produced it."""

        remaining = await self._room.get_remaining_time()
        if remaining > self._policy.max_remaining_seconds:
            return RejectDuration(remaining_seconds=remaining), ResolutionStage.DURATION_CHECK

        host = await self._host_precheck(query)
        if host.decision is not None:
            return host.decision, ResolutionStage.HOST_PRECHECK

        title = normalize_title(host.title)
        artist = extract_artist(title)
        try:
            releases = await self._resolve_catalog(query, title, artist, raw_title=host.title)
        except ResolutionError as exc:
            # An unreachable catalog counts as no catalog data; the category check still applies.
            logger.warning("Catalog unavailable for %r after %d attempts", host.title, exc.attempts)
            releases = []

        match = select_best(title, releases)
        if match is None:
            logger.warning("No data found for %r in the catalog", host.title)
        else:
            logger.info(
                "Best match for %r: %r (similarity %d, release %d)",
                title.text,
                match.track,
                match.similarity,
                match.release.id,
            )
        decision = decide(match, artist, host.category_ok, self._policy)
        if isinstance(decision, Accept):
            self._references.set(decision.reference_url)
        elif isinstance(decision, NoData):
            self._references.clear()
        return decision, ResolutionStage.POLICY_DECISION

    async def _host_precheck(self, query: Query) -> HostCheck:
        client = (
            self._video_host
            if query.hosting_platform is HostingPlatform.VIDEO_HOST
            else self._audio_host
        )
        try:
            item: HostItem = await self._gateway.call(
                client.name, "get_item", lambda: client.get_item(query.provider_id)
            )
        except ProviderError as exc:
            logger.warning(
                "Host lookup for %s failed (%s); using the room title", query.provider_id, exc
            )
            return HostCheck(title=query.raw_title, category_ok=True)

        title = item.title or query.raw_title
        if not item.embeddable:
            return HostCheck(title=title, category_ok=True, decision=RejectEmbeddability())

        tag = find_forbidden_tag(item.tags, self._policy.forbidden_host_tags)
        if tag is not None:
            logger.info("Skipping %r due to host tag %r", title, tag)
            return HostCheck(title=title, category_ok=True, decision=RejectHostTag(tag=tag))

        category_ok = (
            item.category_id is None or item.category_id == self._policy.music_category_id
        )
        return HostCheck(title=title, category_ok=category_ok)

    async def _resolve_catalog(
        self, query: Query, title: NormalizedTitle, artist: Artist, *, raw_title: str
    ) -> list[Release]:
        attempts = max(1, self._config.max_attempts)

        def _on_retry(attempt: int, error: Exception, delay_ms: float) -> None:
            log_event(
                logger,
                "resolver.retry",
                level=logging.WARNING,
                component="resolver",
                status="retry",
                provider_id=query.provider_id,
                attempt=attempt,
                max_attempts=attempts,
                delay_ms=int(delay_ms),
                error=error.__class__.__name__,
            )

        try:
            return await with_retry(
                lambda: self._aggregator.aggregate(title, artist, raw_title=raw_title),
                attempts=attempts,
                backoff=BackoffPolicy(base_ms=self._config.backoff_base_ms),
                timeout_ms=None,
                classify_err=lambda exc: RetryDirective(retry=isinstance(exc, ProviderError)),
                on_retry=_on_retry,
            )
        except ProviderError as exc:
            raise ResolutionError(
                f"catalog resolution failed for {query.provider_id}", attempts=attempts, cause=exc
            ) from exc

    async def _apply(self, resolution: Resolution, *, performer_id: str | None) -> None:
        action = resolution.action
        if action is ModerationAction.REMOVE_PERFORMER:
            target = performer_id or await self._room.get_current_performer_id()
            if target is not None:
                await self._room.remove_performer(target)
            else:
                await self._room.force_skip()
        elif action is ModerationAction.FORCE_SKIP:
            await self._room.force_skip()
        elif action is ModerationAction.POSITIVE_REACTION:
            await self._room.signal_positive_reaction()

        if resolution.message is None:
            return
        if resolution.decision.is_rejection or self._config.announce_all:
            await self._room.send_chat(resolution.message)


__all__ = [
    "HostCheck",
    "ResolutionOrchestrator",
    "ResolutionStage",
    "find_forbidden_tag",
]
