"""Application configuration utilities for roomguard.

Values are resolved with the precedence ``process environment > .env file >
defaults``. Everything is parsed once into frozen dataclasses; the rest of
the code base never reads ``os.environ`` directly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from roomguard.errors import ConfigurationError
from roomguard.logging import get_logger

logger = get_logger(__name__)

DEFAULT_EXTERNAL_TIMEOUT_MS = 8_000
DEFAULT_EXTERNAL_RETRY_MAX = 1
DEFAULT_EXTERNAL_BACKOFF_BASE_MS = 250
DEFAULT_EXTERNAL_JITTER_PCT = 20.0

DEFAULT_MAX_REMAINING_SECONDS = 20 * 60
DEFAULT_MUSIC_CATEGORY_ID = "10"
DEFAULT_GENRE_RELEVANCE_THRESHOLD = 0.66
DEFAULT_ACCEPT_RELEVANCE_THRESHOLD = 0.5

DEFAULT_RESOLVE_MAX_ATTEMPTS = 3
DEFAULT_RESOLVE_BACKOFF_BASE_MS = 500
DEFAULT_MAX_CANDIDATES = 4
DEFAULT_REFERENCE_COMMAND = "!r"
DEFAULT_RECONNECT_BACKOFF_MS = 2_000
DEFAULT_RECONNECT_MAX_DELAY_MS = 60_000

DEFAULT_HEALTH_PORT = 8080

KNOWN_PROVIDERS: tuple[str, ...] = ("discogs", "youtube", "soundcloud", "websearch")

_RUNTIME_ENV_CACHE: dict[str, str] | None = None


class RejectAction(str, Enum):
    """Moderation action requested for any rejection decision."""

    REMOVE_PERFORMER = "remove"
    FORCE_SKIP = "skip"


@dataclass(slots=True, frozen=True)
class ExternalCallPolicy:
    timeout_ms: int
    retry_max: int
    backoff_base_ms: int
    jitter_pct: float

    @classmethod
    def from_env(cls, env: Mapping[str, Any], *, prefix: str = "EXTERNAL") -> ExternalCallPolicy:
        return cls(
            timeout_ms=_bounded_int(
                env.get(f"{prefix}_TIMEOUT_MS"),
                default=DEFAULT_EXTERNAL_TIMEOUT_MS,
                minimum=100,
            ),
            retry_max=_bounded_int(
                env.get(f"{prefix}_RETRY_MAX"),
                default=DEFAULT_EXTERNAL_RETRY_MAX,
                minimum=0,
            ),
            backoff_base_ms=_bounded_int(
                env.get(f"{prefix}_BACKOFF_BASE_MS"),
                default=DEFAULT_EXTERNAL_BACKOFF_BASE_MS,
                minimum=1,
            ),
            jitter_pct=_parse_jitter_value(
                env.get(f"{prefix}_JITTER_PCT"),
                default_pct=DEFAULT_EXTERNAL_JITTER_PCT,
            ),
        )


@dataclass(slots=True, frozen=True)
class ProviderProfile:
    name: str
    policy: ExternalCallPolicy


@dataclass(slots=True, frozen=True)
class DiscogsConfig:
    base_url: str
    consumer_key: str | None
    consumer_secret: str | None
    user_agent: str


@dataclass(slots=True, frozen=True)
class YouTubeConfig:
    base_url: str
    api_key: str | None


@dataclass(slots=True, frozen=True)
class SoundCloudConfig:
    base_url: str
    client_id: str | None


@dataclass(slots=True, frozen=True)
class WebSearchConfig:
    base_url: str
    api_key: str | None
    engine_id: str | None
    site: str

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.engine_id)


@dataclass(slots=True, frozen=True)
class PolicyConfig:
    """Blocklists and thresholds consumed by the policy evaluator."""

    blocked_genres: frozenset[str] = frozenset()
    blocked_styles: frozenset[str] = frozenset()
    forbidden_host_tags: tuple[str, ...] = ()
    music_category_id: str = DEFAULT_MUSIC_CATEGORY_ID
    max_remaining_seconds: int = DEFAULT_MAX_REMAINING_SECONDS
    genre_relevance_threshold: float = DEFAULT_GENRE_RELEVANCE_THRESHOLD
    accept_relevance_threshold: float = DEFAULT_ACCEPT_RELEVANCE_THRESHOLD


@dataclass(slots=True, frozen=True)
class ResolverConfig:
    max_attempts: int = DEFAULT_RESOLVE_MAX_ATTEMPTS
    backoff_base_ms: int = DEFAULT_RESOLVE_BACKOFF_BASE_MS
    max_candidates: int = DEFAULT_MAX_CANDIDATES
    reject_action: RejectAction = RejectAction.REMOVE_PERFORMER
    reference_command: str = DEFAULT_REFERENCE_COMMAND
    announce_all: bool = False
    reconnect_backoff_ms: int = DEFAULT_RECONNECT_BACKOFF_MS
    reconnect_max_delay_ms: int = DEFAULT_RECONNECT_MAX_DELAY_MS


@dataclass(slots=True, frozen=True)
class HealthServerConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_HEALTH_PORT


@dataclass(slots=True, frozen=True)
class LoggingConfig:
    level: str = "INFO"
    log_file: str | None = None


@dataclass(slots=True, frozen=True)
class AppConfig:
    discogs: DiscogsConfig
    youtube: YouTubeConfig
    soundcloud: SoundCloudConfig
    web_search: WebSearchConfig
    policy: PolicyConfig
    resolver: ResolverConfig
    health: HealthServerConfig
    logging: LoggingConfig
    external: ExternalCallPolicy
    provider_profiles: Mapping[str, ProviderProfile] = field(default_factory=dict)

    def policy_for(self, provider: str) -> ExternalCallPolicy:
        profile = self.provider_profiles.get(provider.lower())
        return profile.policy if profile is not None else self.external


def _load_env_file(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    env_values: dict[str, str] = {}
    for line in contents.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        env_values[key.strip()] = value.strip().strip('"').strip("'")
    return env_values


def load_runtime_env(
    *,
    env_file: str | os.PathLike[str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge the ``.env`` file (if any) under the explicit environment."""

    source = dict(base_env if base_env is not None else os.environ)
    env: dict[str, str] = {}
    path = Path(env_file) if env_file is not None else Path(source.get("ROOMGUARD_ENV_FILE", ".env"))
    if path.exists() and path.is_file():
        env.update(_load_env_file(path))
    env.update({key: str(value) for key, value in source.items() if value is not None})
    return env


def get_runtime_env() -> Mapping[str, str]:
    global _RUNTIME_ENV_CACHE
    if _RUNTIME_ENV_CACHE is None:
        _RUNTIME_ENV_CACHE = load_runtime_env()
    return _RUNTIME_ENV_CACHE


def override_runtime_env(runtime_env: Mapping[str, str] | None) -> None:
    """Override the cached runtime environment (primarily for testing)."""

    global _RUNTIME_ENV_CACHE
    _RUNTIME_ENV_CACHE = None if runtime_env is None else dict(runtime_env)


def _as_bool(value: str | None, *, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _bounded_int(
    value: Any,
    *,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    resolved = _coerce_int(value, default=default)
    if minimum is not None:
        resolved = max(minimum, resolved)
    if maximum is not None:
        resolved = min(maximum, resolved)
    return resolved


def _bounded_float(
    value: Any,
    *,
    default: float,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    try:
        resolved = float(value)
    except (TypeError, ValueError):
        resolved = default
    if minimum is not None:
        resolved = max(minimum, resolved)
    if maximum is not None:
        resolved = min(maximum, resolved)
    return resolved


def _parse_list(value: str | None) -> list[str]:
    if value is None:
        return []
    candidates = value.replace("\n", ",").split(",")
    return [item.strip() for item in candidates if item.strip()]


def _parse_jitter_value(value: Any, *, default_pct: float) -> float:
    resolved = default_pct
    if value is not None:
        try:
            resolved = float(value)
        except (TypeError, ValueError):
            resolved = default_pct
    if resolved < 0:
        return 0.0
    if resolved <= 1:
        return resolved
    return resolved / 100.0


def _optional(env: Mapping[str, Any], key: str) -> str | None:
    value = env.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_reject_action(value: str | None) -> RejectAction:
    if value is None:
        return RejectAction.REMOVE_PERFORMER
    try:
        return RejectAction(value.strip().lower())
    except ValueError:
        logger.warning("Unknown REJECT_ACTION %r; falling back to 'remove'.", value)
        return RejectAction.REMOVE_PERFORMER


def _load_provider_profiles(
    env: Mapping[str, Any], default_policy: ExternalCallPolicy
) -> dict[str, ProviderProfile]:
    profiles: dict[str, ProviderProfile] = {}
    for provider in KNOWN_PROVIDERS:
        prefix = f"PROVIDER_{provider.upper()}"
        keys = (
            f"{prefix}_TIMEOUT_MS",
            f"{prefix}_RETRY_MAX",
            f"{prefix}_BACKOFF_BASE_MS",
            f"{prefix}_JITTER_PCT",
        )
        if not any(key in env for key in keys):
            continue
        policy = ExternalCallPolicy(
            timeout_ms=_bounded_int(env.get(keys[0]), default=default_policy.timeout_ms, minimum=100),
            retry_max=_bounded_int(env.get(keys[1]), default=default_policy.retry_max, minimum=0),
            backoff_base_ms=_bounded_int(
                env.get(keys[2]), default=default_policy.backoff_base_ms, minimum=1
            ),
            jitter_pct=_parse_jitter_value(env.get(keys[3]), default_pct=default_policy.jitter_pct),
        )
        profiles[provider] = ProviderProfile(name=provider, policy=policy)
    return profiles


def load_policy_config(env: Mapping[str, Any]) -> PolicyConfig:
    genre_threshold = _bounded_float(
        env.get("GENRE_RELEVANCE_THRESHOLD"),
        default=DEFAULT_GENRE_RELEVANCE_THRESHOLD,
        minimum=0.0,
        maximum=1.0,
    )
    return PolicyConfig(
        blocked_genres=frozenset(_parse_list(_optional(env, "BLOCKED_GENRES"))),
        blocked_styles=frozenset(_parse_list(_optional(env, "BLOCKED_STYLES"))),
        forbidden_host_tags=tuple(
            tag.lower() for tag in _parse_list(_optional(env, "FORBIDDEN_HOST_TAGS"))
        ),
        music_category_id=_optional(env, "MUSIC_CATEGORY_ID") or DEFAULT_MUSIC_CATEGORY_ID,
        max_remaining_seconds=_bounded_int(
            env.get("MAX_REMAINING_SECONDS"),
            default=DEFAULT_MAX_REMAINING_SECONDS,
            minimum=1,
        ),
        genre_relevance_threshold=genre_threshold,
        accept_relevance_threshold=_bounded_float(
            env.get("ACCEPT_RELEVANCE_THRESHOLD"),
            default=DEFAULT_ACCEPT_RELEVANCE_THRESHOLD,
            minimum=0.0,
            maximum=1.0,
        ),
    )


def load_config(runtime_env: Mapping[str, Any] | None = None) -> AppConfig:
    """Build the application configuration from the runtime environment."""

    env = runtime_env if runtime_env is not None else get_runtime_env()
    external = ExternalCallPolicy.from_env(env)

    resolver = ResolverConfig(
        max_attempts=_bounded_int(
            env.get("RESOLVE_MAX_ATTEMPTS"), default=DEFAULT_RESOLVE_MAX_ATTEMPTS, minimum=1
        ),
        backoff_base_ms=_bounded_int(
            env.get("RESOLVE_BACKOFF_BASE_MS"), default=DEFAULT_RESOLVE_BACKOFF_BASE_MS, minimum=1
        ),
        max_candidates=_bounded_int(
            env.get("MAX_CANDIDATES"), default=DEFAULT_MAX_CANDIDATES, minimum=1, maximum=20
        ),
        reject_action=_parse_reject_action(_optional(env, "REJECT_ACTION")),
        reference_command=_optional(env, "REFERENCE_COMMAND") or DEFAULT_REFERENCE_COMMAND,
        announce_all=_as_bool(_optional(env, "ANNOUNCE_ALL"), default=False),
        reconnect_backoff_ms=_bounded_int(
            env.get("RECONNECT_BACKOFF_MS"), default=DEFAULT_RECONNECT_BACKOFF_MS, minimum=0
        ),
        reconnect_max_delay_ms=_bounded_int(
            env.get("RECONNECT_MAX_DELAY_MS"), default=DEFAULT_RECONNECT_MAX_DELAY_MS, minimum=0
        ),
    )

    return AppConfig(
        discogs=DiscogsConfig(
            base_url=_optional(env, "DISCOGS_BASE_URL") or "https://api.discogs.com",
            consumer_key=_optional(env, "DISCOGS_CONSUMER_KEY"),
            consumer_secret=_optional(env, "DISCOGS_CONSUMER_SECRET"),
            user_agent=_optional(env, "DISCOGS_USER_AGENT") or "roomguard/0.3",
        ),
        youtube=YouTubeConfig(
            base_url=_optional(env, "YOUTUBE_BASE_URL") or "https://www.googleapis.com/youtube/v3",
            api_key=_optional(env, "YOUTUBE_API_KEY"),
        ),
        soundcloud=SoundCloudConfig(
            base_url=_optional(env, "SOUNDCLOUD_BASE_URL") or "https://api.soundcloud.com",
            client_id=_optional(env, "SOUNDCLOUD_CLIENT_ID"),
        ),
        web_search=WebSearchConfig(
            base_url=_optional(env, "WEB_SEARCH_BASE_URL")
            or "https://www.googleapis.com/customsearch",
            api_key=_optional(env, "WEB_SEARCH_API_KEY"),
            engine_id=_optional(env, "WEB_SEARCH_ENGINE_ID"),
            site=_optional(env, "WEB_SEARCH_SITE") or "discogs.com",
        ),
        policy=load_policy_config(env),
        resolver=resolver,
        health=HealthServerConfig(
            host=_optional(env, "HEALTH_HOST") or "0.0.0.0",
            port=_bounded_int(
                env.get("HEALTH_PORT"), default=DEFAULT_HEALTH_PORT, minimum=1, maximum=65535
            ),
        ),
        logging=LoggingConfig(
            level=_optional(env, "LOG_LEVEL") or "INFO",
            log_file=_optional(env, "LOG_FILE"),
        ),
        external=external,
        provider_profiles=_load_provider_profiles(env, external),
    )


def validate_config(config: AppConfig) -> AppConfig:
    """Raise :class:`ConfigurationError` when the bot cannot run safely."""

    missing: list[str] = []
    if not config.discogs.consumer_key:
        missing.append("DISCOGS_CONSUMER_KEY")
    if not config.discogs.consumer_secret:
        missing.append("DISCOGS_CONSUMER_SECRET")
    if not config.youtube.api_key:
        missing.append("YOUTUBE_API_KEY")
    if not config.soundcloud.client_id:
        missing.append("SOUNDCLOUD_CLIENT_ID")
    if not config.policy.blocked_genres and not config.policy.blocked_styles:
        missing.append("BLOCKED_GENRES|BLOCKED_STYLES")
    if missing:
        raise ConfigurationError(
            "Missing required configuration: " + ", ".join(missing),
            missing=tuple(missing),
        )
    return config


__all__ = [
    "AppConfig",
    "DiscogsConfig",
    "ExternalCallPolicy",
    "HealthServerConfig",
    "LoggingConfig",
    "PolicyConfig",
    "ProviderProfile",
    "RejectAction",
    "ResolverConfig",
    "SoundCloudConfig",
    "WebSearchConfig",
    "YouTubeConfig",
    "get_runtime_env",
    "load_config",
    "load_policy_config",
    "load_runtime_env",
    "override_runtime_env",
    "validate_config",
]
