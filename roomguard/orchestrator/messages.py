"""Translate decisions into a moderation action and a chat line."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from roomguard.config import PolicyConfig, RejectAction
from roomguard.core.types import (
    Accept,
    Decision,
    NoData,
    RejectCategory,
    RejectDuration,
    RejectEmbeddability,
    RejectGenre,
    RejectHostTag,
    RejectStyle,
)


class ModerationAction(str, Enum):
    REMOVE_PERFORMER = "remove_performer"
    FORCE_SKIP = "force_skip"
    POSITIVE_REACTION = "positive_reaction"
    NONE = "none"


@dataclass(slots=True, frozen=True)
class Resolution:
    decision: Decision
    action: ModerationAction
    message: str | None


def _listing(values: frozenset[str]) -> str:
    return ", ".join(sorted(values))


def describe(decision: Decision, policy: PolicyConfig) -> str | None:
    """Chat line for a decision; no-data outcomes stay silent."""

    if isinstance(decision, Accept):
        return f"Track checks out: {decision.reference_url}"
    if isinstance(decision, RejectDuration):
        minutes = policy.max_remaining_seconds // 60
        return f"Sorry, tracks longer than {minutes} minutes are not allowed."
    if isinstance(decision, RejectEmbeddability):
        return "Sorry, this video cannot be played in the room."
    if isinstance(decision, RejectCategory):
        return "Sorry, this video belongs to a non-music category."
    if isinstance(decision, RejectHostTag):
        return f"Sorry, found a forbidden tag: {decision.tag}"
    if isinstance(decision, RejectGenre):
        return f"Sorry, found forbidden genres: {_listing(decision.matched)}"
    if isinstance(decision, RejectStyle):
        return f"Sorry, found forbidden styles: {_listing(decision.matched)}"
    if isinstance(decision, NoData):
        return None
    raise TypeError(f"Unsupported decision {type(decision).__name__}")


def render_decision(
    decision: Decision,
    policy: PolicyConfig,
    *,
    reject_action: RejectAction = RejectAction.REMOVE_PERFORMER,
) -> Resolution:
    if decision.is_rejection:
        action = (
            ModerationAction.FORCE_SKIP
            if reject_action is RejectAction.FORCE_SKIP
            else ModerationAction.REMOVE_PERFORMER
        )
    elif isinstance(decision, Accept):
        action = ModerationAction.POSITIVE_REACTION
    else:
        action = ModerationAction.NONE
    return Resolution(decision=decision, action=action, message=describe(decision, policy))


__all__ = ["ModerationAction", "Resolution", "describe", "render_decision"]
