from __future__ import annotations

import pytest

from roomguard.config import PolicyConfig, RejectAction
from roomguard.core.types import (
    Accept,
    NoData,
    RejectCategory,
    RejectDuration,
    RejectEmbeddability,
    RejectGenre,
    RejectHostTag,
    RejectStyle,
)
from roomguard.orchestrator.messages import ModerationAction, describe, render_decision

POLICY = PolicyConfig(max_remaining_seconds=1200)


@pytest.mark.parametrize(
    ("decision", "message"),
    [
        (Accept(reference_url="https://d/1"), "Track checks out: https://d/1"),
        (RejectDuration(remaining_seconds=1500), "Sorry, tracks longer than 20 minutes are not allowed."),
        (RejectEmbeddability(), "Sorry, this video cannot be played in the room."),
        (RejectCategory(category_id="20"), "Sorry, this video belongs to a non-music category."),
        (RejectHostTag(tag="nightcore"), "Sorry, found a forbidden tag: nightcore"),
        (RejectGenre(matched=frozenset({"rock", "metal"})), "Sorry, found forbidden genres: metal, rock"),
        (RejectStyle(matched=frozenset({"grindcore"})), "Sorry, found forbidden styles: grindcore"),
        (NoData(), None),
    ],
)
def test_describe(decision, message) -> None:
    assert describe(decision, POLICY) == message


def test_every_rejection_maps_to_one_removal() -> None:
    for decision in (RejectEmbeddability(), RejectHostTag(tag="x"), RejectGenre(matched=frozenset({"a"}))):
        assert render_decision(decision, POLICY).action is ModerationAction.REMOVE_PERFORMER


def test_reject_action_can_force_skip() -> None:
    resolution = render_decision(RejectCategory(), POLICY, reject_action=RejectAction.FORCE_SKIP)

    assert resolution.action is ModerationAction.FORCE_SKIP


def test_accept_and_no_data_actions() -> None:
    assert render_decision(Accept(reference_url="u"), POLICY).action is ModerationAction.POSITIVE_REACTION
    resolution = render_decision(NoData(), POLICY)
    assert resolution.action is ModerationAction.NONE
    assert resolution.message is None
