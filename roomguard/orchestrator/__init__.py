"""Room-side orchestration: resolution, moderation and chat commands."""

from roomguard.orchestrator.commands import ChatCommandHandler
from roomguard.orchestrator.dispatcher import RoomDispatcher
from roomguard.orchestrator.events import AdvanceEvent, ChatEvent, MediaPayload
from roomguard.orchestrator.messages import ModerationAction, Resolution, render_decision
from roomguard.orchestrator.resolver import ResolutionOrchestrator
from roomguard.orchestrator.state import ReferenceStore, ReferenceView

__all__ = [
    "AdvanceEvent",
    "ChatCommandHandler",
    "ChatEvent",
    "MediaPayload",
    "ModerationAction",
    "ReferenceStore",
    "ReferenceView",
    "RoomDispatcher",
    "Resolution",
    "ResolutionOrchestrator",
    "render_decision",
]
