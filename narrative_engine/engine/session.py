"""Per-node session state. Replaced wholesale on every node transition."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from narrative_engine.models import CandidateAction, Node, PreviousTurn, Skill

DEFAULT_THINKING_ATTEMPTS = 3


class Phase(str, Enum):
    IDLE = "idle"
    OBSERVING = "observing"
    READY = "ready"
    THINKING_SKILL_PENDING = "thinking_skill_pending"
    THINKING = "thinking"
    FOCUS_OBSERVING = "focus_observing"
    ACTIONS_READY = "actions_ready"
    ACTION_EXECUTING = "action_executing"
    CONTINUE_PENDING = "continue_pending"
    TRANSITIONING = "transitioning"
    EXIT_REQUESTED = "exit_requested"
    ERROR = "error"


LOADING_PHASES = frozenset({
    Phase.OBSERVING,
    Phase.THINKING,
    Phase.FOCUS_OBSERVING,
    Phase.ACTION_EXECUTING,
    Phase.TRANSITIONING,
})

LOADING_MESSAGES = {
    Phase.OBSERVING: "Observing your surroundings...",
    Phase.THINKING: "Thinking deeply...",
    Phase.FOCUS_OBSERVING: "Looking closer...",
    Phase.ACTION_EXECUTING: "Attempting the action...",
    Phase.TRANSITIONING: "Moving on...",
}


class NodeSession(BaseModel):
    """Everything the engine knows about the node currently occupied."""

    node: Node
    thinking_attempts: int = DEFAULT_THINKING_ATTEMPTS
    keywords: list[str] = Field(default_factory=list)
    actions: list[CandidateAction] = Field(default_factory=list)  # flattened, by global index
    pending_keyword: str | None = None
    pending_focus: bool = False
    resume_phase: Phase = Phase.READY  # where cancel_skill_choice returns to
    thinking_skill: Skill | None = None
    pending_transition: str | None = None
    previous_turn: PreviousTurn | None = None

    def live_keyword(self, keyword: str) -> str | None:
        """The live keyword matching `keyword` case-insensitively, if any."""
        wanted = keyword.lower()
        return next((k for k in self.keywords if k.lower() == wanted), None)

    def add_keywords(self, keywords: tuple[str, ...] | list[str] | None) -> None:
        for kw in keywords or ():
            if self.live_keyword(kw) is None:
                self.keywords.append(kw)

    @property
    def steady_phase(self) -> Phase:
        return Phase.ACTIONS_READY if self.actions else Phase.READY
