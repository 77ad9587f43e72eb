"""Difficulty and failure-mode evaluation over the Critic."""

from __future__ import annotations

import logging

from narrative_engine.critic import Critic
from narrative_engine.models import DifficultyAssessment, HumorOutcome

logger = logging.getLogger(__name__)

FAILURE_MODES = (
    "injured",
    "lost",
    "equipment_loss",
    "exhaustion",
    "attacked",
    "disease",
)

# Emotional fallout of a failed action, most severe first; ties keep the earlier entry.
FAILURE_HUMORS = (
    (HumorOutcome(changes={"Black Bile": 3}), "frustration and self-criticism"),
    (HumorOutcome(changes={"Yellow Bile": 2}), "irritation and impatience"),
    (HumorOutcome(changes={"Phlegm": 2}), "resignation and acceptance"),
    (HumorOutcome(changes={"Melancholia": 1}), "mild disappointment"),
    (HumorOutcome(changes={"Ether": 1}), "momentary confusion"),
)

# Applied when the action could not be attempted at all.
UNABLE_TO_ACT = HumorOutcome(changes={"Melancholia": 1})

# Upper bounds (exclusive) for each label; anything above the last is "extreme".
DIFFICULTY_LABELS = (
    (0.15, "trivial"),
    (0.30, "easy"),
    (0.45, "basic"),
    (0.60, "moderate"),
    (0.75, "hard"),
    (0.90, "very_hard"),
)


def label_for(score: float) -> str:
    for bound, label in DIFFICULTY_LABELS:
        if score < bound:
            return label
    return "extreme"


def most_plausible(failure_modes: dict[str, float]) -> str:
    """Highest plausibility wins; ties keep the earliest mode."""
    best, best_score = "", -1.0
    for mode, score in failure_modes.items():
        if score > best_score:
            best, best_score = mode, score
    return best


class DifficultyEvaluator:
    """Turns an action text into a DifficultyAssessment.

    One critic question for difficulty, plus one per failure mode, asked in
    FAILURE_MODES order.
    """

    def __init__(self, critic: Critic, failure_modes: tuple[str, ...] = FAILURE_MODES) -> None:
        self._critic = critic
        self._failure_modes = failure_modes

    async def difficulty(self, action_text: str) -> float:
        """1 - P(yes) for "is this easy?"."""
        easy = await self._critic.yes_no(f"Is the action '{action_text}' easy to perform?")
        return min(1.0, max(0.0, 1.0 - easy))

    async def failure_modes(self, action_text: str) -> dict[str, float]:
        modes: dict[str, float] = {}
        for mode in self._failure_modes:
            modes[mode] = await self._critic.yes_no(
                f"If the action '{action_text}' fails, could it plausibly result in '{mode}'?"
            )
        return modes

    async def assess(self, action_text: str) -> DifficultyAssessment:
        score = await self.difficulty(action_text)
        modes = await self.failure_modes(action_text)
        assessment = DifficultyAssessment(
            score=score,
            label=label_for(score),
            failure_modes=modes,
            most_plausible_failure=most_plausible(modes),
        )
        logger.info(
            "difficulty %r: %.3f (%s), likely failure: %s",
            action_text, score, assessment.label, assessment.most_plausible_failure,
        )
        return assessment

    async def plausibility(self, action_text: str) -> float:
        """Average of three sanity questions; used to reject nonsense actions outright."""
        questions = (
            f"Given the context, does the action '{action_text}' make logical sense?",
            f"Is '{action_text}' a reasonable thing to attempt in this situation?",
            f"Would '{action_text}' be physically or logically possible given the circumstances?",
        )
        total = 0.0
        for question in questions:
            total += await self._critic.yes_no(question)
        average = total / len(questions)
        logger.debug("plausibility %r: %.3f", action_text, average)
        return average

    async def failure_humor(self, action_text: str, context: str) -> HumorOutcome:
        """Pick the emotional consequence the critic finds most coherent for a failure.

        One question per FAILURE_HUMORS entry, in order.
        """
        scores: dict[str, float] = {}
        for _, feeling in FAILURE_HUMORS:
            scores[feeling] = await self._critic.yes_no(
                f"In the context '{context}', if the action '{action_text}' fails, "
                f"is '{feeling}' a coherent emotional consequence?"
            )
        chosen = most_plausible(scores)
        logger.info("failure of %r felt as %s", action_text, chosen)
        return next(outcome for outcome, feeling in FAILURE_HUMORS if feeling == chosen)
