"""Outcome resolution: difficulty (or a forced result) into an ActionResult,
and application of results and outcomes to the avatar."""

from __future__ import annotations

import logging
import random
import re
from collections.abc import Mapping

from narrative_engine.models import (
    ActionResult,
    Avatar,
    CompanionOutcome,
    DifficultyAssessment,
    HumorOutcome,
    ItemOutcome,
    Outcome,
    ParsedAction,
    Skill,
    SkillOutcome,
)

logger = logging.getLogger(__name__)

SENTINELS = ("", "none")

_EXIT_RE = re.compile(r"return|leave|exit|go back", re.IGNORECASE)

DEFAULT_FAILURE = "Things go wrong, and you are forced to withdraw."


def success_probability(difficulty: float) -> float:
    """0.95 at difficulty 0, falling linearly to 0.05 at difficulty 1."""
    difficulty = min(1.0, max(0.0, difficulty))
    return 0.95 - 0.90 * difficulty


def is_exit_action(text: str) -> bool:
    return _EXIT_RE.search(text) is not None


def difficulty_class(difficulty: float) -> int:
    """Map difficulty to a d20 DC: 5 for trivial up to 20 for the hardest."""
    difficulty = min(1.0, max(0.0, difficulty))
    return max(1, min(20, round(5 + 15 * difficulty)))


def roll_d20(level: int, dc: int, rng: random.Random) -> tuple[bool, int]:
    """Return (success, raw roll) for d20 + level against dc."""
    roll = rng.randint(1, 20)
    success = roll + level >= dc
    logger.info("skill check: d20(%d) + %d vs DC %d -> %s", roll, level, dc,
                "success" if success else "failure")
    return success, roll


def _is_sentinel(value: str | None) -> bool:
    return value is None or value.strip().lower() in SENTINELS


def _clean_list(values: list[str]) -> list[str]:
    return [v for v in values if not _is_sentinel(v)]


class OutcomeResolver:
    """Resolves one action into success or failure.

    The random source is injectable so callers and tests can seed it.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def roll(self, difficulty: float) -> bool:
        p = success_probability(difficulty)
        draw = self._rng.random()
        logger.info("roll %.3f vs p(success) %.3f", draw, p)
        return draw < p

    def skill_check(self, level: int, difficulty: float) -> bool:
        """d20 + skill level against the DC for `difficulty`."""
        success, _ = roll_d20(level, difficulty_class(difficulty), self._rng)
        return success

    def resolve(
        self,
        action: ParsedAction,
        assessment: DifficultyAssessment | None = None,
        *,
        force_success: bool | None = None,
    ) -> ActionResult:
        if is_exit_action(action.text):
            logger.info("exit intent recognised: %r", action.text)
            return ActionResult.exit()

        if force_success is None:
            if assessment is None:
                raise ValueError("resolve() needs an assessment unless force_success is given")
            succeeded = self.roll(assessment.score)
        else:
            succeeded = force_success

        if not succeeded:
            return ActionResult.failure(action.failure_consequence or DEFAULT_FAILURE)

        state_changes = {
            category: state
            for category, state in action.success_state_changes.items()
            if not _is_sentinel(category) and not _is_sentinel(state)
        }
        sublocation = action.success_sublocation
        return ActionResult(
            success=True,
            narrative=action.success_consequence or f"You {action.text[:1].lower()}{action.text[1:]}.",
            state_changes=state_changes,
            new_sublocation=None if _is_sentinel(sublocation) else sublocation,
            items_gained=_clean_list(action.success_items),
            companions_gained=_clean_list(action.success_companions),
            ends_interaction=action.ends_interaction,
        )


def apply_result(avatar: Avatar, result: ActionResult) -> None:
    """Merge a successful result's deltas into the avatar."""
    if not result.success:
        return
    avatar.location_states.update(result.state_changes)
    if result.new_sublocation:
        avatar.sublocation = result.new_sublocation
    for item in result.items_gained:
        if item not in avatar.inventory:
            avatar.inventory.append(item)
    for companion in result.companions_gained:
        if companion not in avatar.companions:
            avatar.companions.append(companion)


def apply_outcome(
    avatar: Avatar, outcome: Outcome, known_skills: Mapping[str, Skill] | None = None
) -> None:
    """Write an achieved outcome into the avatar. Transitions are handled by the engine."""
    if isinstance(outcome, ItemOutcome):
        if outcome.item_id not in avatar.inventory:
            avatar.inventory.append(outcome.item_id)
    elif isinstance(outcome, CompanionOutcome):
        if outcome.companion_id not in avatar.companions:
            avatar.companions.append(outcome.companion_id)
    elif isinstance(outcome, SkillOutcome):
        skill = (known_skills or {}).get(outcome.skill_id)
        if skill is None:
            logger.warning("Unknown skill %r in outcome; not learned", outcome.skill_id)
        elif avatar.get_skill(skill.id) is None:
            avatar.skills.append(skill.model_copy())
    elif isinstance(outcome, HumorOutcome):
        for name, delta in outcome.changes.items():
            current = avatar.humors.get(name, 50)
            avatar.humors[name] = max(0, min(100, current + delta))
