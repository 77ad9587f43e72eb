"""Action scoring: ranks candidate actions against five Critic criteria.

    criterion        weight  neutral default
    skill            0.25    -
    consequence      0.25    -
    context          0.20    1.0 without a previous turn
    location         0.15    1.0 without a location context
    specificity      0.15    -

Neutral defaults still carry their weight, so a batch scored without context
is not penalised relative to one scored with it.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from narrative_engine.critic import Critic
from narrative_engine.generators.parsing import EmptyResultError, GenerationError, parse_json_output
from narrative_engine.models import (
    CandidateAction,
    LocationContext,
    ParsedAction,
    PreviousTurn,
    ScoredAction,
)

logger = logging.getLogger(__name__)

WEIGHTS = {
    "skill": 0.25,
    "consequence": 0.25,
    "context": 0.20,
    "location": 0.15,
    "specificity": 0.15,
}


def weighted_total(skill: float, consequence: float, context: float,
                   location: float, specificity: float) -> float:
    total = (
        skill * WEIGHTS["skill"]
        + consequence * WEIGHTS["consequence"]
        + context * WEIGHTS["context"]
        + location * WEIGHTS["location"]
        + specificity * WEIGHTS["specificity"]
    )
    return min(1.0, max(0.0, total))


class ActionScorer:
    def __init__(self, critic: Critic) -> None:
        self._critic = critic

    async def _ask(self, question: str) -> float:
        return min(1.0, max(0.0, await self._critic.yes_no(question)))

    async def skill_coherence(self, text: str, skill: str) -> float:
        return await self._ask(
            f"Is the action '{text}' coherent with and appropriate for the skill '{skill}'?"
        )

    async def consequence_plausibility(self, text: str, consequence: str) -> float:
        return await self._ask(
            f"Could the action '{text}' plausibly lead to the consequence '{consequence}'?"
        )

    async def context_coherence(self, text: str, previous: PreviousTurn | None) -> float:
        if previous is None:
            return 1.0
        result = "Success" if previous.succeeded else "Failure"
        return await self._ask(
            f"Previous action: {previous.action_text}\n"
            f"Previous outcome: {result} - {previous.outcome}\n\n"
            f"Current action being considered: {text}\n\n"
            "Does this new action make logical sense as a follow-up to the "
            "previous action and its outcome?"
        )

    async def location_coherence(self, text: str, location: LocationContext | None) -> float:
        if location is None:
            return 1.0
        return await self._ask(
            f"Location: {location.location_type}\n"
            f"Sublocation: {location.sublocation} - {location.description}\n\n"
            f"Action being considered: {text}\n\n"
            "Does this action make sense in this specific location and its surroundings?"
        )

    async def specificity(self, text: str) -> float:
        return await self._ask(
            f"Action: {text}\n\n"
            "Is this action specific and concrete (rather than abstract or overly general)?"
        )

    async def score_one(
        self,
        action: ParsedAction | CandidateAction,
        previous: PreviousTurn | None = None,
        location: LocationContext | None = None,
    ) -> ScoredAction:
        parsed = action.as_parsed() if isinstance(action, CandidateAction) else action
        started = time.perf_counter()
        skill = await self.skill_coherence(parsed.text, parsed.skill)
        consequence = await self.consequence_plausibility(parsed.text, parsed.success_consequence)
        context = await self.context_coherence(parsed.text, previous)
        loc = await self.location_coherence(parsed.text, location)
        specific = await self.specificity(parsed.text)
        return ScoredAction(
            action=action,
            skill_score=skill,
            consequence_score=consequence,
            context_score=context,
            location_score=loc,
            specificity_score=specific,
            total=weighted_total(skill, consequence, context, loc, specific),
            duration_ms=(time.perf_counter() - started) * 1000,
        )

    async def score(
        self,
        actions: list[ParsedAction] | list[CandidateAction],
        previous: PreviousTurn | None = None,
        location: LocationContext | None = None,
    ) -> list[ScoredAction]:
        """Score every action and return them best-first; equal totals keep input order."""
        scored = [await self.score_one(a, previous, location) for a in actions]
        ranked = sorted(scored, key=lambda s: s.total, reverse=True)
        for i, s in enumerate(ranked[:3], start=1):
            text = s.action.text
            logger.info("top %d: %.3f %s", i, s.total, text if len(text) <= 50 else text[:47] + "...")
        return ranked


# ---------------------------------------------------------------------------
# Director response parsing
# ---------------------------------------------------------------------------

def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _keep(value: Any) -> str | None:
    text = _text(value)
    return text if text and text.lower() != "none" else None


def _parse_success(nested: dict[str, Any], action: ParsedAction) -> None:
    action.success_consequence = _text(nested.get("description"))
    changes = nested.get("state_changes")
    if isinstance(changes, dict):
        category, state = _keep(changes.get("category")), _keep(changes.get("new_state"))
        if category and state:
            action.success_state_changes = {category: state}
    action.success_sublocation = _keep(nested.get("sublocation_change"))
    if item := _keep(nested.get("item_gained")):
        action.success_items = [item]
    if companion := _keep(nested.get("companion_gained")):
        action.success_companions = [companion]


def _parse_failure(nested: dict[str, Any], action: ParsedAction) -> None:
    action.failure_type = _text(nested.get("type"))
    action.failure_consequence = _text(nested.get("description"))
    if not action.failure_consequence and action.failure_type:
        action.failure_consequence = f"Your action failed: {action.failure_type}"


def parse_director_response(text: str) -> list[ParsedAction]:
    """Parse a Director `{"actions": [...]}` payload.

    Each action may carry its consequences flat (`success_consequence`) or
    nested (`success_consequences` with state_changes / sublocation_change /
    item_gained / companion_gained); "none" values are dropped.
    """
    data = parse_json_output(text)
    entries = data.get("actions")
    if not isinstance(entries, list):
        logger.warning("Director response has no actions array: %r", text)
        raise GenerationError("Director response has no 'actions' array", raw=text)

    actions: list[ParsedAction] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("Director action %d is not an object, skipped", index)
            continue
        action = ParsedAction(
            text=_text(entry.get("action_text")),
            skill=_text(entry.get("related_skill") or entry.get("skill")),
            difficulty=_text(entry.get("difficulty")),
            risk=_text(entry.get("risk")),
            ends_interaction=bool(entry.get("ends_interaction", False)),
            original_index=index,
        )
        if "success_consequence" in entry:
            action.success_consequence = _text(entry["success_consequence"])
        elif isinstance(entry.get("success_consequences"), dict):
            _parse_success(entry["success_consequences"], action)
        if "failure_consequence" in entry:
            action.failure_consequence = action.failure_type = _text(entry["failure_consequence"])
        elif isinstance(entry.get("failure_consequences"), dict):
            _parse_failure(entry["failure_consequences"], action)
        actions.append(action)

    if not actions:
        logger.warning("Director response contains no usable actions: %r", text)
        raise EmptyResultError("Director response contains no actions", raw=text)
    return actions
