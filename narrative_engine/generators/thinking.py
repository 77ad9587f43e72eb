"""Thinking phase: reason about a keyword and propose candidate actions."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from narrative_engine.llm import LLM
from narrative_engine.models import (
    Avatar,
    CandidateAction,
    Node,
    Outcome,
    Skill,
    ThinkingResult,
    outcome_from_text,
)
from narrative_engine.prompts import THINKING_TEMPLATE, build_context, render_prompt

from .parsing import EmptyResultError, GenerationError, parse_json_output, require_text

logger = logging.getLogger(__name__)


class ThinkingGenerator(Protocol):
    async def generate(
        self,
        skill: Skill,
        keyword: str,
        node: Node,
        possible_outcomes: list[Outcome],
        action_skills: list[Skill],
        avatar: Avatar,
    ) -> ThinkingResult: ...


def _parse_action(
    entry: Any, action_skills: list[Skill], possible_outcomes: list[Outcome]
) -> CandidateAction | None:
    if not isinstance(entry, dict):
        return None
    text = entry.get("action_description")
    if not isinstance(text, str) or not text.strip():
        return None
    wanted = str(entry.get("action_skill", "")).strip().lower()
    skill = next((s for s in action_skills if wanted in (s.id.lower(), s.name.lower())), None)
    if skill is None:
        logger.warning("Action %r names unknown action skill %r, skipped", text, wanted)
        return None
    outcome = outcome_from_text(str(entry.get("outcome", "")), possible_outcomes)
    if outcome is None:
        logger.warning("Action %r names an outcome that was not offered, skipped", text)
        return None
    return CandidateAction(
        text=text.strip(),
        skill_id=skill.id,
        skill_name=skill.name,
        skill_level=skill.level,
        outcome=outcome,
    )


def thinking_result(
    raw: str, action_skills: list[Skill], possible_outcomes: list[Outcome]
) -> ThinkingResult:
    """Parse `{"reasoning_text": ..., "actions": [...]}`. Zero usable actions is an error."""
    data = parse_json_output(raw)
    reasoning = require_text(data, "reasoning_text", raw=raw)
    entries = data.get("actions")
    if not isinstance(entries, list):
        raise GenerationError("Thinking output has no 'actions' array", raw=raw)
    actions = [
        a for a in (_parse_action(e, action_skills, possible_outcomes) for e in entries)
        if a is not None
    ]
    if not actions:
        raise EmptyResultError("Thinking produced no usable actions", raw=raw)
    return ThinkingResult(reasoning=reasoning, actions=actions)


class LLMThinkingGenerator:
    def __init__(self, llm: LLM) -> None:
        self._llm = llm

    async def generate(
        self,
        skill: Skill,
        keyword: str,
        node: Node,
        possible_outcomes: list[Outcome],
        action_skills: list[Skill],
        avatar: Avatar,
    ) -> ThinkingResult:
        if not action_skills:
            raise GenerationError("Avatar has no action skills")
        ctx = build_context(
            node, skill, avatar,
            keyword=keyword, outcomes=possible_outcomes, action_skills=action_skills,
        )
        raw = await self._llm("thinking", render_prompt(THINKING_TEMPLATE, ctx))
        result = thinking_result(raw, action_skills, possible_outcomes)
        logger.info("thinking on %r with %s: %d action(s)", keyword, skill.id, len(result.actions))
        return result
