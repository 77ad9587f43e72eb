"""Outcome narration: phrase a resolved action in the thinking skill's voice."""

from __future__ import annotations

import logging
from typing import Protocol

from narrative_engine.llm import LLM
from narrative_engine.models import ActionResult, Skill
from narrative_engine.prompts import NARRATION_TEMPLATE, render_prompt

from .parsing import parse_json_output, require_text

logger = logging.getLogger(__name__)


class OutcomeNarrator(Protocol):
    async def narrate(
        self, result: ActionResult, skill: Skill, *, action_text: str, failure_mode: str = ""
    ) -> str: ...


class LLMOutcomeNarrator:
    def __init__(self, llm: LLM) -> None:
        self._llm = llm

    async def narrate(
        self, result: ActionResult, skill: Skill, *, action_text: str, failure_mode: str = ""
    ) -> str:
        ctx = {
            "skill": {"name": skill.name, "persona": skill.persona},
            "action_text": action_text,
            "success": result.success,
            "consequence": result.narrative,
            "failure_mode": failure_mode.replace("_", " "),
        }
        raw = await self._llm("outcome_narration", render_prompt(NARRATION_TEMPLATE, ctx))
        return require_text(parse_json_output(raw), "narration", raw=raw)


class PlainOutcomeNarrator:
    """Uses the resolver's own narrative text. No LLM calls."""

    async def narrate(
        self, result: ActionResult, skill: Skill, *, action_text: str, failure_mode: str = ""
    ) -> str:
        if not result.success and failure_mode:
            return f"{result.narrative} ({failure_mode.replace('_', ' ')})"
        return result.narrative
