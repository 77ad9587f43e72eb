"""Observation phase: describe a node through the avatar's observation skills."""

from __future__ import annotations

import logging
import random
from typing import Protocol

from narrative_engine.keywords import keywords_in
from narrative_engine.llm import LLM
from narrative_engine.models import Avatar, BlockKind, NarrationBlock, Node, Skill, SkillCategory
from narrative_engine.prompts import FOCUS_TEMPLATE, OBSERVATION_TEMPLATE, build_context, render_prompt

from .parsing import EmptyResultError, GenerationError, parse_json_output, require_text

logger = logging.getLogger(__name__)


class ObservationGenerator(Protocol):
    async def generate(self, node: Node, avatar: Avatar, count: int) -> list[NarrationBlock]: ...

    async def focus(self, keyword: str, skill: Skill, node: Node, avatar: Avatar) -> NarrationBlock: ...


def observation_block(raw: str, skill: Skill, node: Node) -> NarrationBlock:
    """Build a block from `{"narration_text": ..., "highlighted_keywords": [...]}`.

    Only keywords that actually appear in the narration are kept.
    """
    data = parse_json_output(raw)
    text = require_text(data, "narration_text", raw=raw)
    highlighted = data.get("highlighted_keywords") or []
    if not isinstance(highlighted, list):
        raise GenerationError("'highlighted_keywords' must be a list", raw=raw)
    candidates = node.all_keywords + [k for k in highlighted if isinstance(k, str)]
    return NarrationBlock(
        kind=BlockKind.OBSERVATION,
        skill=skill.name,
        text=text,
        keywords=tuple(keywords_in(text, candidates)),
    )


class LLMObservationGenerator:
    """One LLM call per observation skill voice."""

    def __init__(self, llm: LLM, rng: random.Random | None = None) -> None:
        self._llm = llm
        self._rng = rng or random.Random()

    def _pick_skills(self, avatar: Avatar, count: int) -> list[Skill]:
        skills = avatar.skills_for(SkillCategory.OBSERVATION)
        if not skills:
            raise GenerationError("Avatar has no observation skills")
        if count <= len(skills):
            return self._rng.sample(skills, count)
        return [skills[i % len(skills)] for i in range(count)]

    async def generate(self, node: Node, avatar: Avatar, count: int) -> list[NarrationBlock]:
        if count < 1:
            raise ValueError("count must be at least 1")
        blocks: list[NarrationBlock] = []
        for skill in self._pick_skills(avatar, count):
            prompt = render_prompt(OBSERVATION_TEMPLATE, build_context(node, skill, avatar))
            raw = await self._llm("observation", prompt)
            blocks.append(observation_block(raw, skill, node))
        if not blocks:
            raise EmptyResultError("Observation produced no blocks")
        logger.info("observed %s with %d block(s)", node.id, len(blocks))
        return blocks

    async def focus(self, keyword: str, skill: Skill, node: Node, avatar: Avatar) -> NarrationBlock:
        prompt = render_prompt(FOCUS_TEMPLATE, build_context(node, skill, avatar, keyword=keyword))
        raw = await self._llm("focus_observation", prompt)
        return observation_block(raw, skill, node)
