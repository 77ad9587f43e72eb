"""Wire an engine from config: LLM-backed generators, critic, resolver."""

from __future__ import annotations

import logging
from typing import Any

from narrative_engine.critic import ConstantCritic, Critic, HttpCritic
from narrative_engine.difficulty import DifficultyEvaluator
from narrative_engine.generators import (
    LLMObservationGenerator,
    LLMOutcomeNarrator,
    LLMThinkingGenerator,
)
from narrative_engine.llm import HttpLLM
from narrative_engine.scoring import ActionScorer
from narrative_engine.transcript import TranscriptBuffer
from narrative_engine.world import World

from .machine import NarrativeEngine

logger = logging.getLogger(__name__)


def build_critic(connection: dict[str, Any]) -> Critic:
    """HttpCritic when a critic URL is configured, otherwise a neutral 0.5 judge."""
    if connection.get("provider_url"):
        return HttpCritic.from_config(connection)
    logger.warning("No critic connection configured; every judgement will be 0.5")
    return ConstantCritic(0.5)


def build_engine(config: dict[str, Any], world: World) -> NarrativeEngine:
    llm = HttpLLM.from_config(config["llm_connection"])
    critic = build_critic(config["critic_connection"])
    tuning = config["engine"]
    return NarrativeEngine(
        nodes=world.node_map,
        avatar=world.new_avatar(),
        observer=LLMObservationGenerator(llm),
        thinker=LLMThinkingGenerator(llm),
        narrator=LLMOutcomeNarrator(llm),
        evaluator=DifficultyEvaluator(critic),
        scorer=ActionScorer(critic) if tuning["rank_actions"] else None,
        skills=world.skill_map,
        transcript=TranscriptBuffer(width=int(tuning["transcript_width"])),
        observation_count=int(tuning["observation_count"]),
        thinking_attempts=int(tuning["thinking_attempts"]),
        retry_delay=float(tuning["retry_delay"]),
        check_mode=tuning["check_mode"],
        plausibility_threshold=float(tuning["plausibility_threshold"]),
    )
