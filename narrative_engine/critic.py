"""Probabilistic yes/no judge.

Scoring, difficulty and failure-mode evaluation are all phrased as questions
against a single primitive:

    async def yes_no(self, question: str) -> float: ...

returning P(yes) in [0, 1].

    HttpCritic     asks an OpenAI-compatible completions backend for one
                   token with logprobs and normalises P(yes) against P(no).
    ConstantCritic always answers the same probability. No network calls.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Protocol

from narrative_engine.llm import Connection, LLMError, post_json

logger = logging.getLogger(__name__)

CRITIC_PREAMBLE = (
    "You are a CRITIC evaluating game content for coherence and quality.\n"
    "Answer yes/no questions about game actions, skills, consequences and "
    "narratives. Be strict but fair, value plausibility over creativity, and "
    "answer with exactly one word: 'yes' or 'no'.\n\n"
)


class Critic(Protocol):
    async def yes_no(self, question: str) -> float: ...


def yes_ratio(p_yes: float, p_no: float) -> float:
    """P(yes) normalised against P(no); 0.5 when neither was observed."""
    total = p_yes + p_no
    return p_yes / total if total > 0 else 0.5


class HttpCritic:
    """Yes/no judge over an OpenAI-compatible /v1/completions endpoint.

    Each question is a fresh, stateless completion: one token, temperature 0,
    with the top candidate logprobs returned. All tokens that strip to "yes"
    or "no" (any case, any leading space) contribute to their side.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        model: str = "",
        timeout: float = 60.0,
        top_logprobs: int = 10,
    ) -> None:
        self.connection = Connection(
            provider_url=provider_url, api_key=api_key, model=model, timeout=timeout,
        )
        self.top_logprobs = top_logprobs
        self.evaluations = 0
        self.total_duration_ms = 0.0

    @classmethod
    def from_config(cls, section: dict[str, Any]) -> HttpCritic:
        return cls(
            provider_url=section["provider_url"],
            api_key=section.get("api_key", ""),
            model=section.get("model", ""),
            timeout=float(section.get("timeout", 60.0)),
        )

    def _body(self, question: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "prompt": f"{CRITIC_PREAMBLE}Question: {question}\nAnswer:",
            "max_tokens": 1,
            "temperature": 0,
            "logprobs": self.top_logprobs,
        }
        if self.connection.model:
            body["model"] = self.connection.model
        return body

    @staticmethod
    def _token_probabilities(data: dict) -> tuple[float, float]:
        try:
            top = data["choices"][0]["logprobs"]["top_logprobs"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError("Unexpected response format from critic backend") from e
        p_yes = p_no = 0.0
        for token, logprob in top.items():
            word = token.strip().lower()
            if word == "yes":
                p_yes += math.exp(logprob)
            elif word == "no":
                p_no += math.exp(logprob)
        return p_yes, p_no

    @property
    def average_duration_ms(self) -> float:
        return self.total_duration_ms / self.evaluations if self.evaluations else 0.0

    async def yes_no(self, question: str) -> float:
        started = time.perf_counter()
        data = await post_json(self.connection, "/v1/completions", self._body(question), "critic backend")
        p_yes, p_no = self._token_probabilities(data)
        ratio = yes_ratio(p_yes, p_no)
        duration = (time.perf_counter() - started) * 1000
        self.evaluations += 1
        self.total_duration_ms += duration
        logger.debug(
            "critic q=%r p_yes=%.3f p_no=%.3f ratio=%.3f (%.0fms)",
            question, p_yes, p_no, ratio, duration,
        )
        return ratio


class ConstantCritic:
    """Answers every question with the same probability."""

    def __init__(self, probability: float = 0.5) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability must be within [0, 1]")
        self.probability = probability

    async def yes_no(self, question: str) -> float:
        logger.debug("ConstantCritic q=%r -> %.3f", question, self.probability)
        return self.probability
