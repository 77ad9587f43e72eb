"""Phase collaborators: observation, thinking and outcome narration.

Each is a Protocol plus an LLM-backed implementation; the engine only depends
on the Protocols.
"""

from .narrator import LLMOutcomeNarrator, OutcomeNarrator, PlainOutcomeNarrator
from .observation import LLMObservationGenerator, ObservationGenerator, observation_block
from .parsing import EmptyResultError, GenerationError, log_raw_output, parse_json_output, retry_once
from .thinking import LLMThinkingGenerator, ThinkingGenerator, thinking_result

__all__ = [
    "EmptyResultError",
    "GenerationError",
    "LLMObservationGenerator",
    "LLMOutcomeNarrator",
    "LLMThinkingGenerator",
    "ObservationGenerator",
    "OutcomeNarrator",
    "PlainOutcomeNarrator",
    "ThinkingGenerator",
    "log_raw_output",
    "observation_block",
    "parse_json_output",
    "retry_once",
    "thinking_result",
]
