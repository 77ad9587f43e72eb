from collections.abc import Callable

import pytest

from narrative_engine.difficulty import DifficultyEvaluator
from narrative_engine.engine import NarrativeEngine

from stubs import (
    ScriptedCritic,
    StubNarrator,
    StubObserver,
    StubThinker,
    cave_avatar,
    cave_block,
    cave_thinking,
    cave_world_nodes,
)


@pytest.fixture
def make_engine() -> Callable[..., NarrativeEngine]:
    """Engine over the cave world with stub collaborators; override any piece by keyword."""

    def factory(**overrides) -> NarrativeEngine:
        critic = overrides.pop("critic", ScriptedCritic({"easy to perform": 0.8}))
        kwargs = {
            "nodes": cave_world_nodes(),
            "avatar": cave_avatar(),
            "observer": StubObserver([cave_block()]),
            "thinker": StubThinker([cave_thinking(), cave_thinking("try to climb the cave wall")]),
            "narrator": StubNarrator(),
            "evaluator": DifficultyEvaluator(critic),
            "retry_delay": 0.0,
        }
        kwargs.update(overrides)
        return NarrativeEngine(**kwargs)

    return factory
