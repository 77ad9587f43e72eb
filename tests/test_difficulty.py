"""Tests for narrative_engine.difficulty."""

import pytest

from narrative_engine.difficulty import (
    FAILURE_HUMORS,
    FAILURE_MODES,
    DifficultyEvaluator,
    label_for,
    most_plausible,
)
from narrative_engine.models import HumorOutcome

from stubs import ScriptedCritic


@pytest.mark.parametrize("score, label", [
    (0.0, "trivial"),
    (0.2, "easy"),
    (0.3, "basic"),
    (0.5, "moderate"),
    (0.7, "hard"),
    (0.85, "very_hard"),
    (0.95, "extreme"),
])
def test_label_for(score: float, label: str) -> None:
    assert label_for(score) == label


def test_most_plausible_prefers_first_on_tie() -> None:
    assert most_plausible({"injured": 0.4, "lost": 0.7, "attacked": 0.7}) == "lost"
    assert most_plausible({}) == ""


class TestDifficultyEvaluator:
    async def test_difficulty_is_inverse_of_easy(self) -> None:
        evaluator = DifficultyEvaluator(ScriptedCritic({"easy to perform": 0.8}))
        assert await evaluator.difficulty("cross the log") == pytest.approx(0.2)

    async def test_failure_modes_asked_in_order(self) -> None:
        critic = ScriptedCritic({"'lost'": 0.9, "'injured'": 0.6}, default=0.1)
        modes = await DifficultyEvaluator(critic).failure_modes("wade upstream")
        assert list(modes) == list(FAILURE_MODES)
        assert modes["lost"] == 0.9
        assert critic.questions[0] == (
            "If the action 'wade upstream' fails, could it plausibly result in 'injured'?"
        )

    async def test_assess(self) -> None:
        critic = ScriptedCritic({"easy to perform": 0.35, "'exhaustion'": 0.8}, default=0.2)
        assessment = await DifficultyEvaluator(critic).assess("climb the oak")
        assert assessment.score == pytest.approx(0.65)
        assert assessment.label == "hard"
        assert assessment.most_plausible_failure == "exhaustion"
        assert len(critic.questions) == 1 + len(FAILURE_MODES)

    async def test_plausibility_averages_three_questions(self) -> None:
        critic = ScriptedCritic({"logical sense": 0.9, "reasonable thing": 0.6}, default=0.3)
        assert await DifficultyEvaluator(critic).plausibility("whistle") == pytest.approx(0.6)
        assert len(critic.questions) == 3

    async def test_failure_humor_picks_most_coherent(self) -> None:
        critic = ScriptedCritic({"'irritation and impatience'": 0.7, "'momentary confusion'": 0.6}, default=0.2)
        humor = await DifficultyEvaluator(critic).failure_humor("wade upstream", "A cold stream.")
        assert humor == HumorOutcome(changes={"Yellow Bile": 2})
        assert len(critic.questions) == len(FAILURE_HUMORS)
        assert critic.questions[0] == (
            "In the context 'A cold stream.', if the action 'wade upstream' fails, "
            "is 'frustration and self-criticism' a coherent emotional consequence?"
        )

    async def test_failure_humor_tie_keeps_first(self) -> None:
        humor = await DifficultyEvaluator(ScriptedCritic(default=0.5)).failure_humor("x", "y")
        assert humor == HumorOutcome(changes={"Black Bile": 3})
