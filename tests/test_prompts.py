"""Tests for Handlebars prompt rendering: helpers, context building and the
phase templates."""

import pytest

from narrative_engine.models import (
    Avatar,
    FeelGoodOutcome,
    ItemOutcome,
    Node,
    Skill,
    TransitionOutcome,
)
from narrative_engine.prompts import (
    FOCUS_TEMPLATE,
    NARRATION_TEMPLATE,
    OBSERVATION_TEMPLATE,
    THINKING_TEMPLATE,
    PromptError,
    build_context,
    render_prompt,
)


@pytest.fixture
def stream() -> Node:
    return Node(
        id="stream", name="Stream",
        description="A cold stream & a fallen <log>.",
        keywords=("log",),
        outcomes_by_keyword={"trout": (ItemOutcome(item_id="trout"),)},
    )


@pytest.fixture
def poetry() -> Skill:
    return Skill(id="poetry", name="Poetry", categories=["observation", "thinking"],
                 level=4, persona="wistful, lyrical")


@pytest.fixture
def fishing() -> Skill:
    return Skill(id="fishing", name="Fishing", categories=["action"], level=2)


# ── render_prompt ────────────────────────────────────────────


def test_render_variable_and_loop():
    tpl = "{{name}}: {{#each items}}{{this}} {{/each}}"
    assert render_prompt(tpl, {"name": "Moss", "items": ["a", "b"]}) == "Moss: a b "


def test_render_missing_variable_is_blank():
    assert render_prompt("Hello {{name}}!", {}) == "Hello !"


def test_render_invalid_template():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


def test_take_first_n():
    tpl = "{{#take items 2}}[{{this}}]{{/take}}"
    assert render_prompt(tpl, {"items": ["oak", "ash", "elm"]}) == "[oak][ash]"


def test_take_more_than_length():
    tpl = "{{#take items 5}}[{{this}}]{{/take}}"
    assert render_prompt(tpl, {"items": ["oak"]}) == "[oak]"


def test_upper():
    assert render_prompt("{{upper word}}", {"word": "trout"}) == "TROUT"


# ── build_context ────────────────────────────────────────────


def test_build_context_basic(stream, poetry):
    ctx = build_context(stream, poetry)
    assert ctx["node"]["keywords"] == ["log", "trout"]
    assert ctx["skill"] == {"id": "poetry", "name": "Poetry", "level": 4, "persona": "wistful, lyrical"}
    assert "keyword" not in ctx
    assert "avatar" not in ctx


def test_build_context_description_falls_back_to_name(poetry):
    ctx = build_context(Node(id="x", name="Glade"), poetry)
    assert ctx["node"]["description"] == "Glade"


def test_build_context_thinking_fields(stream, poetry, fishing):
    avatar = Avatar(inventory=["twine"], sublocation="bank")
    ctx = build_context(
        stream, poetry, avatar, keyword="trout",
        outcomes=stream.outcomes_for("trout"), action_skills=[fishing],
    )
    assert ctx["keyword"] == "trout"
    assert ctx["outcomes"] == ["acquire trout", "feel good about the action"]
    assert ctx["action_skills"][0]["id"] == "fishing"
    assert ctx["avatar"] == {"inventory": ["twine"], "companions": [], "sublocation": "bank"}


# ── templates ────────────────────────────────────────────────


def test_observation_prompt_renders(stream, poetry):
    prompt = render_prompt(OBSERVATION_TEMPLATE, build_context(stream, poetry))
    assert "You are Poetry" in prompt
    assert "Your voice: wistful, lyrical" in prompt
    # triple-stash keeps text unescaped
    assert "A cold stream & a fallen <log>." in prompt
    assert "- log\n- trout" in prompt
    assert '"highlighted_keywords"' in prompt


def test_focus_prompt_names_keyword(stream, poetry):
    prompt = render_prompt(FOCUS_TEMPLATE, build_context(stream, poetry, keyword="log"))
    assert 'Look closely at "log"' in prompt


def test_thinking_prompt_lists_skills_and_outcomes(stream, poetry, fishing):
    ctx = build_context(
        stream, poetry, keyword="trout",
        outcomes=[ItemOutcome(item_id="trout"), FeelGoodOutcome()], action_skills=[fishing],
    )
    prompt = render_prompt(THINKING_TEMPLATE, ctx)
    assert "You are Poetry (4)" in prompt
    assert "- fishing: Fishing" in prompt
    assert "- acquire trout" in prompt
    assert "- feel good about the action" in prompt
    assert 'the keyword "trout"' in prompt


def test_thinking_prompt_without_persona(stream, fishing):
    logic = Skill(id="logic", name="Logic", categories=["thinking"])
    ctx = build_context(stream, logic, keyword="log",
                        outcomes=[TransitionOutcome(node_id="clearing")], action_skills=[fishing])
    prompt = render_prompt(THINKING_TEMPLATE, ctx)
    assert "Your voice" not in prompt
    assert "- transition clearing" in prompt


def test_narration_prompt_success_and_failure():
    base = {"skill": {"name": "Poetry", "persona": ""}, "action_text": "try to fish",
            "consequence": "acquire trout", "failure_mode": "exhaustion"}
    success = render_prompt(NARRATION_TEMPLATE, {**base, "success": True})
    failure = render_prompt(NARRATION_TEMPLATE, {**base, "success": False})
    assert "The action succeeded." in success
    assert "Outcome: acquire trout" in success
    assert "The action failed." in failure
    assert "most plausibly means: exhaustion" in failure
