"""Handlebars prompt rendering for the phase generators."""

from collections.abc import Callable
from typing import Any

import pybars

from narrative_engine.models import Avatar, Node, Outcome, Skill


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_take(this, options, items, count):
    """{{#take array N}}...{{/take}} iterates over the first N items."""
    result = []
    for item in list(items)[:int(count)]:
        result.extend(options["fn"](item))
    return result


def _helper_upper(this, text):
    """{{upper text}} upper-cases a value."""
    return str(text).upper()


_HELPERS: dict[str, Callable] = {
    "take": _helper_take,
    "upper": _helper_upper,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

OBSERVATION_TEMPLATE = """\
You are {{{skill.name}}}, one of the inner voices of a wanderer.
{{#if skill.persona}}Your voice: {{{skill.persona}}}
{{/if}}
You are in this environment:

{{{node.description}}}
{{#if node.keywords}}

Notable elements you might observe (try to include 3-5 of these):
{{#each node.keywords}}- {{{this}}}
{{/each}}{{/if}}
Generate a narration of your observations, between 50 and 300 characters.

Respond in JSON format:
{"narration_text": "your observation narration", "highlighted_keywords": ["keyword1", "keyword2"]}
"""

FOCUS_TEMPLATE = """\
You are {{{skill.name}}}, one of the inner voices of a wanderer.
{{#if skill.persona}}Your voice: {{{skill.persona}}}
{{/if}}
You are in this environment:

{{{node.description}}}

Look closely at "{{{keyword}}}" and describe only what you notice about it,
between 50 and 300 characters.
{{#if node.keywords}}
Other notable elements you may mention:
{{#each node.keywords}}- {{{this}}}
{{/each}}{{/if}}
Respond in JSON format:
{"narration_text": "your observation narration", "highlighted_keywords": ["keyword1", "keyword2"]}
"""

THINKING_TEMPLATE = """\
You are {{{skill.name}}} ({{skill.level}}), one of the inner voices of a wanderer.
{{#if skill.persona}}Your voice: {{{skill.persona}}}
{{/if}}
You are analyzing the keyword "{{{keyword}}}" in this context:

{{{node.description}}}

Available action skills you can use:
{{#each action_skills}}- {{{id}}}: {{{name}}}
{{/each}}
Possible outcomes if actions succeed:
{{#each outcomes}}- {{{this}}}
{{/each}}
Your task:
1. Write a chain-of-thought reasoning (100-400 characters) explaining how the
   available action skills could achieve the possible outcomes in the context
   of "{{{keyword}}}".
2. Based on your reasoning, generate 2-5 concrete actions. Each action must
   use the most appropriate action skill from the list, aim for the most
   coherent outcome from the list, and start with "try to " followed by a
   specific description (30-160 characters).

Respond in JSON format:
{"reasoning_text": "your reasoning", "actions": [{"action_skill": "skill_id", "outcome": "outcome string", "action_description": "try to ..."}]}
"""

NARRATION_TEMPLATE = """\
You ({{{skill.name}}}) suggested the following action:
"{{{action_text}}}"

The action {{#if success}}succeeded{{else}}failed{{/if}}.
{{#if success}}Outcome: {{{consequence}}}{{else}}The attempt did not achieve the desired result.{{#if failure_mode}}
The failure most plausibly means: {{{failure_mode}}}.{{/if}}{{/if}}

Narrate what happened from your perspective as {{{skill.name}}}.
{{#if skill.persona}}Use the tone of: {{{skill.persona}}}
{{/if}}Keep it 100-400 characters.

Respond in JSON format:
{"narration": "your narration text"}
"""


# ── Context builders ─────────────────────────────────────


def _skill_context(skill: Skill) -> dict[str, Any]:
    return {"id": skill.id, "name": skill.name, "level": skill.level, "persona": skill.persona}


def _node_context(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "name": node.name,
        "description": node.description or node.name,
        "keywords": node.all_keywords,
    }


def build_context(
    node: Node,
    skill: Skill,
    avatar: Avatar | None = None,
    keyword: str | None = None,
    outcomes: list[Outcome] | None = None,
    action_skills: list[Skill] | None = None,
) -> dict[str, Any]:
    """Assemble template variables for the observation, focus and thinking prompts."""
    ctx: dict[str, Any] = {
        "node": _node_context(node),
        "skill": _skill_context(skill),
    }
    if avatar is not None:
        ctx["avatar"] = {
            "inventory": list(avatar.inventory),
            "companions": list(avatar.companions),
            "sublocation": avatar.sublocation or "",
        }
    if keyword is not None:
        ctx["keyword"] = keyword
    if outcomes is not None:
        ctx["outcomes"] = [o.describe() for o in outcomes]
    if action_skills is not None:
        ctx["action_skills"] = [_skill_context(s) for s in action_skills]
    return ctx
