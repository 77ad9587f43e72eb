"""World data: the node graph, the skill registry and the starting avatar.

Stored as one JSON file:

    {
      "skills": [Skill, ...],          ← registry, including learnable skills
      "avatar_skills": ["id", ...],    ← skills the avatar starts with
      "nodes": [Node, ...]
    }
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from narrative_engine.models import Avatar, Node, Skill, SkillOutcome, TransitionOutcome

logger = logging.getLogger(__name__)


class World(BaseModel):
    skills: list[Skill] = Field(default_factory=list)
    avatar_skills: list[str] = Field(default_factory=list)
    nodes: list[Node] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_references(self) -> World:
        skill_ids = {s.id for s in self.skills}
        node_ids = {n.id for n in self.nodes}
        if len(skill_ids) != len(self.skills):
            raise ValueError("Duplicate skill ids")
        if len(node_ids) != len(self.nodes):
            raise ValueError("Duplicate node ids")
        missing = [s for s in self.avatar_skills if s not in skill_ids]
        if missing:
            raise ValueError(f"Unknown avatar skills: {missing}")
        for node in self.nodes:
            for outcomes in node.outcomes_by_keyword.values():
                for outcome in outcomes:
                    if isinstance(outcome, TransitionOutcome) and outcome.node_id not in node_ids:
                        raise ValueError(f"Node {node.id!r} transitions to unknown node {outcome.node_id!r}")
                    if isinstance(outcome, SkillOutcome) and outcome.skill_id not in skill_ids:
                        raise ValueError(f"Node {node.id!r} teaches unknown skill {outcome.skill_id!r}")
        return self

    @property
    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    @property
    def skill_map(self) -> dict[str, Skill]:
        return {s.id: s for s in self.skills}

    @property
    def entry_node(self) -> Node:
        return next((n for n in self.nodes if n.is_entry), self.nodes[0])

    def new_avatar(self) -> Avatar:
        registry = self.skill_map
        return Avatar(skills=[registry[sid].model_copy() for sid in self.avatar_skills])


def load_world(path: Path) -> World:
    world = World.model_validate_json(path.read_text())
    logger.info("loaded world from %s: %d nodes, %d skills", path, len(world.nodes), len(world.skills))
    return world


def save_world(world: World, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(world.model_dump_json(indent=2))
