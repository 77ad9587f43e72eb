"""Bundled demo world: a small forest for development and testing."""

from pathlib import Path

from narrative_engine.models import (
    CompanionOutcome,
    HumorOutcome,
    ItemOutcome,
    Node,
    Skill,
    SkillCategory,
    SkillOutcome,
    TransitionOutcome,
)
from narrative_engine.world import World, save_world

OBS = SkillCategory.OBSERVATION
THINK = SkillCategory.THINKING
ACT = SkillCategory.ACTION

DEMO_SKILLS = [
    Skill(id="observation", name="Observation", categories=[OBS], level=3,
          persona="precise and watchful, noticing small details"),
    Skill(id="poetry", name="Poetry", categories=[OBS, THINK], level=2,
          persona="lyrical and dreamy, seeing meaning in everything"),
    Skill(id="intuition", name="Intuition", categories=[THINK], level=4,
          persona="quiet hunches that turn out right more often than not"),
    Skill(id="logic", name="Logic", categories=[THINK], level=3,
          persona="dry, methodical, slightly impatient"),
    Skill(id="fishing", name="Fishing", categories=[ACT], level=2),
    Skill(id="foraging", name="Foraging", categories=[ACT], level=3),
    Skill(id="climbing", name="Climbing", categories=[ACT], level=1),
    Skill(id="sneaking", name="Sneaking", categories=[ACT], level=2),
    Skill(id="mycology", name="Mycology", categories=[ACT, THINK], level=1,
          persona="fascinated by spores and rot"),
]

DEMO_NODES = [
    Node(
        id="clearing",
        name="Forest Clearing",
        description="A sunlit clearing ringed by old oaks. A stream murmurs "
        "somewhere to the east, and the undergrowth to the north is heavy with berries.",
        is_entry=True,
        keywords=("oaks", "sunlight"),
        outcomes_by_keyword={
            "stream": (TransitionOutcome(node_id="stream"),),
            "berries": (TransitionOutcome(node_id="berry_bush"),),
            "mushrooms": (TransitionOutcome(node_id="mushroom_patch"),),
            "fox": (CompanionOutcome(companion_id="fox"),),
        },
    ),
    Node(
        id="stream",
        name="Forest Stream",
        description="Cold clear water runs over mossy stones. Trout flicker in "
        "the shallows beneath a fallen log.",
        keywords=("stones", "moss"),
        outcomes_by_keyword={
            "trout": (ItemOutcome(item_id="trout"),),
            "log": (TransitionOutcome(node_id="clearing"),),
            "water": (HumorOutcome(changes={"Phlegm": 3, "Yellow Bile": -2}),),
        },
    ),
    Node(
        id="berry_bush",
        name="Berry Bush",
        description="A thicket of brambles sagging under dark, glossy berries. "
        "Something rustles deeper inside.",
        keywords=("brambles",),
        outcomes_by_keyword={
            "berries": (ItemOutcome(item_id="blackberries"), HumorOutcome(changes={"Blood": 3})),
            "rustle": (CompanionOutcome(companion_id="hedgehog"),),
            "path": (TransitionOutcome(node_id="clearing"),),
        },
    ),
    Node(
        id="mushroom_patch",
        name="Mushroom Patch",
        description="Pale caps push through the leaf litter around a rotting "
        "stump, some of them faintly luminous.",
        keywords=("stump", "leaf litter"),
        outcomes_by_keyword={
            "mushrooms": (ItemOutcome(item_id="chanterelles"), SkillOutcome(skill_id="mycology")),
            "luminous": (HumorOutcome(changes={"Ether": 4, "Melancholia": -1}),),
            "path": (TransitionOutcome(node_id="clearing"),),
        },
    ),
]

DEMO_AVATAR_SKILLS = [
    "observation", "poetry", "intuition", "logic", "fishing", "foraging", "climbing", "sneaking",
]


def demo_world() -> World:
    return World(skills=DEMO_SKILLS, avatar_skills=DEMO_AVATAR_SKILLS, nodes=DEMO_NODES)


def create_demo_data(data_dir: Path) -> Path:
    """Write the demo world into `data_dir` and return its path."""
    path = data_dir / "world.json"
    save_world(demo_world(), path)
    return path
