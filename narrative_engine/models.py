"""Core domain models.

Every phase collaborator, the scorer, the evaluators and the transcript
operate on these types. Pydantic is used for validation and serialisation at
every data boundary (world files, LLM payloads, API responses).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

HUMORS = (
    "Black Bile",
    "Yellow Bile",
    "Appetitus",
    "Melancholia",
    "Ether",
    "Phlegm",
    "Blood",
    "Voluptas",
    "Laetitia",
    "Euphoria",
)


class SkillCategory(str, Enum):
    OBSERVATION = "observation"
    THINKING = "thinking"
    ACTION = "action"


class BlockKind(str, Enum):
    OBSERVATION = "observation"
    THINKING = "thinking"
    ACTION = "action"
    OUTCOME = "outcome"


class LineKind(str, Enum):
    HEADER = "header"
    CONTENT = "content"
    ACTION = "action"
    OUTCOME = "outcome"
    EMPTY = "empty"
    SEPARATOR = "separator"


# ---------------------------------------------------------------------------
# Skills and avatar
# ---------------------------------------------------------------------------

class Skill(BaseModel):
    """A named, leveled capability. A skill may serve several categories."""

    id: str
    name: str
    categories: list[SkillCategory] = Field(min_length=1)
    level: int = Field(default=1, ge=1, le=10)
    persona: str = ""  # narrative voice for observation/thinking prompts

    def has(self, category: SkillCategory) -> bool:
        return category in self.categories

    @property
    def label(self) -> str:
        return f"{self.name} ({self.level})"


class Avatar(BaseModel):
    """The player's capability set plus the state outcomes write into."""

    skills: list[Skill] = Field(default_factory=list)
    inventory: list[str] = Field(default_factory=list)
    companions: list[str] = Field(default_factory=list)
    humors: dict[str, int] = Field(default_factory=lambda: {h: 50 for h in HUMORS})
    location_states: dict[str, str] = Field(default_factory=dict)
    sublocation: str | None = None

    def skills_for(self, category: SkillCategory) -> list[Skill]:
        return [s for s in self.skills if s.has(category)]

    def get_skill(self, skill_id: str) -> Skill | None:
        for skill in self.skills:
            if skill.id == skill_id:
                return skill
        return None


# ---------------------------------------------------------------------------
# Outcomes: tagged variant, discriminated on `kind`
# ---------------------------------------------------------------------------

class _OutcomeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        """Natural-language form used in prompts and to parse actions back."""
        raise NotImplementedError


class TransitionOutcome(_OutcomeBase):
    kind: Literal["transition"] = "transition"
    node_id: str

    def describe(self) -> str:
        return f"transition {self.node_id}"


class ItemOutcome(_OutcomeBase):
    kind: Literal["item"] = "item"
    item_id: str

    def describe(self) -> str:
        return f"acquire {self.item_id}"


class CompanionOutcome(_OutcomeBase):
    kind: Literal["companion"] = "companion"
    companion_id: str

    def describe(self) -> str:
        return f"befriend {self.companion_id}"


class SkillOutcome(_OutcomeBase):
    kind: Literal["skill"] = "skill"
    skill_id: str

    def describe(self) -> str:
        return f"learn {self.skill_id}"


class HumorOutcome(_OutcomeBase):
    kind: Literal["humor"] = "humor"
    changes: dict[str, int]

    def describe(self) -> str:
        return ", ".join(
            f"{'increase' if delta > 0 else 'decrease'} {name} by {abs(delta)}"
            for name, delta in self.changes.items()
        )


class FeelGoodOutcome(_OutcomeBase):
    """Generic fallback, offered alongside every keyword's outcomes."""

    kind: Literal["feel_good"] = "feel_good"

    def describe(self) -> str:
        return "feel good about the action"


Outcome = Annotated[
    Union[
        TransitionOutcome,
        ItemOutcome,
        CompanionOutcome,
        SkillOutcome,
        HumorOutcome,
        FeelGoodOutcome,
    ],
    Field(discriminator="kind"),
]


def outcome_from_text(text: str, possible: list[Outcome]) -> Outcome | None:
    """Match a generated outcome string back to one of the offered outcomes."""
    wanted = text.strip().lower()
    for outcome in possible:
        if outcome.describe().lower() == wanted:
            return outcome
    return None


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

class Node(BaseModel):
    """A location/scene. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    is_entry: bool = False
    keywords: tuple[str, ...] = ()  # keywords describing the node itself
    outcomes_by_keyword: dict[str, tuple[Outcome, ...]] = Field(default_factory=dict)
    fallback: Outcome = Field(default_factory=FeelGoodOutcome)

    @property
    def all_keywords(self) -> list[str]:
        """Own keywords plus every keyword that maps to an outcome, deduplicated."""
        seen: set[str] = set()
        result: list[str] = []
        for kw in (*self.keywords, *self.outcomes_by_keyword):
            if kw.lower() not in seen:
                seen.add(kw.lower())
                result.append(kw)
        return result

    def outcomes_for(self, keyword: str) -> list[Outcome]:
        """Outcomes reachable through a keyword, always ending with the fallback."""
        wanted = keyword.lower()
        outcomes: list[Outcome] = []
        for kw, mapped in self.outcomes_by_keyword.items():
            if kw.lower() == wanted:
                outcomes.extend(mapped)
        if not any(o.kind == self.fallback.kind for o in outcomes):
            outcomes.append(self.fallback)
        return outcomes


# ---------------------------------------------------------------------------
# Narration
# ---------------------------------------------------------------------------

class CandidateAction(BaseModel):
    """An action proposed by the Thinking phase, tied to the outcome it yields."""

    model_config = ConfigDict(frozen=True)

    text: str
    skill_id: str
    skill_name: str = ""
    skill_level: int = 0
    outcome: Outcome

    @property
    def prefix(self) -> str:
        name = self.skill_name or self.skill_id
        if self.skill_level:
            return f"{name} ({self.skill_level}): "
        return f"{name}: "

    def as_parsed(self, index: int = 0) -> ParsedAction:
        """View this action in the Director format the scorer and resolver share."""
        return ParsedAction(
            text=self.text,
            skill=self.skill_name or self.skill_id,
            success_consequence=self.outcome.describe(),
            original_index=index,
        )


class NarrationBlock(BaseModel):
    """One unit of transcript content. Appended, never mutated."""

    model_config = ConfigDict(frozen=True)

    kind: BlockKind
    skill: str = ""
    text: str
    keywords: tuple[str, ...] | None = None
    actions: tuple[CandidateAction, ...] | None = None  # thinking blocks only


class ThinkingResult(BaseModel):
    reasoning: str
    actions: list[CandidateAction] = Field(default_factory=list)


class TranscriptLine(BaseModel):
    """A single word-wrapped, renderable line."""

    model_config = ConfigDict(frozen=True)

    text: str
    kind: LineKind
    block_kind: BlockKind | None = None
    is_history: bool = False
    keywords: tuple[str, ...] | None = None
    action_index: int | None = None


# ---------------------------------------------------------------------------
# Director actions, scoring and resolution
# ---------------------------------------------------------------------------

class ParsedAction(BaseModel):
    """An action in the legacy Director format, with declared consequences."""

    text: str
    skill: str = ""
    difficulty: str = ""
    risk: str = ""
    success_consequence: str = ""
    success_state_changes: dict[str, str] = Field(default_factory=dict)
    success_sublocation: str | None = None
    success_items: list[str] = Field(default_factory=list)
    success_companions: list[str] = Field(default_factory=list)
    failure_consequence: str = ""
    failure_type: str = ""
    ends_interaction: bool = False
    original_index: int = 0


class ScoredAction(BaseModel):
    action: ParsedAction | CandidateAction
    skill_score: float = Field(ge=0.0, le=1.0)
    consequence_score: float = Field(ge=0.0, le=1.0)
    context_score: float = Field(ge=0.0, le=1.0)
    location_score: float = Field(ge=0.0, le=1.0)
    specificity_score: float = Field(ge=0.0, le=1.0)
    total: float = Field(ge=0.0, le=1.0)
    duration_ms: float = 0.0


class DifficultyAssessment(BaseModel):
    score: float = Field(ge=0.0, le=1.0)
    label: str
    failure_modes: dict[str, float] = Field(default_factory=dict)
    most_plausible_failure: str = ""


class ActionResult(BaseModel):
    """Outcome of one resolved action. Consumed immediately, not retained."""

    success: bool
    narrative: str
    state_changes: dict[str, str] = Field(default_factory=dict)
    new_sublocation: str | None = None
    items_gained: list[str] = Field(default_factory=list)
    companions_gained: list[str] = Field(default_factory=list)
    ends_interaction: bool = False

    @classmethod
    def failure(cls, narrative: str) -> ActionResult:
        return cls(success=False, narrative=narrative, ends_interaction=True)

    @classmethod
    def exit(
        cls, narrative: str = "You leave the location and return to the world."
    ) -> ActionResult:
        return cls(success=True, narrative=narrative, ends_interaction=True)


class PreviousTurn(BaseModel):
    """The last resolved action, used as scoring context."""

    action_text: str
    succeeded: bool
    outcome: str = ""


class LocationContext(BaseModel):
    location_type: str
    sublocation: str
    description: str = ""
