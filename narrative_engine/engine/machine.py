"""Phase state machine: runs one node at a time through its phases.

Node flow:
  1. Observing: ask the observation generator for N blocks, expose keywords.
  2. Keyword click → skill choice → Thinking (or focus observation on a
     secondary click). Each launch consumes one thinking attempt.
  3. Action click: plausibility gate (optional), difficulty assessment,
     outcome resolution, narration; one [SUCCESS]/[FAILURE] outcome block.
  4. Continue: freeze the transcript and observe the target node, or raise
     the exit request when the outcome carried no transition.

Entry points are synchronous. Phases that call out (observing, thinking,
focus observing, action executing) are spawned as asyncio tasks; the phase
tag is the only mutual exclusion, so entry points refuse to start while a
loading phase is active. A task that finishes after its session was replaced
or abandoned drops its result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Literal

from narrative_engine.difficulty import UNABLE_TO_ACT, DifficultyEvaluator
from narrative_engine.generators import (
    EmptyResultError,
    ObservationGenerator,
    OutcomeNarrator,
    ThinkingGenerator,
    log_raw_output,
    retry_once,
)
from narrative_engine.models import (
    ActionResult,
    Avatar,
    BlockKind,
    CandidateAction,
    DifficultyAssessment,
    HumorOutcome,
    LocationContext,
    NarrationBlock,
    Node,
    PreviousTurn,
    Skill,
    SkillCategory,
    ThinkingResult,
    TransitionOutcome,
)
from narrative_engine.outcome import OutcomeResolver, apply_outcome, apply_result, is_exit_action
from narrative_engine.scoring import ActionScorer
from narrative_engine.transcript import TranscriptBuffer

from .session import (
    DEFAULT_THINKING_ATTEMPTS,
    LOADING_MESSAGES,
    LOADING_PHASES,
    NodeSession,
    Phase,
)

logger = logging.getLogger(__name__)

SUCCESS_MARKER = "[SUCCESS]"
FAILURE_MARKER = "[FAILURE]"
IMPLAUSIBLE_NARRATIVE = "That action doesn't make sense in this situation."

CheckMode = Literal["probability", "d20"]


class PhaseError(RuntimeError):
    """An entry point was called in a phase that does not accept it."""


class NarrativeEngine:
    """Drives observation, thinking, action and transition for one avatar.

    Args:
        nodes:            Node lookup for transition targets.
        avatar:           The player's skills and state; mutated by outcomes.
        observer, thinker, narrator: phase collaborators.
        evaluator:        Difficulty and plausibility judge.
        resolver:         Outcome resolver (owns the random source).
        scorer:           Optional; when given, Thinking actions are ranked.
        skills:           Registry used when an outcome teaches a skill.
        observation_count: Blocks requested per node entry.
        thinking_attempts: Thinking/focus launches allowed per node.
        retry_delay:      Seconds before the single retry of a failed call.
        check_mode:       "probability" (affine success chance) or "d20".
        plausibility_threshold: When > 0, actions averaging below it on the
                          plausibility questions fail without a skill check.
    """

    def __init__(
        self,
        *,
        nodes: Mapping[str, Node],
        avatar: Avatar,
        observer: ObservationGenerator,
        thinker: ThinkingGenerator,
        narrator: OutcomeNarrator,
        evaluator: DifficultyEvaluator,
        resolver: OutcomeResolver | None = None,
        scorer: ActionScorer | None = None,
        skills: Mapping[str, Skill] | None = None,
        transcript: TranscriptBuffer | None = None,
        observation_count: int = 1,
        thinking_attempts: int = DEFAULT_THINKING_ATTEMPTS,
        retry_delay: float = 1.0,
        check_mode: CheckMode = "probability",
        plausibility_threshold: float = 0.0,
    ) -> None:
        self.nodes = nodes
        self.avatar = avatar
        self.transcript = transcript or TranscriptBuffer()
        self._observer = observer
        self._thinker = thinker
        self._narrator = narrator
        self._evaluator = evaluator
        self._resolver = resolver or OutcomeResolver()
        self._scorer = scorer
        self._skills = skills or {}
        self.observation_count = observation_count
        self.thinking_attempts = thinking_attempts
        self.retry_delay = retry_delay
        self.check_mode = check_mode
        self.plausibility_threshold = plausibility_threshold

        self.phase = Phase.IDLE
        self.error: str | None = None
        self.exit_requested = False
        self.session: NodeSession | None = None
        self.hovered_keyword: str | None = None
        self.hovered_action: int | None = None
        self._task: asyncio.Task | None = None

    # ── Readable state ───────────────────────────────────

    @property
    def is_loading(self) -> bool:
        return self.phase in LOADING_PHASES

    @property
    def is_pending(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def loading_message(self) -> str:
        return LOADING_MESSAGES.get(self.phase, "")

    @property
    def node(self) -> Node | None:
        return self.session.node if self.session else None

    @property
    def thinking_attempts_remaining(self) -> int:
        return self.session.thinking_attempts if self.session else 0

    @property
    def keywords(self) -> list[str]:
        return list(self.session.keywords) if self.session else []

    @property
    def actions(self) -> list[CandidateAction]:
        return list(self.session.actions) if self.session else []

    @property
    def pending_keyword(self) -> str | None:
        return self.session.pending_keyword if self.session else None

    async def wait(self) -> None:
        """Wait for the phase task in flight, if any, including one it hands off to."""
        while self._task is not None and not self._task.done():
            await self._task

    # ── Task plumbing ────────────────────────────────────

    def _require(self, *phases: Phase) -> NodeSession:
        if self.session is None or self.phase not in phases:
            raise PhaseError(f"Not allowed while {self.phase.value}")
        return self.session

    def _spawn(self, phase: Phase, session: NodeSession, work: Callable[[], Awaitable[None]]) -> None:
        self.phase = phase
        self.error = None
        logger.info("phase -> %s (%s)", phase.value, session.node.id)
        self._task = asyncio.create_task(self._run(phase, session, work))

    async def _run(self, phase: Phase, session: NodeSession, work: Callable[[], Awaitable[None]]) -> None:
        try:
            await work()
        except Exception as e:
            if self.session is not session:
                logger.info("%s failed after its session ended: %s", phase.value, e)
                return
            logger.exception("%s failed", phase.value)
            log_raw_output(phase.value, e)
            self.error = str(e) or type(e).__name__
            self.phase = Phase.ERROR

    def _stale(self, session: NodeSession) -> bool:
        if self.session is not session:
            logger.info("discarding result for abandoned node %s", session.node.id)
            return True
        return False

    async def _retry(self, call: Callable[[], Awaitable], what: str):
        return await retry_once(call, delay=self.retry_delay, what=what)

    # ── Node entry ───────────────────────────────────────

    def start(self, node: Node, fresh: bool = True) -> None:
        """Enter `node` and observe it. `fresh` clears the transcript first."""
        if self.is_loading:
            raise PhaseError(f"Not allowed while {self.phase.value}")
        if fresh:
            self.transcript.clear()
        else:
            self.transcript.freeze_to_history()
        self.exit_requested = False
        self._enter(node)

    def _enter(self, node: Node) -> None:
        session = NodeSession(node=node, thinking_attempts=self.thinking_attempts)
        self.session = session
        self.hovered_keyword = None
        self.hovered_action = None
        self._spawn(Phase.OBSERVING, session, lambda: self._observe(session))

    async def _observe(self, session: NodeSession) -> None:
        async def call() -> list[NarrationBlock]:
            blocks = await self._observer.generate(session.node, self.avatar, self.observation_count)
            if not blocks:
                raise EmptyResultError("Observation produced no blocks")
            return blocks

        blocks = await self._retry(call, "observation")
        if self._stale(session):
            return
        self.transcript.extend(blocks)
        for block in blocks:
            session.add_keywords(block.keywords)
        self.phase = Phase.READY

    def abandon(self) -> None:
        """Leave the node. Calls still in flight finish but their results are dropped."""
        if self.session is not None:
            logger.info("abandoning node %s during %s", self.session.node.id, self.phase.value)
        self.session = None
        self.phase = Phase.IDLE
        self.error = None
        self.hovered_keyword = None
        self.hovered_action = None

    # ── Keywords and skills ──────────────────────────────

    def click_keyword(self, keyword: str, focus: bool = False) -> None:
        """Select a live keyword; `focus` asks for an observation skill instead of a thinking one."""
        session = self._require(Phase.READY, Phase.ACTIONS_READY)
        live = session.live_keyword(keyword)
        if live is None:
            raise PhaseError(f"Keyword {keyword!r} is not available")
        if session.thinking_attempts <= 0:
            raise PhaseError("No thinking attempts remain")
        session.pending_keyword = live
        session.pending_focus = focus
        session.resume_phase = self.phase
        self.phase = Phase.THINKING_SKILL_PENDING

    def cancel_skill_choice(self) -> None:
        session = self._require(Phase.THINKING_SKILL_PENDING)
        session.pending_keyword = None
        session.pending_focus = False
        self.phase = session.resume_phase

    def choose_skill(self, skill_id: str) -> None:
        session = self._require(Phase.THINKING_SKILL_PENDING)
        category = SkillCategory.OBSERVATION if session.pending_focus else SkillCategory.THINKING
        skill = self.avatar.get_skill(skill_id)
        if skill is None or not skill.has(category):
            raise ValueError(f"Skill {skill_id!r} is not an available {category.value} skill")
        keyword = session.pending_keyword or ""
        session.pending_keyword = None
        session.thinking_attempts -= 1
        if session.pending_focus:
            self._spawn(Phase.FOCUS_OBSERVING, session, lambda: self._focus(session, skill, keyword))
        else:
            self._spawn(Phase.THINKING, session, lambda: self._think(session, skill, keyword))

    def _location(self, node: Node) -> LocationContext:
        return LocationContext(
            location_type=node.name,
            sublocation=self.avatar.sublocation or node.name,
            description=node.description,
        )

    async def _think(self, session: NodeSession, skill: Skill, keyword: str) -> None:
        node = session.node
        outcomes = node.outcomes_for(keyword)
        action_skills = self.avatar.skills_for(SkillCategory.ACTION)

        async def call() -> ThinkingResult:
            result = await self._thinker.generate(skill, keyword, node, outcomes, action_skills, self.avatar)
            if not result.actions:
                raise EmptyResultError("Thinking produced no actions")
            return result

        result = await self._retry(call, "thinking")
        actions = list(result.actions)
        if self._scorer is not None:
            scorer = self._scorer
            ranked = await self._retry(
                lambda: scorer.score(actions, session.previous_turn, self._location(node)),
                "action ranking",
            )
            actions = [s.action for s in ranked]
        if self._stale(session):
            return
        session.thinking_skill = skill
        session.actions.extend(actions)
        self.transcript.append(NarrationBlock(
            kind=BlockKind.THINKING, skill=skill.name, text=result.reasoning, actions=tuple(actions),
        ))
        self.phase = Phase.ACTIONS_READY

    async def _focus(self, session: NodeSession, skill: Skill, keyword: str) -> None:
        block = await self._retry(
            lambda: self._observer.focus(keyword, skill, session.node, self.avatar), "focus observation"
        )
        if self._stale(session):
            return
        self.transcript.append(block)
        session.add_keywords(block.keywords)
        self.phase = session.steady_phase

    # ── Actions ──────────────────────────────────────────

    def click_action(self, index: int, force_success: bool | None = None) -> None:
        """Execute the action with global index `index` in the current node.

        `force_success` bypasses the skill check with a fixed result.
        """
        session = self._require(Phase.ACTIONS_READY)
        if not 0 <= index < len(session.actions):
            raise PhaseError(f"No action with index {index}")
        action = session.actions[index]
        self._spawn(
            Phase.ACTION_EXECUTING, session,
            lambda: self._execute(session, index, action, force_success),
        )

    async def _resolve(
        self, action: CandidateAction, index: int, skill: Skill | None, force_success: bool | None
    ) -> tuple[ActionResult, DifficultyAssessment | None]:
        parsed = action.as_parsed(index)
        if is_exit_action(action.text):
            return self._resolver.resolve(parsed), None
        if skill is None:
            return ActionResult.failure("The skill required for this action is unavailable."), None

        if self.plausibility_threshold > 0:
            plausibility = await self._retry(
                lambda: self._evaluator.plausibility(action.text), "plausibility"
            )
            if plausibility < self.plausibility_threshold:
                logger.info("action rejected as implausible (%.3f): %r", plausibility, action.text)
                return ActionResult.failure(IMPLAUSIBLE_NARRATIVE), None

        assessment = await self._retry(lambda: self._evaluator.assess(action.text), "difficulty")
        if force_success is None and self.check_mode == "d20":
            force_success = self._resolver.skill_check(skill.level, assessment.score)
        return self._resolver.resolve(parsed, assessment, force_success=force_success), assessment

    async def _execute(
        self, session: NodeSession, index: int, action: CandidateAction, force_success: bool | None
    ) -> None:
        skill = self.avatar.get_skill(action.skill_id)
        result, assessment = await self._resolve(action, index, skill, force_success)
        voice = session.thinking_skill or skill or Skill(
            id=action.skill_id, name=action.skill_name or action.skill_id,
            categories=[SkillCategory.ACTION],
        )
        failure_mode = assessment.most_plausible_failure if assessment and not result.success else ""
        fallout: HumorOutcome | None = None
        if not result.success:
            fallout = UNABLE_TO_ACT if skill is None else await self._retry(
                lambda: self._evaluator.failure_humor(action.text, session.node.description),
                "failure outcome",
            )

        async def call() -> str:
            text = await self._narrator.narrate(
                result, voice, action_text=action.text, failure_mode=failure_mode
            )
            if not text or not text.strip():
                raise EmptyResultError("Outcome narration is empty")
            return text.strip()

        narration = await self._retry(call, "outcome narration")
        if self._stale(session):
            return

        exiting = is_exit_action(action.text)
        if result.success:
            apply_result(self.avatar, result)
            if not exiting:
                apply_outcome(self.avatar, action.outcome, self._skills)
                if isinstance(action.outcome, TransitionOutcome):
                    session.pending_transition = action.outcome.node_id
        elif fallout is not None:
            apply_outcome(self.avatar, fallout)
        marker = SUCCESS_MARKER if result.success else FAILURE_MARKER
        self.transcript.append(NarrationBlock(
            kind=BlockKind.OUTCOME, skill=voice.name, text=f"{marker} {narration}",
        ))
        session.previous_turn = PreviousTurn(
            action_text=action.text, succeeded=result.success, outcome=narration,
        )
        logger.info("action %d %s: %r", index, "succeeded" if result.success else "failed", action.text)
        self.phase = Phase.CONTINUE_PENDING

    # ── Continue / transition ────────────────────────────

    def click_continue(self) -> None:
        session = self._require(Phase.CONTINUE_PENDING)
        target_id = session.pending_transition
        if target_id is None:
            logger.info("exit requested from %s", session.node.id)
            self.exit_requested = True
            self.phase = Phase.EXIT_REQUESTED
            return

        target = self.nodes.get(target_id)
        if target is None:
            logger.error("transition to unknown node %r", target_id)
            self.error = f"Unknown node {target_id!r}"
            self.phase = Phase.ERROR
            return
        self.phase = Phase.TRANSITIONING
        logger.info("transition %s -> %s", session.node.id, target.id)
        self.transcript.freeze_to_history()
        self._enter(target)

    # ── Hover and scroll ─────────────────────────────────

    def hover_keyword(self, keyword: str | None) -> None:
        if keyword is None or self.session is None or self.phase not in (Phase.READY, Phase.ACTIONS_READY):
            self.hovered_keyword = None
            return
        self.hovered_keyword = self.session.live_keyword(keyword)

    def hover_action(self, index: int | None) -> None:
        if index is None or self.session is None or self.phase != Phase.ACTIONS_READY:
            self.hovered_action = None
            return
        self.hovered_action = index if 0 <= index < len(self.session.actions) else None

    def scroll(self, delta: int) -> None:
        """Positive deltas scroll towards the end of the transcript."""
        if delta > 0:
            self.transcript.scroll_down(delta)
        elif delta < 0:
            self.transcript.scroll_up(-delta)
