"""Engine session endpoints: state, transcript and the input-layer entry points.

Entry points return immediately with the new state; phases that call the
LLM keep running in the background. Poll GET /state or block on POST
/session/wait until `is_pending` is false.
"""

from fastapi import APIRouter, HTTPException, Query, Request

from narrative_engine.engine import NarrativeEngine, PhaseError

from .models import (
    ActionBody,
    EngineState,
    HoverBody,
    KeywordBody,
    ScrollBody,
    SkillBody,
    StartBody,
    TranscriptView,
)

router = APIRouter()


def _engine(request: Request) -> NarrativeEngine:
    return request.app.state.engine


def engine_state(engine: NarrativeEngine) -> EngineState:
    return EngineState(
        phase=engine.phase.value,
        node_id=engine.node.id if engine.node else None,
        is_loading=engine.is_loading,
        is_pending=engine.is_pending,
        loading_message=engine.loading_message,
        error=engine.error,
        exit_requested=engine.exit_requested,
        thinking_attempts_remaining=engine.thinking_attempts_remaining,
        keywords=engine.keywords,
        actions=engine.actions,
        pending_keyword=engine.pending_keyword,
        hovered_keyword=engine.hovered_keyword,
        hovered_action=engine.hovered_action,
        avatar=engine.avatar,
    )


def _call(engine: NarrativeEngine, fn, *args, **kwargs) -> EngineState:
    try:
        fn(*args, **kwargs)
    except PhaseError as e:
        raise HTTPException(409, str(e)) from e
    except ValueError as e:
        raise HTTPException(400, str(e)) from e
    return engine_state(engine)


@router.get("/state")
async def get_state(request: Request) -> EngineState:
    """Current phase, flags, live keywords and actions."""
    return engine_state(_engine(request))


@router.get("/transcript")
async def get_transcript(
    request: Request, count: int = 26, every_line: bool = Query(False, alias="all")
) -> TranscriptView:
    """Visible transcript lines from the scroll offset (or every line with all=true)."""
    transcript = _engine(request).transcript
    return TranscriptView(
        scroll_offset=transcript.scroll_offset,
        total_lines=transcript.total_lines,
        history_line_count=transcript.history_line_count,
        can_scroll_up=transcript.can_scroll_up(),
        can_scroll_down=transcript.can_scroll_down(count),
        lines=transcript.lines if every_line else transcript.visible_lines(count),
    )


@router.get("/world/nodes")
async def list_nodes(request: Request):
    """All nodes of the loaded world."""
    return list(request.app.state.world.nodes)


@router.post("/session/start")
async def start(request: Request, body: StartBody) -> EngineState:
    """Enter a node (the world's entry node by default) and observe it."""
    engine = _engine(request)
    if body.node_id is None:
        node = request.app.state.world.entry_node
    else:
        node = engine.nodes.get(body.node_id)
        if node is None:
            raise HTTPException(404, "Node not found")
    return _call(engine, engine.start, node, fresh=body.fresh)


@router.post("/session/keyword")
async def click_keyword(request: Request, body: KeywordBody) -> EngineState:
    """Click a live keyword; focus=true asks for an observation skill instead."""
    engine = _engine(request)
    return _call(engine, engine.click_keyword, body.keyword, focus=body.focus)


@router.post("/session/skill")
async def choose_skill(request: Request, body: SkillBody) -> EngineState:
    """Choose the skill for the pending keyword and launch the phase."""
    engine = _engine(request)
    return _call(engine, engine.choose_skill, body.skill_id)


@router.post("/session/cancel-skill")
async def cancel_skill(request: Request) -> EngineState:
    engine = _engine(request)
    return _call(engine, engine.cancel_skill_choice)


@router.post("/session/action")
async def click_action(request: Request, body: ActionBody) -> EngineState:
    """Execute the action with the given global index."""
    engine = _engine(request)
    return _call(engine, engine.click_action, body.index, force_success=body.force_success)


@router.post("/session/continue")
async def click_continue(request: Request) -> EngineState:
    engine = _engine(request)
    return _call(engine, engine.click_continue)


@router.post("/session/hover")
async def hover(request: Request, body: HoverBody) -> EngineState:
    engine = _engine(request)
    engine.hover_keyword(body.keyword)
    engine.hover_action(body.action)
    return engine_state(engine)


@router.post("/session/scroll")
async def scroll(request: Request, body: ScrollBody) -> EngineState:
    engine = _engine(request)
    engine.scroll(body.delta)
    return engine_state(engine)


@router.post("/session/abandon")
async def abandon(request: Request) -> EngineState:
    """Leave the node; results still in flight are discarded."""
    engine = _engine(request)
    engine.abandon()
    return engine_state(engine)


@router.post("/session/wait")
async def wait(request: Request) -> EngineState:
    """Block until the phase in flight has finished."""
    engine = _engine(request)
    await engine.wait()
    return engine_state(engine)
