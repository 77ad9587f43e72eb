"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel

from narrative_engine.models import Avatar, CandidateAction, TranscriptLine


class StartBody(BaseModel):
    node_id: str | None = None
    fresh: bool = True


class KeywordBody(BaseModel):
    keyword: str
    focus: bool = False


class SkillBody(BaseModel):
    skill_id: str


class ActionBody(BaseModel):
    index: int
    force_success: bool | None = None


class HoverBody(BaseModel):
    keyword: str | None = None
    action: int | None = None


class ScrollBody(BaseModel):
    delta: int


class CheckConnectionBody(BaseModel):
    provider_url: str
    api_key: str = ""


class EngineState(BaseModel):
    phase: str
    node_id: str | None
    is_loading: bool
    is_pending: bool
    loading_message: str
    error: str | None
    exit_requested: bool
    thinking_attempts_remaining: int
    keywords: list[str]
    actions: list[CandidateAction]
    pending_keyword: str | None
    hovered_keyword: str | None
    hovered_action: int | None
    avatar: Avatar


class TranscriptView(BaseModel):
    scroll_offset: int
    total_lines: int
    history_line_count: int
    can_scroll_up: bool
    can_scroll_down: bool
    lines: list[TranscriptLine]
