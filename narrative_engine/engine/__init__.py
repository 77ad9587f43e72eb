"""Phase state machine and its per-node session."""

from .factory import build_engine
from .machine import FAILURE_MARKER, SUCCESS_MARKER, NarrativeEngine, PhaseError
from .session import LOADING_PHASES, NodeSession, Phase

__all__ = [
    "build_engine",
    "FAILURE_MARKER",
    "LOADING_PHASES",
    "NarrativeEngine",
    "NodeSession",
    "Phase",
    "PhaseError",
    "SUCCESS_MARKER",
]
