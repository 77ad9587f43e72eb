"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, settings, check-connection) and session
(engine state, transcript, world nodes, and the input-layer entry points
under /api/session/).
"""

from fastapi import APIRouter

from .session import router as session_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(session_router)
