"""Health check, settings and connection check endpoints."""

import logging

import httpx
from fastapi import APIRouter, HTTPException, Request

from narrative_engine import config
from narrative_engine.llm import Connection

from .models import CheckConnectionBody

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.post("/check-connection")
async def check_connection(body: CheckConnectionBody):
    """Ask a provider for its model info before saving its URL."""
    conn = Connection(provider_url=body.provider_url, api_key=body.api_key, timeout=5.0)
    model_url = f"{conn.base_url}/api/v1/model"
    try:
        async with httpx.AsyncClient(timeout=conn.timeout) as http:
            reply = await http.get(model_url, headers=conn.headers())
            reply.raise_for_status()
    except httpx.HTTPError as e:
        logger.info("connection check against %s failed: %s", model_url, e)
        return {"ok": False}
    return {"ok": True}


@router.get("/settings")
async def get_settings():
    """Get app settings (connections and engine tuning)."""
    return config.get_config()


@router.patch("/settings")
async def update_settings(request: Request, body: dict):
    """Update settings (partial merge) and rebuild the engine with them."""
    engine = request.app.state.engine
    if engine.is_loading:
        raise HTTPException(409, "Cannot change settings while a phase is running")
    updated = config.update_config(body)
    request.app.state.engine = request.app.state.engine_factory(updated)
    return updated
