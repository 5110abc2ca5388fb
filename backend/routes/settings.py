"""Health check, settings and connection check endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request

from campus_sim.config import merge_config, save_config
from campus_sim.turns import TurnEngine

from .game import get_engine
from .models import CheckConnectionBody

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.post("/check-connection")
async def check_connection(body: CheckConnectionBody, engine: TurnEngine = Depends(get_engine)):
    """Run the provider self-test with the stored settings, optionally overridden."""
    overrides = body.model_dump(exclude_none=True)
    config = merge_config(engine.state.config, {"llm": overrides})
    result = await engine.content.test_connection(config)
    return {"ok": result.success, "error": result.error}


@router.get("/settings")
async def get_settings(engine: TurnEngine = Depends(get_engine)):
    """Get game settings (LLM connection, language, display toggles)."""
    return engine.state.config.model_dump()


@router.patch("/settings")
async def update_settings(body: dict, request: Request, engine: TurnEngine = Depends(get_engine)):
    """Update settings (partial merge). Returns the full config."""
    if not engine.set_config(body):
        raise HTTPException(422, "Invalid settings")
    save_config(request.app.state.data_dir, engine.state.config)
    return engine.state.config.model_dump()
