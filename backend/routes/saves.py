"""Save export/import endpoints."""

from fastapi import APIRouter, Depends

from campus_sim.turns import TurnEngine

from .game import get_engine
from .models import ImportBody

router = APIRouter()


@router.get("/save/export")
async def export_save(engine: TurnEngine = Depends(get_engine)):
    """Serialize the current game to a JSON string."""
    return {"data": engine.export_save()}


@router.post("/save/import")
async def import_save(body: ImportBody, engine: TurnEngine = Depends(get_engine)):
    """Replace the current game from an exported string. Corrupted saves are rejected."""
    ok = engine.import_save(body.data)
    return {"ok": ok, "state": engine.snapshot()}
