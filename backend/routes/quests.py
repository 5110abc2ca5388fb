"""Quest lifecycle endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from campus_sim.turns import TurnEngine

from .game import get_engine
from .models import ProgressBody

router = APIRouter()


def _require_quest(engine: TurnEngine, quest_id: str) -> None:
    record = engine.state.record
    if record is None or record.find_quest(quest_id) is None:
        raise HTTPException(404, "Quest not found")


@router.get("/quests")
async def list_quests(engine: TurnEngine = Depends(get_engine)):
    """List quests on the current record."""
    record = engine.state.record
    return [q.model_dump() for q in record.quests] if record else []


@router.post("/quests/{quest_id}/advance")
async def advance_stage(quest_id: str, engine: TurnEngine = Depends(get_engine)):
    """Complete the current stage; the last stage completes the quest."""
    _require_quest(engine, quest_id)
    return {"ok": engine.advance_quest_stage(quest_id)}


@router.post("/quests/{quest_id}/progress")
async def update_progress(quest_id: str, body: ProgressBody, engine: TurnEngine = Depends(get_engine)):
    """Add progress; reaching 100 completes the quest."""
    _require_quest(engine, quest_id)
    return {"ok": engine.update_quest_progress(quest_id, body.delta)}


@router.post("/quests/{quest_id}/complete")
async def complete_quest(quest_id: str, engine: TurnEngine = Depends(get_engine)):
    """Complete the quest and grant its rewards."""
    _require_quest(engine, quest_id)
    return {"ok": engine.complete_quest(quest_id)}


@router.post("/quests/{quest_id}/fail")
async def fail_quest(quest_id: str, engine: TurnEngine = Depends(get_engine)):
    """Mark an active quest as failed."""
    _require_quest(engine, quest_id)
    return {"ok": engine.fail_quest(quest_id)}
