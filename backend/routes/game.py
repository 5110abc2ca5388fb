"""Game state, turn loop and direct action endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request

from campus_sim.characters import new_character
from campus_sim.turns import TurnEngine

from .models import ActionBody, EffectsBody, NewGameBody, PhaseBody, ResolveBody, UseItemBody

router = APIRouter()


def get_engine(request: Request) -> TurnEngine:
    return request.app.state.engine


def _result(engine: TurnEngine, ok: bool) -> dict:
    return {"ok": ok, "state": engine.snapshot()}


@router.get("/state")
async def get_state(engine: TurnEngine = Depends(get_engine)):
    """Full observable state: phase, record, pending event, flags, notifications."""
    return engine.snapshot()


@router.post("/game/new")
async def new_game(body: NewGameBody, engine: TurnEngine = Depends(get_engine)):
    """Create a character from wizard answers and start playing."""
    record = new_character(**body.model_dump())
    engine.start_new_game(record)
    return _result(engine, True)


@router.post("/game/advance")
async def advance_turn(engine: TurnEngine = Depends(get_engine)):
    """Advance one week and fetch the next event."""
    if engine.state.is_loading:
        raise HTTPException(409, "A turn is already in flight")
    event = await engine.advance_turn()
    return {
        "event": event.model_dump() if event else None,
        "state": engine.snapshot(),
    }


@router.post("/game/resolve")
async def resolve_event(body: ResolveBody, engine: TurnEngine = Depends(get_engine)):
    """Pick a choice for the pending event."""
    return _result(engine, engine.resolve_event(body.choice_id))


@router.post("/game/effects")
async def apply_effects(body: EffectsBody, engine: TurnEngine = Depends(get_engine)):
    """Apply raw effects to the record (malformed items are skipped)."""
    return _result(engine, engine.apply_effects(body.effects))


@router.post("/game/actions/{action}")
async def process_action(action: str, body: ActionBody | None = None,
                         engine: TurnEngine = Depends(get_engine)):
    """Spend action points on a weekly activity (study, work, relax, ...)."""
    ap_cost = body.ap_cost if body else 1
    return _result(engine, engine.process_action(action, ap_cost))


@router.post("/game/items/{item_id}/use")
async def use_item(item_id: str, body: UseItemBody | None = None,
                   engine: TurnEngine = Depends(get_engine)):
    """Use an inventory item; gifts need a target NPC."""
    target = body.target_npc_id if body else None
    return _result(engine, engine.use_item(item_id, target))


@router.post("/game/items/{item_id}/buy")
async def buy_item(item_id: str, engine: TurnEngine = Depends(get_engine)):
    """Buy an item from the shop catalog."""
    return _result(engine, engine.buy_item(item_id))


@router.post("/game/npcs/{npc_id}/chat")
async def chat_with_npc(npc_id: str, engine: TurnEngine = Depends(get_engine)):
    """Spend stamina to improve a relationship."""
    return _result(engine, engine.chat_with_npc(npc_id))


@router.post("/game/jobs/{job_id}")
async def apply_job(job_id: str, engine: TurnEngine = Depends(get_engine)):
    """Take a part-time job from the jobs catalog."""
    return _result(engine, engine.apply_job(job_id))


@router.delete("/game/jobs")
async def quit_job(engine: TurnEngine = Depends(get_engine)):
    """Quit the current job."""
    return _result(engine, engine.quit_job())


@router.post("/game/phase")
async def set_phase(body: PhaseBody, engine: TurnEngine = Depends(get_engine)):
    """Navigate between menu, creation and playing phases."""
    return _result(engine, engine.set_phase(body.phase))


@router.post("/game/force-unlock")
async def force_unlock(engine: TurnEngine = Depends(get_engine)):
    """Clear a stuck in-flight turn."""
    engine.force_unlock()
    return _result(engine, True)


@router.post("/game/reset")
async def reset(engine: TurnEngine = Depends(get_engine)):
    """Discard the current game and its save, keeping settings."""
    engine.reset()
    return _result(engine, True)


@router.delete("/notifications/{notification_id}")
async def dismiss_notification(notification_id: str, engine: TurnEngine = Depends(get_engine)):
    """Dismiss a single notification."""
    if not engine.dismiss_notification(notification_id):
        raise HTTPException(404, "Notification not found")
    return {"ok": True}
