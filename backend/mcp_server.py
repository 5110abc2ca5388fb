"""FastMCP server exposing operator tools for a running game session.

Tools:
  - inspect_state()      — observable state snapshot (phase, record, event, flags)
  - check_invariants()   — list every NaN/out-of-range field on the record
  - force_unlock()       — clear a turn stuck in flight
  - export_save()        — the current snapshot as a JSON string

The engine is set via set_engine() by backend.app, or by tests. When run as
__main__ a fresh engine is restored from data/saves.

Usage:
    uv run python -m backend.mcp_server
"""

from mcp.server.fastmcp import FastMCP

from campus_sim.persistence import find_violations
from campus_sim.turns import TurnEngine

mcp = FastMCP("campus-sim-operator")

_engine: TurnEngine | None = None


def set_engine(engine: TurnEngine) -> None:
    """Replace the active engine (used by the app factory and tests)."""
    global _engine
    _engine = engine


def get_engine() -> TurnEngine:
    if _engine is None:
        raise RuntimeError("No game engine attached")
    return _engine


@mcp.tool()
def inspect_state() -> dict:
    """Return the observable game state snapshot."""
    return get_engine().snapshot()


@mcp.tool()
def check_invariants() -> list[str]:
    """Return invariant violations on the current record (empty when healthy)."""
    engine = get_engine()
    violations: list[str] = []
    state = engine.state
    if state.record is not None:
        violations.extend(find_violations(state.record))
    if (state.current_event is None) != (state.phase != "event"):
        violations.append(f"phase={state.phase} but current_event is {'set' if state.current_event else 'missing'}")
    return violations


@mcp.tool()
def force_unlock() -> dict:
    """Clear the in-flight flag of a stuck turn. Returns the new flag state."""
    engine = get_engine()
    engine.force_unlock()
    return {"is_loading": engine.state.is_loading}


@mcp.tool()
def export_save() -> str:
    """Export the current game as a snapshot string."""
    return get_engine().export_save()


if __name__ == "__main__":
    from pathlib import Path

    from campus_sim.config import load_config
    from campus_sim.persistence import PersistenceManager, SaveSlot

    data_dir = Path(__file__).parent.parent / "data"
    engine = TurnEngine(persistence=PersistenceManager(SaveSlot(data_dir)), config=load_config(data_dir))
    engine.restore()
    set_engine(engine)
    mcp.run()
