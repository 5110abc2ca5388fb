"""Snapshot persistence.

A save is one JSON string blob in a local file slot:

    {base}/
      saves/
        {slot}.json     ← {"version", "saved_at", "record", "config",
                           "phase", "current_event"}

Loading is all-or-nothing. A snapshot that fails to parse, fails model
validation, or carries any value outside its bounds (NaN included) is
rejected as a whole and the caller keeps its current state. Config is the one
exception to "replace wholesale": persisted settings are merged over the
current ones so newly added keys keep their defaults.
"""

from __future__ import annotations

import json
import logging
import math
import sys
import time
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from campus_sim.config import merge_config
from campus_sim.models import (
    CharacterRecord,
    GameConfig,
    GamePhase,
    GameState,
    NarrativeEvent,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 2
DEFAULT_SLOT = "campus-sim-storage"

GAME_PHASES = {"playing", "event", "ending"}

# Largest balance that still converts to a float for effect arithmetic.
MONEY_MAX = sys.float_info.max


class SnapshotError(ValueError):
    """Raised when a snapshot cannot be decoded into a valid state."""


# ---------------------------------------------------------------------------
# SaveSlot: one JSON blob per file
# ---------------------------------------------------------------------------

class SaveSlot:
    def __init__(self, base_path: Path, name: str = DEFAULT_SLOT) -> None:
        self._dir = base_path / "saves"
        self._dir.mkdir(parents=True, exist_ok=True)
        self.name = name

    @property
    def path(self) -> Path:
        return self._dir / f"{self.name}.json"

    def read(self) -> str | None:
        if not self.path.is_file():
            return None
        return self.path.read_text(encoding="utf-8")

    def write(self, text: str) -> None:
        # Write-then-rename so a crash never leaves a half-written save.
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Invariant checks
# ---------------------------------------------------------------------------

def _check(violations: list[str], name: str, value: float | None, lo: float, hi: float) -> None:
    if value is None:
        return
    if not isinstance(value, (int, float)) or (isinstance(value, float) and not math.isfinite(value)):
        violations.append(f"{name} is not a finite number ({value!r})")
    elif not lo <= value <= hi:
        violations.append(f"{name}={value} outside [{lo}, {hi}]")


def find_violations(record: CharacterRecord) -> list[str]:
    """Return every bounded field that is NaN or out of range."""
    violations: list[str] = []
    for name, value in record.attributes.model_dump().items():
        _check(violations, f"attributes.{name}", value, 0, 100)
    _check(violations, "money", record.money, 0, MONEY_MAX)
    _check(violations, "academic.gpa", record.academic.gpa, 0, 4.0)
    _check(violations, "max_action_points", record.max_action_points, 0, math.inf)
    _check(violations, "action_points", record.action_points, 0, record.max_action_points)
    _check(violations, "family.monthly_allowance", record.family.monthly_allowance, 0, math.inf)
    for npc in record.npcs:
        _check(violations, f"npcs[{npc.id}].relationship_score", npc.relationship_score, -100, 100)
    for quest in record.quests:
        _check(violations, f"quests[{quest.id}].progress", quest.progress, 0, 100)
        _check(violations, f"quests[{quest.id}].current_stage", quest.current_stage,
               0, max(0, len(quest.stages) - 1))
    date = record.current_date
    _check(violations, "current_date.year", date.year, 1, 4)
    _check(violations, "current_date.semester", date.semester, 1, 2)
    _check(violations, "current_date.week", date.week, 1, 20)
    return violations


# ---------------------------------------------------------------------------
# PersistenceManager
# ---------------------------------------------------------------------------

class _Envelope(BaseModel):
    """Outer shape of a snapshot; the nested blocks are validated separately."""

    version: int = 1
    phase: GamePhase | None = None
    record: dict[str, Any] | None = None
    config: dict[str, Any] | None = None
    current_event: dict[str, Any] | None = None


def _migrate(data: dict[str, Any]) -> dict[str, Any]:
    """Upgrade older snapshot layouts in place."""
    if data.get("version", 1) == 1:
        # v1 stored the record under "student" and the event under "currentEvent".
        if "student" in data and "record" not in data:
            data["record"] = data.pop("student")
        if "currentEvent" in data and "current_event" not in data:
            data["current_event"] = data.pop("currentEvent")
        data["version"] = 2
    return data


def _merge_config(current: GameConfig, persisted: Any) -> GameConfig:
    if not isinstance(persisted, dict):
        return current.model_copy(deep=True)
    try:
        return merge_config(current, persisted)
    except ValidationError as e:
        raise SnapshotError(f"Invalid config in snapshot: {e.errors()[0]['msg']}") from e


class PersistenceManager:
    """Snapshot codec plus optional write-through to a SaveSlot.

    Without a slot the manager still exports, imports and validates
    snapshots; save/load/clear become no-ops.
    """

    def __init__(self, slot: SaveSlot | None = None) -> None:
        self.slot = slot

    # -- encode -----------------------------------------------------------

    def export_snapshot(self, state: GameState) -> str:
        data = {
            "version": SNAPSHOT_VERSION,
            "saved_at": time.time(),
            "record": state.record.model_dump() if state.record else None,
            "config": state.config.model_dump(),
            "phase": state.phase,
            "current_event": state.current_event.model_dump() if state.current_event else None,
        }
        return json.dumps(data, ensure_ascii=False, indent=2)

    # -- decode -----------------------------------------------------------

    def decode(self, persisted: str | dict[str, Any], current: GameState) -> GameState:
        """Build a new GameState from a snapshot or raise SnapshotError."""
        if isinstance(persisted, str):
            try:
                data = json.loads(persisted)
            except json.JSONDecodeError as e:
                raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
        else:
            try:
                data = json.loads(json.dumps(persisted))  # detach from the caller's dict
            except (TypeError, ValueError) as e:
                raise SnapshotError(f"Snapshot is not JSON-serialisable: {e}") from e
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot is not a JSON object")
        try:
            envelope = _Envelope.model_validate(_migrate(data))
        except ValidationError as e:
            err = e.errors()[0]
            where = ".".join(str(p) for p in err["loc"])
            raise SnapshotError(f"Malformed snapshot at {where or 'top level'}: {err['msg']}") from e

        record: CharacterRecord | None = None
        if envelope.record is not None:
            try:
                record = CharacterRecord.model_validate(envelope.record)
            except ValidationError as e:
                raise SnapshotError(f"Malformed record: {e.errors()[0]['msg']}") from e
            violations = find_violations(record)
            if violations:
                raise SnapshotError("; ".join(violations))

        config = _merge_config(current.config, envelope.config)

        event: NarrativeEvent | None = None
        if envelope.current_event is not None:
            try:
                event = NarrativeEvent.model_validate(envelope.current_event)
            except ValidationError as e:
                raise SnapshotError(f"Malformed pending event: {e.errors()[0]['msg']}") from e

        phase = envelope.phase or ("playing" if record else "main_menu")
        if record is None:
            phase = "main_menu" if phase in GAME_PHASES else phase
            event = None
        elif phase == "event" and event is None:
            phase = "playing"
        elif phase != "event":
            event = None

        return GameState(phase=phase, record=record, config=config, current_event=event)

    def import_snapshot(self, text: str, state: GameState) -> bool:
        """Replace state from an exported snapshot. On rejection state is untouched."""
        try:
            decoded = self.decode(text, state)
        except SnapshotError as e:
            logger.warning("Rejected imported save: %s", e)
            return False
        if decoded.record is None:
            logger.warning("Rejected imported save: no character record")
            return False
        state.record = decoded.record
        state.config = decoded.config
        state.phase = decoded.phase
        state.current_event = decoded.current_event
        state.error = None
        return True

    def restore_on_load(self, persisted: str | dict[str, Any] | None, current: GameState) -> GameState:
        """Merge a persisted snapshot into current state, or keep current when invalid."""
        if persisted is None:
            return current
        try:
            restored = self.decode(persisted, current)
        except SnapshotError as e:
            logger.warning("Discarding persisted snapshot: %s", e)
            return current
        logger.info("Restored snapshot (phase=%s)", restored.phase)
        return restored

    # -- slot I/O ---------------------------------------------------------

    def has_save(self) -> bool:
        return self.slot is not None and self.slot.path.is_file()

    def save(self, state: GameState) -> bool:
        if self.slot is None:
            return False
        try:
            self.slot.write(self.export_snapshot(state))
        except OSError as e:
            logger.error("Failed to write save slot %s: %s", self.slot.path, e)
            return False
        return True

    def load(self, current: GameState) -> GameState:
        if self.slot is None:
            return current
        try:
            text = self.slot.read()
        except OSError as e:
            logger.error("Failed to read save slot %s: %s", self.slot.path, e)
            return current
        return self.restore_on_load(text, current)

    def clear(self) -> None:
        if self.slot is None:
            return
        try:
            self.slot.clear()
        except OSError as e:
            logger.error("Failed to clear save slot %s: %s", self.slot.path, e)
