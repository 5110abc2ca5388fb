"""Effect engine — the single mutation path for bounded numeric fields.

apply_effects() walks an effect list in order and clamps after every item:

    attributes     [0, 100]
    gpa            [0, 4.0]
    money          >= 0, rounded to an integer
    relationships  [-100, 100]

Malformed items are skipped with a warning and the rest still apply. That
includes string or boolean deltas and money changes that would overflow. A final
sweep guards money and gpa against non-finite values. Nothing here raises and
nothing here notifies; callers compose their own feedback with
describe_effects().
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Any

from pydantic import TypeAdapter, ValidationError

from campus_sim.models import (
    AttributeEffect,
    CharacterRecord,
    Effect,
    GpaEffect,
    MoneyEffect,
    RelationshipEffect,
)

logger = logging.getLogger(__name__)

ATTRIBUTE_MIN, ATTRIBUTE_MAX = 0.0, 100.0
GPA_MIN, GPA_MAX = 0.0, 4.0
RELATIONSHIP_MIN, RELATIONSHIP_MAX = -100.0, 100.0

_effect_adapter: TypeAdapter[Effect] = TypeAdapter(Effect)

_LABELS = {
    "iq": "IQ",
    "eq": "EQ",
    "stamina": "Stamina",
    "stress": "Stress",
    "charm": "Charm",
    "luck": "Luck",
    "employability": "Employability",
    "logic": "Logic",
    "creativity": "Creativity",
}


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def coerce_effect(raw: Any) -> Effect | None:
    """Validate one effect; returns None (and logs) when it is unusable."""
    try:
        effect = _effect_adapter.validate_python(raw)
    except ValidationError as e:
        logger.warning("Dropping malformed effect %r: %s", raw, e.errors()[0]["msg"])
        return None
    if not math.isfinite(effect.delta):
        logger.warning("Dropping effect with non-finite delta: %r", raw)
        return None
    return effect


def _is_finite(value: float) -> bool:
    # ints are exact; math.isfinite() would overflow on very large ones
    return isinstance(value, int) or math.isfinite(value)


def _finite_sum(current: float, delta: float) -> float | None:
    try:
        total = current + delta
    except OverflowError:
        return None
    return total if _is_finite(total) else None


def _apply_one(record: CharacterRecord, effect: Effect) -> None:
    if isinstance(effect, MoneyEffect):
        balance = _finite_sum(record.money, effect.delta)
        if balance is None:
            logger.warning("Dropping money effect %g: balance would overflow", effect.delta)
            return
        record.money = max(0, round(balance))

    elif isinstance(effect, AttributeEffect):
        current = getattr(record.attributes, effect.target)
        if current is None:
            logger.warning("Attribute %s is not tracked on this record, skipping", effect.target)
            return
        setattr(
            record.attributes,
            effect.target,
            clamp(current + effect.delta, ATTRIBUTE_MIN, ATTRIBUTE_MAX),
        )

    elif isinstance(effect, GpaEffect):
        record.academic.gpa = clamp(record.academic.gpa + effect.delta, GPA_MIN, GPA_MAX)

    elif isinstance(effect, RelationshipEffect):
        npc = record.find_npc(effect.target_npc_id)
        if npc is None:
            logger.warning("Unknown NPC %r in relationship effect, skipping", effect.target_npc_id)
            return
        npc.relationship_score = clamp(
            npc.relationship_score + effect.delta, RELATIONSHIP_MIN, RELATIONSHIP_MAX
        )


def apply_effects(record: CharacterRecord, effects: Iterable[Any]) -> CharacterRecord:
    """Apply effects in list order, clamping after each. Mutates and returns record."""
    money_before = record.money
    gpa_before = record.academic.gpa

    for raw in effects:
        effect = coerce_effect(raw)
        if effect is not None:
            _apply_one(record, effect)

    # Final sweep: money and gpa must never end up non-finite or out of range.
    if not _is_finite(record.money):
        record.money = money_before if _is_finite(money_before) else 0
    record.money = max(0, int(record.money))
    if not math.isfinite(record.academic.gpa):
        record.academic.gpa = gpa_before if math.isfinite(gpa_before) else 0.0
    record.academic.gpa = clamp(record.academic.gpa, GPA_MIN, GPA_MAX)
    return record


def _fmt(delta: float) -> str:
    sign = "+" if delta >= 0 else "-"
    magnitude = abs(delta)
    if magnitude == int(magnitude):
        return f"{sign}{int(magnitude)}"
    return f"{sign}{magnitude:g}"


def describe_effects(record: CharacterRecord, effects: Iterable[Any]) -> str:
    """Human-readable summary, e.g. "Money +500, Stamina -20"."""
    parts: list[str] = []
    for raw in effects:
        effect = coerce_effect(raw)
        if effect is None:
            continue
        if isinstance(effect, MoneyEffect):
            parts.append(f"Money {_fmt(effect.delta)}")
        elif isinstance(effect, AttributeEffect):
            parts.append(f"{_LABELS[effect.target]} {_fmt(effect.delta)}")
        elif isinstance(effect, GpaEffect):
            parts.append(f"GPA {_fmt(effect.delta)}")
        elif isinstance(effect, RelationshipEffect):
            npc = record.find_npc(effect.target_npc_id)
            name = npc.name if npc else effect.target_npc_id
            parts.append(f"{name} {_fmt(effect.delta)}")
    return ", ".join(parts)


def effects_from_map(values: dict[str, Any]) -> list[Effect]:
    """Convert a declarative map like {"iq": 2, "money": -15} into typed effects.

    Keys that are not attributes, "money" or "gpa" are dropped, as are
    non-numeric values.
    """
    effects: list[Effect] = []
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.debug("Ignoring non-numeric effect value %s=%r", key, value)
            continue
        if key == "money":
            raw: dict[str, Any] = {"kind": "money", "delta": value}
        elif key == "gpa":
            raw = {"kind": "gpa", "delta": value}
        elif key in _LABELS:
            raw = {"kind": "attribute", "target": key, "delta": value}
        else:
            logger.debug("Ignoring unknown effect key %r", key)
            continue
        effect = coerce_effect(raw)
        if effect is not None:
            effects.append(effect)
    return effects
