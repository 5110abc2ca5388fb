"""Handlebars prompt rendering for event generation."""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

import pybars

from campus_sim.models import CharacterRecord


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_take(this, options, items, count):
    """{{#take array N}}...{{/take}} — iterate over the first N items."""
    result = []
    for item in list(items)[:int(count)]:
        result.extend(options["fn"](item))
    return result


def _helper_fixed(this, value, digits=2):
    """{{fixed value}} — format a number with two decimals (or `digits`)."""
    try:
        return f"{float(value):.{int(digits)}f}"
    except (TypeError, ValueError):
        return str(value)


_HELPERS: dict[str, Callable] = {
    "take": _helper_take,
    "fixed": _helper_fixed,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        result = compiled(context, helpers=_HELPERS)
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e
    # pybars may hand back its list-based string builder
    return result if isinstance(result, str) else "".join(result)


# ── Event generation templates ───────────────────────────


SYSTEM_PROMPT = """You are the narrator of a Chinese university life simulator.
Generate engaging, realistic and sometimes humorous campus events.
Reply with JSON only, in this shape:
{"title": "...", "description": "...", "choices": [{"text": "...", "effects": {"iq": 2, "stamina": -5, "money": -20, "gpa": 0.1}}]}
Offer 2 to 4 choices. Effect keys may be: iq, eq, stamina, stress, charm, luck, employability, money, gpa."""

EVENT_PROMPT = """Current student status:
- Name: {{{name}}}, Year {{date.year}}, {{semester_name}} semester, Week {{date.week}}
- University: {{{university}}} ({{{tier}}})
- Major: {{{major}}}
- GPA: {{fixed gpa}}
- Money: ¥{{money}}
- IQ: {{attrs.iq}}, EQ: {{attrs.eq}}
- Energy: {{attrs.stamina}}%, Stress: {{attrs.stress}}%
- Charm: {{attrs.charm}}, Luck: {{attrs.luck}}
- Dating: {{#if flags.is_dating}}Yes{{else}}No{{/if}}
- Has job: {{#if flags.has_job}}Yes{{else}}No{{/if}}
- Relationships: {{#take npcs 3}}{{{name}}}({{role}}:{{score}}) {{/take}}
{{#if location}}
The student is currently at: {{{location}}}
{{/if}}
{{#if trigger}}
The event should involve: {{{trigger}}}
{{/if}}
Generate one campus event for this week. Write it in {{language}}."""

CONNECTION_TEST_PROMPT = 'Reply with the single word "connected".'


def _round(value: float | None) -> float | int | None:
    if value is None or not math.isfinite(value):
        return value
    return int(value) if value == int(value) else round(value, 1)


def build_context(
    record: CharacterRecord,
    language: str = "zh",
    trigger: str | None = None,
    location: str | None = None,
) -> dict[str, Any]:
    """Assemble template variables from the character record.

    Returns a dict suitable for passing to render_prompt().
    """
    attrs = {k: _round(v) for k, v in record.attributes.model_dump().items()}
    return {
        "language": "Chinese" if language == "zh" else "English",
        "name": record.name,
        "date": record.current_date.model_dump(),
        "semester_name": "autumn" if record.current_date.semester == 1 else "spring",
        "university": record.academic.university_name or "unknown university",
        "tier": record.academic.university_tier or "unranked",
        "major": record.academic.major or "undeclared",
        "gpa": record.academic.gpa,
        "money": record.money,
        "attrs": attrs,
        "flags": record.flags.model_dump(),
        "npcs": [
            {"name": n.name, "role": n.role, "score": _round(n.relationship_score)}
            for n in record.npcs
        ],
        "location": location or record.current_location,
        "trigger": trigger,
    }
