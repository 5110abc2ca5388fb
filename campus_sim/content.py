"""Content provider adapter — turns a character record into a narrative event.

Flow for generate_event():

    1. No API key configured → sample the local fallback pool, no network.
    2. Render the prompt context (calendar, stats, top relationships, trigger).
    3. One provider call raced against a deadline (asyncio.wait_for). The
       losing call is cancelled, so a late reply can never reach the caller.
    4. Parse: strip code fences, json.loads, validate shape, coerce effects.
    5. Any failure along the way → fallback event.

generate_event() never raises. test_connection() uses the same transport with
a longer deadline and reports success/failure instead of an event.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from campus_sim.catalog import FALLBACK_EVENTS
from campus_sim.effects import coerce_effect, effects_from_map
from campus_sim.llm import LLM, HttpLLM
from campus_sim.models import (
    CharacterRecord,
    Effect,
    EventChoice,
    GameConfig,
    LLMConfig,
    NarrativeEvent,
)
from campus_sim.prompts import (
    CONNECTION_TEST_PROMPT,
    EVENT_PROMPT,
    SYSTEM_PROMPT,
    build_context,
    render_prompt,
)

logger = logging.getLogger(__name__)

NARRATIVE_TIMEOUT = 15.0
SELF_TEST_TIMEOUT = 30.0
MIN_CHOICES, MAX_CHOICES = 2, 4

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class ContentParseError(ValueError):
    """Raised when a provider response is not a usable event."""


class ConnectionResult(BaseModel):
    success: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _strip_fences(text: str) -> str:
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _parse_choice_effects(raw: Any) -> list[Effect]:
    if raw is None:
        return []
    if isinstance(raw, dict):
        return effects_from_map(raw)
    if isinstance(raw, list):
        return [e for e in (coerce_effect(item) for item in raw) if e is not None]
    logger.debug("Ignoring effects of unexpected type %s", type(raw).__name__)
    return []


def parse_event_response(text: str) -> NarrativeEvent:
    """Parse a provider reply into a NarrativeEvent or raise ContentParseError."""
    try:
        data = json.loads(_strip_fences(text))
    except json.JSONDecodeError as e:
        raise ContentParseError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ContentParseError("Response JSON is not an object")

    title = data.get("title")
    description = data.get("description")
    if not isinstance(title, str) or not title.strip():
        raise ContentParseError("Event has no title")
    if not isinstance(description, str) or not description.strip():
        raise ContentParseError("Event has no description")

    raw_choices = data.get("choices")
    if not isinstance(raw_choices, list):
        raise ContentParseError("Event has no choices list")

    choices: list[EventChoice] = []
    for raw in raw_choices:
        if not isinstance(raw, dict) or not isinstance(raw.get("text"), str) or not raw["text"].strip():
            logger.debug("Skipping malformed choice %r", raw)
            continue
        choices.append(
            EventChoice(
                id=f"choice_{len(choices)}",
                text=raw["text"].strip(),
                effects=_parse_choice_effects(raw.get("effects")),
            )
        )

    if not MIN_CHOICES <= len(choices) <= MAX_CHOICES:
        raise ContentParseError(f"Event has {len(choices)} usable choices, expected 2-4")

    return NarrativeEvent(
        title=title.strip(),
        description=description.strip(),
        choices=choices,
        source="generated",
    )


# ---------------------------------------------------------------------------
# Fallback pool
# ---------------------------------------------------------------------------

def fallback_event(record: CharacterRecord, rng: random.Random | None = None) -> NarrativeEvent:
    """Sample a local template; always returns a valid event."""
    template = (rng or random).choice(FALLBACK_EVENTS)
    choices = [
        EventChoice(id=f"choice_{i}", text=c["text"], effects=effects_from_map(c["effects"]))
        for i, c in enumerate(template["choices"])
    ]
    return NarrativeEvent(
        title=template["title"],
        description=template["description"],
        choices=choices,
        date=record.current_date.model_copy(),
        source="fallback",
    )


# ---------------------------------------------------------------------------
# ContentProvider
# ---------------------------------------------------------------------------

class ContentProvider:
    """Adapter between the turn engine and a remote text-completion provider.

    Args:
        llm_factory:       Builds an LLM callable from the current LLMConfig.
                           Defaults to HttpLLM.from_config.
        timeout:           Deadline for narrative generation, in seconds.
        self_test_timeout: Deadline for test_connection(), in seconds.
        rng:               Random source for the fallback pool.
    """

    def __init__(
        self,
        llm_factory: Callable[[LLMConfig], LLM] | None = None,
        timeout: float = NARRATIVE_TIMEOUT,
        self_test_timeout: float = SELF_TEST_TIMEOUT,
        rng: random.Random | None = None,
    ) -> None:
        self._llm_factory = llm_factory or HttpLLM.from_config
        self._timeout = timeout
        self._self_test_timeout = self_test_timeout
        self._rng = rng or random.Random()

    async def generate_event(
        self,
        config: GameConfig,
        record: CharacterRecord,
        trigger: str | None = None,
        location: str | None = None,
    ) -> NarrativeEvent:
        if not config.llm.api_key:
            logger.debug("No API key configured, using fallback pool")
            return fallback_event(record, self._rng)

        try:
            context = build_context(record, config.language, trigger=trigger, location=location)
            user_prompt = render_prompt(EVENT_PROMPT, context)
            llm = self._llm_factory(config.llm)
            text = await asyncio.wait_for(llm(SYSTEM_PROMPT, user_prompt), self._timeout)
            event = parse_event_response(text)
        except asyncio.TimeoutError:
            logger.warning("Content provider timed out after %ss, using fallback", self._timeout)
            return fallback_event(record, self._rng)
        except Exception as e:
            logger.warning("Event generation failed (%s), using fallback", e)
            return fallback_event(record, self._rng)

        event.date = record.current_date.model_copy()
        logger.info("Generated event %r with %d choices", event.title, len(event.choices))
        return event

    async def test_connection(self, config: GameConfig) -> ConnectionResult:
        if not config.llm.api_key:
            return ConnectionResult(success=False, error="API key is missing")
        try:
            llm = self._llm_factory(config.llm)
            text = await asyncio.wait_for(
                llm("You are a connectivity check.", CONNECTION_TEST_PROMPT),
                self._self_test_timeout,
            )
        except asyncio.TimeoutError:
            return ConnectionResult(
                success=False, error=f"Timed out after {self._self_test_timeout}s"
            )
        except Exception as e:
            logger.info("Connection test failed: %s", e)
            return ConnectionResult(success=False, error=str(e))
        if not text or not text.strip():
            return ConnectionResult(success=False, error="Empty response from provider")
        return ConnectionResult(success=True)
