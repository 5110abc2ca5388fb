"""Tests for campus_sim.content — provider adapter, parsing and fallback."""

import asyncio
import json
import random
from unittest.mock import AsyncMock

import pytest

from campus_sim.catalog import FALLBACK_EVENTS
from campus_sim.content import (
    ContentParseError,
    ContentProvider,
    fallback_event,
    parse_event_response,
)
from campus_sim.llm import LLMError
from campus_sim.models import GameConfig, LLMConfig

FALLBACK_TITLES = {t["title"] for t in FALLBACK_EVENTS}

GOOD_EVENT = {
    "title": "Midnight Noodles",
    "description": "Your roommate offers to share instant noodles.",
    "choices": [
        {"text": "Accept", "effects": {"stamina": 5, "money": -5}},
        {"text": "Go to sleep", "effects": {"stress": -2}},
    ],
}


def _config(api_key: str = "sk-test") -> GameConfig:
    return GameConfig(llm=LLMConfig(api_key=api_key))


def _provider(llm, **kwargs) -> ContentProvider:
    return ContentProvider(llm_factory=lambda _cfg: llm, rng=random.Random(1), **kwargs)


# ---------------------------------------------------------------------------
# parse_event_response
# ---------------------------------------------------------------------------

class TestParse:
    def test_plain_json(self) -> None:
        event = parse_event_response(json.dumps(GOOD_EVENT))
        assert event.title == "Midnight Noodles"
        assert event.source == "generated"
        assert [c.id for c in event.choices] == ["choice_0", "choice_1"]
        assert event.choices[0].effects[1].kind == "money"

    def test_code_fenced_json(self) -> None:
        text = "Sure! Here it is:\n```json\n" + json.dumps(GOOD_EVENT) + "\n```\nEnjoy."
        event = parse_event_response(text)
        assert len(event.choices) == 2

    def test_effects_as_typed_list(self) -> None:
        data = dict(GOOD_EVENT)
        data["choices"] = [
            {"text": "A", "effects": [{"kind": "gpa", "delta": 0.1}, {"kind": "bogus"}]},
            {"text": "B"},
        ]
        event = parse_event_response(json.dumps(data))
        assert [e.kind for e in event.choices[0].effects] == ["gpa"]
        assert event.choices[1].effects == []

    def test_unknown_and_non_numeric_effects_dropped(self) -> None:
        data = dict(GOOD_EVENT)
        data["choices"] = [
            {"text": "A", "effects": {"mana": 5, "iq": "high", "eq": 1}},
            {"text": "B", "effects": {}},
        ]
        event = parse_event_response(json.dumps(data))
        assert [(e.target, e.delta) for e in event.choices[0].effects] == [("eq", 1)]

    @pytest.mark.parametrize("text", [
        "not json at all",
        "```json\n{broken\n```",
        "[1, 2, 3]",
        json.dumps({**GOOD_EVENT, "title": ""}),
        json.dumps({**GOOD_EVENT, "description": None}),
        json.dumps({**GOOD_EVENT, "choices": "many"}),
        json.dumps({**GOOD_EVENT, "choices": [{"text": "only one"}]}),
        json.dumps({**GOOD_EVENT, "choices": [{"text": str(i)} for i in range(5)]}),
        json.dumps({**GOOD_EVENT, "choices": [{"effects": {}}, {"effects": {}}]}),
    ])
    def test_rejects_bad_shapes(self, text: str) -> None:
        with pytest.raises(ContentParseError):
            parse_event_response(text)


# ---------------------------------------------------------------------------
# fallback_event
# ---------------------------------------------------------------------------

def test_fallback_event_always_valid(record) -> None:
    rng = random.Random(0)
    for _ in range(25):
        event = fallback_event(record, rng)
        assert event.source == "fallback"
        assert event.title in FALLBACK_TITLES
        assert len(event.choices) >= 1
        assert event.date == record.current_date


# ---------------------------------------------------------------------------
# ContentProvider.generate_event
# ---------------------------------------------------------------------------

class TestGenerateEvent:
    async def test_no_api_key_skips_network(self, record) -> None:
        llm = AsyncMock()
        event = await _provider(llm).generate_event(_config(api_key=""), record)
        assert event.source == "fallback"
        llm.assert_not_called()

    async def test_generated_event(self, record) -> None:
        llm = AsyncMock(return_value=json.dumps(GOOD_EVENT))
        event = await _provider(llm).generate_event(_config(), record, trigger="late night snack")
        assert event.source == "generated"
        assert event.title == "Midnight Noodles"
        assert event.date == record.current_date
        system_prompt, user_prompt = llm.call_args[0]
        assert "JSON" in system_prompt
        assert "late night snack" in user_prompt

    async def test_transport_error_falls_back(self, record) -> None:
        llm = AsyncMock(side_effect=LLMError("boom"))
        event = await _provider(llm).generate_event(_config(), record)
        assert event.source == "fallback"

    async def test_unexpected_exception_falls_back(self, record) -> None:
        llm = AsyncMock(side_effect=KeyError("weird"))
        event = await _provider(llm).generate_event(_config(), record)
        assert event.source == "fallback"

    async def test_malformed_fenced_response_falls_back(self, record) -> None:
        llm = AsyncMock(return_value="```json\n{\"title\": \"x\",\n```")
        event = await _provider(llm).generate_event(_config(), record)
        assert event.source == "fallback"
        assert event.title in FALLBACK_TITLES

    async def test_timeout_falls_back(self, record) -> None:
        async def slow(system_prompt: str, user_prompt: str) -> str:
            await asyncio.sleep(5)
            return json.dumps(GOOD_EVENT)

        provider = _provider(slow, timeout=0.05)
        event = await provider.generate_event(_config(), record)
        assert event.source == "fallback"

    async def test_timed_out_call_is_cancelled(self, record) -> None:
        finished = []

        async def slow(system_prompt: str, user_prompt: str) -> str:
            await asyncio.sleep(0.2)
            finished.append(True)
            return json.dumps(GOOD_EVENT)

        event = await _provider(slow, timeout=0.02).generate_event(_config(), record)
        await asyncio.sleep(0.3)
        assert event.source == "fallback"
        assert finished == []


# ---------------------------------------------------------------------------
# ContentProvider.test_connection
# ---------------------------------------------------------------------------

class TestConnection:
    async def test_success(self) -> None:
        result = await _provider(AsyncMock(return_value="connected")).test_connection(_config())
        assert result.success is True
        assert result.error is None

    async def test_missing_key(self) -> None:
        result = await _provider(AsyncMock()).test_connection(_config(api_key=""))
        assert result.success is False
        assert "API key" in result.error

    async def test_error_reported(self) -> None:
        llm = AsyncMock(side_effect=LLMError("LLM backend returned HTTP 401"))
        result = await _provider(llm).test_connection(_config())
        assert result.success is False
        assert "401" in result.error

    async def test_timeout_reported(self) -> None:
        async def slow(system_prompt: str, user_prompt: str) -> str:
            await asyncio.sleep(5)
            return "connected"

        result = await _provider(slow, self_test_timeout=0.05).test_connection(_config())
        assert result.success is False
        assert "Timed out" in result.error
