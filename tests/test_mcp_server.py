"""Tests for the MCP operator tools."""

import json

import pytest

from backend import mcp_server
from campus_sim.models import EventChoice, NarrativeEvent


@pytest.fixture
def operator(engine, record):
    engine.start_new_game(record)
    mcp_server.set_engine(engine)
    yield engine
    mcp_server.set_engine(None)


async def test_tools_are_registered():
    names = {tool.name for tool in await mcp_server.mcp.list_tools()}
    assert names == {"inspect_state", "check_invariants", "force_unlock", "export_save"}


def test_inspect_state(operator):
    state = mcp_server.inspect_state()
    assert state["phase"] == "playing"
    assert state["record"]["name"] == "Lin Xiao"


def test_check_invariants_healthy(operator):
    assert mcp_server.check_invariants() == []


def test_check_invariants_reports_problems(operator):
    operator.state.record.attributes.luck = float("nan")
    operator.state.current_event = NarrativeEvent(
        title="t", description="d", choices=[EventChoice(id="x", text="x")]
    )
    problems = mcp_server.check_invariants()
    assert any("attributes.luck" in p for p in problems)
    assert any("current_event" in p for p in problems)


def test_force_unlock(operator):
    operator.state.is_loading = True
    assert mcp_server.force_unlock() == {"is_loading": False}
    assert operator.state.is_loading is False


def test_export_save(operator):
    data = json.loads(mcp_server.export_save())
    assert data["record"]["name"] == "Lin Xiao"


def test_no_engine_attached():
    mcp_server.set_engine(None)
    with pytest.raises(RuntimeError):
        mcp_server.inspect_state()
