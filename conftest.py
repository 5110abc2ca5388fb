import random

import pytest

from campus_sim.content import ContentProvider
from campus_sim.models import NPC, Attributes, CharacterRecord, GameConfig
from campus_sim.notifications import NotificationSink
from campus_sim.persistence import PersistenceManager, SaveSlot
from campus_sim.turns import TurnEngine


def _make_record(**overrides) -> CharacterRecord:
    """A deterministic record for tests; keyword overrides replace fields."""
    fields = {
        "name": "Lin Xiao",
        "attributes": Attributes(iq=60, eq=55, stamina=70, stress=20, charm=50, luck=50, employability=50),
        "money": 1000,
        "npcs": [
            NPC(id="roommate_1", name="Wang Lei", role="roommate", relationship_score=40),
            NPC(id="classmate_1", name="Li Na", gender="female", role="classmate", relationship_score=10),
        ],
    }
    fields.update(overrides)
    return CharacterRecord(**fields)


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def record() -> CharacterRecord:
    return _make_record()


@pytest.fixture
def sink() -> NotificationSink:
    return NotificationSink()


@pytest.fixture
def save_dir(tmp_path):
    """Fresh data directory per test."""
    return tmp_path / "data"


@pytest.fixture
def engine(save_dir) -> TurnEngine:
    """Offline engine (no API key) with a seeded RNG and a real save slot."""
    rng = random.Random(7)
    return TurnEngine(
        content=ContentProvider(rng=rng),
        persistence=PersistenceManager(SaveSlot(save_dir)),
        config=GameConfig(),
        rng=rng,
    )
