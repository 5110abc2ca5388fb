"""Tests for campus_sim.characters — new character factory."""

import random

from campus_sim.characters import new_character
from campus_sim.persistence import find_violations


def test_new_character_defaults():
    record = new_character("Lin Xiao", rng=random.Random(3))
    assert record.name == "Lin Xiao"
    assert record.current_date.year == 1
    assert record.current_date.week == 1
    assert record.family.monthly_allowance == 1500
    assert record.money == 1500
    assert record.academic.gpa == 0
    assert record.action_points == 7
    assert find_violations(record) == []


def test_wealth_sets_allowance():
    assert new_character("a", wealth="poor", rng=random.Random(1)).family.monthly_allowance == 800
    assert new_character("b", wealth="wealthy", rng=random.Random(1)).family.monthly_allowance == 3500


def test_starting_stats_in_expected_ranges():
    for seed in range(20):
        attrs = new_character("x", rng=random.Random(seed)).attributes
        assert 50 <= attrs.iq < 80
        assert 40 <= attrs.charm < 70
        assert attrs.stamina == 80
        assert attrs.stress == 20


def test_stat_bonus_is_clamped():
    record = new_character("x", stat_bonus={"iq": 500, "bogus": 3}, rng=random.Random(0))
    assert record.attributes.iq == 100


def test_starting_npcs():
    for seed in range(10):
        record = new_character("x", gender="female", rng=random.Random(seed))
        roles = [n.role for n in record.npcs]
        assert 2 <= roles.count("roommate") <= 3
        assert 2 <= roles.count("classmate") <= 3
        assert roles.count("professor") == 1
        assert roles.count("friend") == 1
        assert all(n.gender == "female" for n in record.npcs if n.role == "roommate")
        assert record.find_npc("friend_1").gender == "male"
        assert len({n.id for n in record.npcs}) == len(record.npcs)
        assert len({n.name for n in record.npcs if n.role != "professor"}) == len(record.npcs) - 1


def test_seeded_factory_is_deterministic():
    a = new_character("x", rng=random.Random(11))
    b = new_character("x", rng=random.Random(11))
    assert a.model_dump(exclude={"id"}) == b.model_dump(exclude={"id"})
