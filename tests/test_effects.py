"""Tests for campus_sim.effects — clamping, malformed input, summaries."""

import math

import pytest

from campus_sim.effects import apply_effects, describe_effects, effects_from_map
from campus_sim.models import AttributeEffect, MoneyEffect


# ---------------------------------------------------------------------------
# Clamping
# ---------------------------------------------------------------------------

class TestClamping:
    def test_money_and_stamina_scenario(self, make_record) -> None:
        record = make_record(money=100)
        record.attributes.stamina = 10
        apply_effects(record, [
            {"kind": "money", "delta": 500},
            {"kind": "attribute", "target": "stamina", "delta": -20},
        ])
        assert record.money == 600
        assert record.attributes.stamina == 0

    def test_attribute_capped_at_100(self, record) -> None:
        apply_effects(record, [{"kind": "attribute", "target": "iq", "delta": 500}])
        assert record.attributes.iq == 100

    def test_money_never_negative(self, record) -> None:
        apply_effects(record, [{"kind": "money", "delta": -99999}])
        assert record.money == 0

    def test_money_rounded_to_int(self, record) -> None:
        apply_effects(record, [{"kind": "money", "delta": 10.6}])
        assert record.money == 1011
        assert isinstance(record.money, int)

    def test_gpa_bounds(self, record) -> None:
        apply_effects(record, [{"kind": "gpa", "delta": 9}])
        assert record.academic.gpa == 4.0
        apply_effects(record, [{"kind": "gpa", "delta": -9}])
        assert record.academic.gpa == 0.0

    def test_relationship_bounds(self, record) -> None:
        apply_effects(record, [{"kind": "relationship", "target_npc_id": "roommate_1", "delta": -500}])
        assert record.find_npc("roommate_1").relationship_score == -100

    def test_clamps_after_each_effect(self, record) -> None:
        # 70 + 50 clamps to 100 before the -30 applies
        apply_effects(record, [
            {"kind": "attribute", "target": "stamina", "delta": 50},
            {"kind": "attribute", "target": "stamina", "delta": -30},
        ])
        assert record.attributes.stamina == 70

    def test_accepts_typed_effects(self, record) -> None:
        apply_effects(record, [MoneyEffect(delta=5), AttributeEffect(target="eq", delta=1)])
        assert record.money == 1005
        assert record.attributes.eq == 56

    def test_empty_list_is_noop(self, record) -> None:
        before = record.model_dump()
        apply_effects(record, [])
        assert record.model_dump() == before


# ---------------------------------------------------------------------------
# Malformed effects are skipped, the rest still apply
# ---------------------------------------------------------------------------

class TestMalformed:
    @pytest.mark.parametrize("bad", [
        {"kind": "attribute", "target": "iq", "delta": float("nan")},
        {"kind": "attribute", "target": "iq", "delta": float("inf")},
        {"kind": "attribute", "target": "iq", "delta": "lots"},
        {"kind": "attribute", "target": "iq", "delta": "5"},
        {"kind": "attribute", "target": "iq", "delta": True},
        {"kind": "attribute", "target": "wisdom", "delta": 5},
        {"kind": "teleport", "delta": 1},
        {"delta": 1},
        "not an effect",
        None,
    ])
    def test_bad_item_skipped(self, record, bad) -> None:
        apply_effects(record, [bad, {"kind": "money", "delta": 1}])
        assert record.attributes.iq == 60
        assert record.money == 1001
        assert not math.isnan(record.attributes.iq)

    @pytest.mark.parametrize("bad", [
        {"kind": "money", "delta": "100"},
        {"kind": "money", "delta": False},
        {"kind": "gpa", "delta": "0.5"},
        {"kind": "relationship", "target_npc_id": "roommate_1", "delta": True},
    ])
    def test_non_numeric_delta_skipped_for_every_kind(self, record, bad) -> None:
        before = record.model_dump()
        apply_effects(record, [bad])
        assert record.model_dump() == before

    def test_money_overflow_dropped(self, record) -> None:
        apply_effects(record, [
            {"kind": "money", "delta": 1e308},
            {"kind": "money", "delta": 1e308},
            {"kind": "money", "delta": -1000},
        ])
        assert record.money == round(1e308)
        assert isinstance(record.money, int)

    def test_money_overflow_from_huge_balance(self, record) -> None:
        record.money = 10 ** 400
        apply_effects(record, [{"kind": "money", "delta": 5.0}])
        assert record.money == 10 ** 400

    def test_unknown_npc_skipped(self, record) -> None:
        apply_effects(record, [{"kind": "relationship", "target_npc_id": "ghost", "delta": 10}])
        assert [n.relationship_score for n in record.npcs] == [40, 10]

    def test_untracked_optional_attribute_skipped(self, record) -> None:
        assert record.attributes.logic is None
        apply_effects(record, [{"kind": "attribute", "target": "logic", "delta": 10}])
        assert record.attributes.logic is None

    def test_tracked_optional_attribute_applies(self, record) -> None:
        record.attributes.creativity = 30
        apply_effects(record, [{"kind": "attribute", "target": "creativity", "delta": 10}])
        assert record.attributes.creativity == 40

    def test_final_sweep_repairs_non_finite_money_and_gpa(self, record) -> None:
        record.academic.gpa = float("nan")
        apply_effects(record, [])
        assert record.academic.gpa == 0.0
        assert record.money == 1000


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_describe_effects(record) -> None:
    text = describe_effects(record, [
        {"kind": "money", "delta": 500},
        {"kind": "attribute", "target": "stamina", "delta": -20},
        {"kind": "relationship", "target_npc_id": "roommate_1", "delta": 5},
        {"kind": "gpa", "delta": 0.1},
    ])
    assert text == "Money +500, Stamina -20, Wang Lei +5, GPA +0.1"


def test_describe_effects_does_not_mutate(record) -> None:
    describe_effects(record, [{"kind": "money", "delta": 500}])
    assert record.money == 1000


def test_effects_from_map() -> None:
    effects = effects_from_map({"iq": 2, "money": -15, "gpa": 0.1, "mana": 3, "eq": "x", "luck": True})
    kinds = [(e.kind, getattr(e, "target", None), e.delta) for e in effects]
    assert kinds == [
        ("attribute", "iq", 2),
        ("money", None, -15),
        ("gpa", None, 0.1),
    ]
