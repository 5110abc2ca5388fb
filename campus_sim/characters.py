"""New-character factory: turns creation-wizard answers into a CharacterRecord."""

from __future__ import annotations

import random

from campus_sim.catalog import ALLOWANCE_BY_WEALTH, PARENT_OCCUPATIONS
from campus_sim.effects import ATTRIBUTE_MAX, ATTRIBUTE_MIN, clamp
from campus_sim.models import (
    NPC,
    AcademicInfo,
    Attributes,
    CharacterRecord,
    FamilyBackground,
    FamilyWealth,
    Gender,
)

MALE_NAMES = ["Zhang Wei", "Li Qiang", "Wang Lei", "Liu Yang", "Chen Jie", "Yang Fan", "Zhao Peng", "Huang Jun"]
FEMALE_NAMES = ["Li Na", "Wang Fang", "Liu Ting", "Chen Jing", "Yang Xue", "Zhao Min", "Huang Li", "Zhou Ying"]
PERSONALITIES = [
    "cheerful", "quiet", "funny", "meticulous", "helpful", "free-spirited", "bookworm", "social butterfly",
]


def _other(gender: Gender) -> Gender:
    return "female" if gender == "male" else "male"


def _starting_npcs(gender: Gender, rng: random.Random) -> list[NPC]:
    same = rng.sample(MALE_NAMES if gender == "male" else FEMALE_NAMES, k=6)
    other = rng.sample(FEMALE_NAMES if gender == "male" else MALE_NAMES, k=5)
    npcs: list[NPC] = []

    for i in range(rng.randint(2, 3)):
        npcs.append(NPC(
            id=f"roommate_{i + 1}",
            name=same.pop(),
            gender=gender,
            role="roommate",
            relationship_score=rng.randint(30, 49),
            personality=rng.choice(PERSONALITIES),
        ))

    for i in range(rng.randint(2, 3)):
        same_gender = rng.random() > 0.5
        npcs.append(NPC(
            id=f"classmate_{i + 1}",
            name=same.pop() if same_gender else other.pop(),
            gender=gender if same_gender else _other(gender),
            role="classmate",
            relationship_score=rng.randint(10, 29),
            personality=rng.choice(PERSONALITIES),
        ))

    npcs.append(NPC(
        id="professor_1",
        name=rng.choice(["Professor Wang", "Professor Zhang"]),
        gender=rng.choice(["male", "female"]),
        role="professor",
        relationship_score=5,
        personality="rigorous, learned and demanding",
    ))
    npcs.append(NPC(
        id="friend_1",
        name=other.pop(),
        gender=_other(gender),
        role="friend",
        relationship_score=15,
        personality="lively and always joining clubs",
    ))
    return npcs


def new_character(
    name: str,
    gender: Gender = "male",
    age: int = 18,
    wealth: FamilyWealth = "middle",
    university_name: str = "",
    university_tier: str = "",
    major: str = "",
    stat_bonus: dict[str, float] | None = None,
    rng: random.Random | None = None,
) -> CharacterRecord:
    """Roll starting stats, family background and the first circle of NPCs."""
    rng = rng or random.Random()

    attrs = Attributes(
        iq=50 + rng.randrange(30),
        eq=50 + rng.randrange(30),
        stamina=80,
        stress=20,
        charm=40 + rng.randrange(30),
        luck=40 + rng.randrange(30),
        employability=50 + rng.randrange(20),
    )
    for key, bonus in (stat_bonus or {}).items():
        current = getattr(attrs, key, None)
        if current is not None:
            setattr(attrs, key, clamp(current + bonus, ATTRIBUTE_MIN, ATTRIBUTE_MAX))

    allowance = ALLOWANCE_BY_WEALTH[wealth]
    return CharacterRecord(
        name=name,
        gender=gender,
        age=age,
        family=FamilyBackground(
            wealth=wealth,
            parents_occupation=rng.choice(PARENT_OCCUPATIONS[wealth]),
            monthly_allowance=allowance,
        ),
        academic=AcademicInfo(
            university_name=university_name,
            university_tier=university_tier,
            major=major,
        ),
        attributes=attrs,
        money=allowance,
        npcs=_starting_npcs(gender, rng),
    )
