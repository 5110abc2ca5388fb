"""Static reference data: quest templates, events, jobs, items, actions.

Everything here is read-only and keyed by id. Callers copy what they need
(model_copy(deep=True)) before attaching it to a record.
"""

from __future__ import annotations

import random
from typing import Any

from campus_sim.models import (
    CharacterRecord,
    EventChoice,
    GameDate,
    Item,
    NarrativeEvent,
    QuestReward,
    QuestStage,
    QuestTemplate,
)

# ---------------------------------------------------------------------------
# Economy
# ---------------------------------------------------------------------------

ALLOWANCE_BY_WEALTH: dict[str, int] = {
    "poor": 800,
    "middle": 1500,
    "wealthy": 3500,
}

# Living costs are charged every week; the allowance arrives every fourth week.
WEEKLY_MAINTENANCE = 250
MAINTENANCE_SURCHARGE: dict[str, int] = {"wealthy": 100}
DEBT_STRESS_PENALTY = 10

PARENT_OCCUPATIONS: dict[str, list[str]] = {
    "poor": ["farmer", "factory worker", "street vendor", "delivery driver"],
    "middle": ["teacher", "civil servant", "engineer", "nurse", "accountant"],
    "wealthy": ["entrepreneur", "surgeon", "executive", "investor"],
}


JOBS: dict[str, dict[str, Any]] = {
    "delivery": {
        "id": "delivery",
        "title": "Food delivery rider",
        "salary": 150,
        "energy_cost": 30,
        "requirements": {},
    },
    "library_assistant": {
        "id": "library_assistant",
        "title": "Library assistant",
        "salary": 100,
        "energy_cost": 15,
        "requirements": {},
    },
    "tutor_math": {
        "id": "tutor_math",
        "title": "Math tutor",
        "salary": 400,
        "energy_cost": 20,
        "requirements": {"iq": 70},
    },
    "tech_intern": {
        "id": "tech_intern",
        "title": "Tech company intern",
        "salary": 800,
        "energy_cost": 40,
        "requirements": {"iq": 75, "employability": 60},
    },
}


ITEMS: dict[str, Item] = {
    "energy_drink": Item(
        id="energy_drink",
        name="Energy drink",
        description="A can of sugar and caffeine.",
        category="food",
        value=25,
        effects=[{"kind": "attribute", "target": "stamina", "delta": 25}],
    ),
    "coffee_beans": Item(
        id="coffee_beans",
        name="Premium coffee beans",
        description="Freshly roasted. Calms the nerves.",
        category="food",
        value=120,
        effects=[
            {"kind": "attribute", "target": "stamina", "delta": 15},
            {"kind": "attribute", "target": "stress", "delta": -10},
        ],
    ),
    "textbook_pro": Item(
        id="textbook_pro",
        name="Annotated textbook",
        description="Margins full of a senior's notes.",
        category="study",
        value=300,
        effects=[
            {"kind": "attribute", "target": "iq", "delta": 5},
            {"kind": "gpa", "delta": 0.1},
        ],
    ),
    "nice_gift": Item(
        id="nice_gift",
        name="Gift box",
        description="Give it to someone you care about.",
        category="gift",
        value=200,
        effects=[],  # relationship bonus is applied to the chosen NPC at use time
    ),
}

GIFT_RELATIONSHIP_BONUS = 10


# Direct weekly actions: effects applied when the player spends action points.
ACTIONS: dict[str, list[dict[str, Any]]] = {
    "study": [
        {"kind": "attribute", "target": "iq", "delta": 0.2},
        {"kind": "attribute", "target": "stamina", "delta": -15},
        {"kind": "attribute", "target": "stress", "delta": 0.5},
        {"kind": "gpa", "delta": 0.005},
    ],
    "socialize": [
        {"kind": "attribute", "target": "eq", "delta": 0.3},
        {"kind": "attribute", "target": "stamina", "delta": -10},
        {"kind": "money", "delta": -100},
    ],
    "work": [
        {"kind": "money", "delta": 200},
        {"kind": "attribute", "target": "stamina", "delta": -20},
        {"kind": "attribute", "target": "stress", "delta": 1},
    ],
    "relax": [
        {"kind": "attribute", "target": "stamina", "delta": 25},
        {"kind": "attribute", "target": "stress", "delta": -1.5},
    ],
    "exercise": [
        {"kind": "attribute", "target": "stamina", "delta": 10},
        {"kind": "attribute", "target": "charm", "delta": 0.2},
        {"kind": "attribute", "target": "stress", "delta": -0.5},
    ],
    "club": [
        {"kind": "attribute", "target": "eq", "delta": 0.2},
        {"kind": "attribute", "target": "charm", "delta": 0.1},
        {"kind": "attribute", "target": "stamina", "delta": -10},
    ],
}

TUITION_FEE = 5000


# ---------------------------------------------------------------------------
# Quest templates
# ---------------------------------------------------------------------------

QUEST_TEMPLATES: dict[str, QuestTemplate] = {
    "national_scholarship": QuestTemplate(
        id="national_scholarship",
        title="National Scholarship",
        description="Keep your grades up and your record spotless to win the national scholarship.",
        type="Honor",
        stages=[
            QuestStage(id="gpa_check", name="Grade review", description="Maintain a GPA above 3.5."),
            QuestStage(id="activity_check", name="Activity review", description="Show up for campus activities."),
            QuestStage(id="final_review", name="Final committee review", description="Face the scholarship committee."),
        ],
        rewards=QuestReward(money=8000, honor="National Scholarship Recipient"),
    ),
    "campus_romance": QuestTemplate(
        id="campus_romance",
        title="Campus Romance",
        description="Someone keeps catching your eye. Maybe it's time to do something about it.",
        type="Romance",
        stages=[
            QuestStage(id="acquaintance", name="Acquaintance", description="Find a reason to talk."),
            QuestStage(id="friend", name="Friends", description="Spend time together."),
            QuestStage(id="date", name="First date", description="Ask them out."),
            QuestStage(id="partner", name="Partners", description="Make it official."),
        ],
        rewards=QuestReward(attributes={"charm": 10, "eq": 5}, flags={"is_dating": True}),
    ),
    "paper_publication": QuestTemplate(
        id="paper_publication",
        title="First Publication",
        description="Your advisor thinks you are ready to publish original research.",
        type="Academic",
        stages=[
            QuestStage(id="topic", name="Pick a topic", description="Settle on a research question."),
            QuestStage(id="experiment", name="Experiments", description="Collect your data."),
            QuestStage(id="writing", name="Writing", description="Draft the manuscript."),
            QuestStage(id="review", name="Peer review", description="Survive the reviewers."),
            QuestStage(id="publish", name="Publication", description="See your name in print."),
        ],
        rewards=QuestReward(
            attributes={"iq": 5, "employability": 10},
            honor="Rising Academic Star",
        ),
    ),
}


# ---------------------------------------------------------------------------
# Local fallback pool: used when the content provider is offline or fails
# ---------------------------------------------------------------------------

FALLBACK_EVENTS: list[dict[str, Any]] = [
    {
        "title": "A Quiet Library",
        "description": "You spend the weekend in the campus library. Sunlight falls across "
                       "the pages and the only sound is paper turning.",
        "choices": [
            {"text": "Review your major courses", "effects": {"iq": 2, "stamina": -5, "gpa": 0.1}},
            {"text": "Read something just for fun", "effects": {"eq": 1, "stamina": 5}},
        ],
    },
    {
        "title": "New on the Canteen Menu",
        "description": "The second-floor canteen is serving an 'innovative special'. "
                       "The colour is odd, but it smells surprisingly good.",
        "choices": [
            {"text": "Try the new dish", "effects": {"stamina": 10, "luck": 2}},
            {"text": "Stick with the usual", "effects": {"stamina": 5, "money": -15}},
        ],
    },
    {
        "title": "Outside the Dorm",
        "description": "Coming back from an evening class you spot an old classmate "
                       "sitting alone on a bench, clearly lost in thought.",
        "choices": [
            {"text": "Go over and catch up", "effects": {"eq": 2, "charm": 1}},
            {"text": "Pretend you didn't see them", "effects": {"stress": -5}},
        ],
    },
    {
        "title": "Sudden Downpour",
        "description": "It starts pouring as you leave the teaching building. You have no "
                       "umbrella, but an acquaintance walks by with a huge one.",
        "choices": [
            {"text": "Ask to share the umbrella", "effects": {"eq": 1, "charm": 1, "stamina": -2}},
            {"text": "Wait under the eaves", "effects": {"stamina": -5, "stress": 5}},
            {"text": "Run back through the rain", "effects": {"stamina": -15, "luck": -1}},
        ],
    },
    {
        "title": "Club Recruitment Fair",
        "description": "The student activity centre is packed with club stalls and "
                       "seniors eager to sign up freshmen.",
        "choices": [
            {"text": "Sign up for a club you like", "effects": {"eq": 2, "money": -50}},
            {"text": "Just enjoy the show", "effects": {"stamina": 5}},
        ],
    },
]


# ---------------------------------------------------------------------------
# Static registry: used when the adapter itself fails
# ---------------------------------------------------------------------------

def _choice(choice_id: str, text: str, *effects: dict[str, Any]) -> EventChoice:
    return EventChoice(id=choice_id, text=text, effects=list(effects))


def _stat(target: str, delta: float) -> dict[str, Any]:
    return {"kind": "attribute", "target": target, "delta": delta}


def _gpa(delta: float) -> dict[str, Any]:
    return {"kind": "gpa", "delta": delta}


FIXED_EVENTS: list[tuple[GameDate, NarrativeEvent]] = [
    (
        GameDate(year=1, semester=1, week=1),
        NarrativeEvent(
            id="military_training",
            title="Freshman Military Training",
            description="Camouflage, whistles, blazing sun. The instructor's voice echoes "
                        "across the field. It is exhausting, but you make your first friends.",
            choices=[
                _choice("try_hard", "Train hard and aim for top cadet",
                        _stat("stamina", -20), _stat("charm", 5), _stat("stress", 5)),
                _choice("water", "Sneak extra water during breaks", _stat("stamina", -10)),
                _choice("sick", "Fake illness and rest in the shade",
                        _stat("eq", -2), _stat("stress", -10)),
            ],
        ),
    ),
    (
        GameDate(year=1, semester=1, week=18),
        NarrativeEvent(
            id="final_exam_y1_s1",
            title="Finals Week",
            description="Every library seat is taken and the coffee machine is wheezing. "
                        "Your first university finals have arrived.",
            choices=[
                _choice("library", "Pull an all-nighter in the library",
                        _stat("stamina", -30), _gpa(0.3)),
                _choice("cheat_sheet", "Prepare a secret cheat sheet",
                        _stat("stress", 20), _gpa(0.4)),
                _choice("resign", "Leave it to fate", _stat("stress", -10), _gpa(-0.2)),
            ],
        ),
    ),
]

RANDOM_STATIC_EVENTS: list[NarrativeEvent] = [
    NarrativeEvent(
        id="class_boring",
        title="A Boring Lecture",
        description="Today's lecture is painfully dull and the slides are a wall of text. "
                    "Your eyelids grow heavy. Others are already nodding off.",
        choices=[
            _choice("sleep", "Put your head down for a nap", _stat("stamina", 10), _gpa(-0.05)),
            _choice("focus", "Force yourself to pay attention", _stat("stamina", -10), _gpa(0.05)),
            _choice("phone", "Scroll your phone under the desk", _stat("stress", -5)),
        ],
    ),
    NarrativeEvent(
        id="roommate_snore",
        title="Snoring Roommate",
        description="It's midnight and your roommate's snoring is shaking the dorm. "
                    "You have an 8 a.m. class tomorrow.",
        choices=[
            _choice("earplugs", "Put in earplugs and endure it", _stat("stress", 5)),
            _choice("wake", "Wake them up and ask them to roll over",
                    {"kind": "relationship", "target_npc_id": "roommate_1", "delta": -10}),
            _choice("leave", "Study in the library all night", _stat("stamina", -20), _gpa(0.1)),
        ],
    ),
    NarrativeEvent(
        id="canteen_mystery",
        title="Canteen Horror",
        description="You lift a piece of meat with your chopsticks and... what is that? "
                    "Everyone at the table is staring.",
        choices=[
            _choice("complain", "Post a photo and complain to the canteen",
                    {"kind": "money", "delta": 50}, _stat("eq", 1)),
            _choice("ignore", "Pick it out and keep eating", _stat("stress", 10)),
            _choice("leave", "Throw it away and order takeout", {"kind": "money", "delta": -35}),
        ],
    ),
]

ROMANCE_EVENT = NarrativeEvent(
    id="romance",
    title="An Unexpected Confession",
    description="As you leave the library a stranger stops you, holding a carefully wrapped "
                "envelope. Their face is bright red and their voice trembles.",
    choices=[
        _choice("accept", "Politely accept and give it a try", _stat("eq", 5), _stat("charm", 5)),
        _choice("decline", "Turn them down gently", _stat("eq", 2)),
        _choice("run", "Panic and run away", _stat("stress", 5)),
    ],
)

ROMANCE_CHARM_THRESHOLD = 70
ROMANCE_CHANCE = 0.15


def next_static_event(
    record: CharacterRecord, date: GameDate, rng: random.Random | None = None
) -> NarrativeEvent:
    """Pick an event from the static registry: fixed dates first, then a
    charm-gated romance roll, then a random filler event."""
    rng = rng or random.Random()

    for when, event in FIXED_EVENTS:
        if when == date:
            return _stamp(event, date)

    if record.attributes.charm > ROMANCE_CHARM_THRESHOLD and rng.random() < ROMANCE_CHANCE:
        return _stamp(ROMANCE_EVENT, date)

    return _stamp(rng.choice(RANDOM_STATIC_EVENTS), date)


def _stamp(event: NarrativeEvent, date: GameDate) -> NarrativeEvent:
    stamped = event.model_copy(deep=True)
    stamped.id = f"{event.id}_{date.year}_{date.semester}_{date.week}"
    stamped.date = date.model_copy()
    stamped.source = "static"
    return stamped
