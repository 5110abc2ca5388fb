"""Core domain models.

The turn engine, effect engine, quest subsystem and persistence layer all
operate on these types. Pydantic is used for validation and serialisation at
every data boundary (save files, HTTP bodies, provider responses).
"""

from __future__ import annotations

import uuid
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

Gender = Literal["male", "female"]
FamilyWealth = Literal["poor", "middle", "wealthy"]

AttributeName = Literal[
    "iq",
    "eq",
    "stamina",
    "stress",
    "charm",
    "luck",
    "employability",
    "logic",
    "creativity",
]

GamePhase = Literal[
    "main_menu",
    "character_creation",
    "gaokao",
    "university_selection",
    "playing",
    "event",
    "ending",
]

QuestStatus = Literal["Active", "Completed", "Failed"]
QuestType = Literal["Main", "Side", "Romance", "Academic", "Honor"]
NotificationKind = Literal["success", "info", "error", "warning"]
EventSource = Literal["generated", "fallback", "static"]
ProviderName = Literal["openai", "gemini", "koboldcpp"]


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


# ---------------------------------------------------------------------------
# Character record
# ---------------------------------------------------------------------------

class GameDate(BaseModel):
    year: int = 1       # 1..4
    semester: int = 1   # 1..2
    week: int = 1       # 1..20


class Attributes(BaseModel):
    """Bounded character stats, each in [0, 100]."""

    iq: float = 50
    eq: float = 50
    stamina: float = 80
    stress: float = 20
    charm: float = 50
    luck: float = 50
    employability: float = 50
    logic: float | None = None       # optional; None means not tracked
    creativity: float | None = None


class FamilyBackground(BaseModel):
    wealth: FamilyWealth = "middle"
    parents_occupation: str = ""
    monthly_allowance: int = 1500


class AcademicInfo(BaseModel):
    university_name: str = ""
    university_tier: str = ""
    major: str = ""
    gpa: float = 0.0  # 0..4.0
    honors: list[str] = Field(default_factory=list)


class NPC(BaseModel):
    id: str
    name: str
    gender: Gender = "male"
    role: str = "classmate"  # roommate | classmate | professor | friend | family | partner
    relationship_score: float = 0  # -100..100
    personality: str = ""


class Item(BaseModel):
    id: str
    name: str
    description: str = ""
    category: str = "misc"
    value: int = 0
    consumable: bool = True
    effects: list[Effect] = Field(default_factory=list)


class GameFlags(BaseModel):
    has_job: bool = False
    is_dating: bool = False
    joined_club: bool = False
    is_on_probation: bool = False
    has_scholarship: bool = False
    graduation_status: Literal["pending", "graduated", "failed"] = "pending"
    unlocked: list[str] = Field(default_factory=list)


class CharacterRecord(BaseModel):
    """The aggregate root: everything the engine knows about the player."""

    id: str = Field(default_factory=_new_id)
    name: str
    gender: Gender = "male"
    age: int = 18
    family: FamilyBackground = Field(default_factory=FamilyBackground)
    academic: AcademicInfo = Field(default_factory=AcademicInfo)
    current_date: GameDate = Field(default_factory=GameDate)
    attributes: Attributes = Field(default_factory=Attributes)
    money: int = 0
    action_points: int = 7
    max_action_points: int = 7
    inventory: list[Item] = Field(default_factory=list)
    npcs: list[NPC] = Field(default_factory=list)
    quests: list[Quest] = Field(default_factory=list)
    flags: GameFlags = Field(default_factory=GameFlags)
    current_job_id: str | None = None
    achievements: list[str] = Field(default_factory=list)
    event_history: list[NarrativeEvent] = Field(default_factory=list)
    current_location: str | None = None

    def find_npc(self, npc_id: str) -> NPC | None:
        return next((n for n in self.npcs if n.id == npc_id), None)

    def find_quest(self, quest_id: str) -> Quest | None:
        return next((q for q in self.quests if q.id == quest_id), None)


# ---------------------------------------------------------------------------
# Effects: closed tagged union, discriminated on "kind"
# ---------------------------------------------------------------------------

class MoneyEffect(BaseModel):
    kind: Literal["money"] = "money"
    delta: float = Field(strict=True)


class AttributeEffect(BaseModel):
    kind: Literal["attribute"] = "attribute"
    target: AttributeName
    delta: float = Field(strict=True)


class GpaEffect(BaseModel):
    kind: Literal["gpa"] = "gpa"
    delta: float = Field(strict=True)


class RelationshipEffect(BaseModel):
    kind: Literal["relationship"] = "relationship"
    target_npc_id: str
    delta: float = Field(strict=True)


Effect = Annotated[
    Union[MoneyEffect, AttributeEffect, GpaEffect, RelationshipEffect],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class EventChoice(BaseModel):
    id: str
    text: str
    effects: list[Effect] = Field(default_factory=list)


class NarrativeEvent(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    description: str
    choices: list[EventChoice] = Field(min_length=1)
    date: GameDate | None = None
    source: EventSource = "static"


# ---------------------------------------------------------------------------
# Quests
# ---------------------------------------------------------------------------

class QuestStage(BaseModel):
    id: str
    name: str
    description: str = ""
    is_complete: bool = False


class QuestReward(BaseModel):
    money: int = 0
    attributes: dict[AttributeName, float] = Field(default_factory=dict)
    honor: str | None = None
    item: Item | None = None
    flags: dict[str, bool] = Field(default_factory=dict)


class QuestTemplate(BaseModel):
    """Immutable quest blueprint from the static catalog."""

    id: str
    title: str
    description: str
    type: QuestType
    stages: list[QuestStage] = Field(default_factory=list)
    rewards: QuestReward = Field(default_factory=QuestReward)


class Quest(BaseModel):
    id: str
    template_id: str
    title: str
    description: str
    type: QuestType
    status: QuestStatus = "Active"
    progress: float = 0  # 0..100
    current_stage: int = 0
    stages: list[QuestStage] = Field(default_factory=list)
    rewards: QuestReward = Field(default_factory=QuestReward)


# ---------------------------------------------------------------------------
# Notifications, config, application state
# ---------------------------------------------------------------------------

class Notification(BaseModel):
    id: str = Field(default_factory=_new_id)
    message: str
    kind: NotificationKind = "info"
    read: bool = False
    created_at: float = 0.0


class LLMConfig(BaseModel):
    provider: ProviderName = "openai"
    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-3.5-turbo"
    max_tokens: int = 1000
    temperature: float = 0.8


class GameConfig(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    auto_save: bool = True
    language: Literal["zh", "en"] = "zh"
    sound_enabled: bool = True
    animations_enabled: bool = True


class GameState(BaseModel):
    """Explicit application state, owned by one TurnEngine per session."""

    phase: GamePhase = "main_menu"
    record: CharacterRecord | None = None
    config: GameConfig = Field(default_factory=GameConfig)
    current_event: NarrativeEvent | None = None
    is_loading: bool = False
    error: str | None = None


Item.model_rebuild()
CharacterRecord.model_rebuild()
