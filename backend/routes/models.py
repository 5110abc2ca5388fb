"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from campus_sim.models import FamilyWealth, Gender, GamePhase, ProviderName


class NewGameBody(BaseModel):
    name: str = Field(min_length=1)
    gender: Gender = "male"
    age: int = 18
    wealth: FamilyWealth = "middle"
    university_name: str = ""
    university_tier: str = ""
    major: str = ""
    stat_bonus: dict[str, float] = Field(default_factory=dict)


class ResolveBody(BaseModel):
    choice_id: str


class EffectsBody(BaseModel):
    effects: list[dict[str, Any]]


class ActionBody(BaseModel):
    ap_cost: int = Field(default=1, ge=0)


class UseItemBody(BaseModel):
    target_npc_id: str | None = None


class PhaseBody(BaseModel):
    phase: GamePhase


class ProgressBody(BaseModel):
    delta: float


class ImportBody(BaseModel):
    data: str


class CheckConnectionBody(BaseModel):
    provider: ProviderName | None = None
    api_key: str | None = None
    base_url: str | None = None
    model: str | None = None
