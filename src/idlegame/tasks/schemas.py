"""Pydantic schemas for tasks."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel

from idlegame.db.models import Rarity
from idlegame.pets.schemas import PetView


class RewardItem(BaseModel):
    type: str
    amount: int
    rarity: Rarity | None = None


class TaskView(BaseModel):
    id: str
    kind: str
    name: str
    description: str
    condition: str
    target: int
    rewards: list[RewardItem]
    period: str
    progress: int
    completed: bool
    claimed: bool


class TaskReward(BaseModel):
    task_id: str
    period: str
    gems: Decimal
    shells: Decimal
    energy: int
    pets: list[PetView]
