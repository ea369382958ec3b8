"""Pydantic schemas for achievements."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class AchievementProgress(BaseModel):
    id: str
    name: str
    description: str
    kind: str
    tier: str
    condition: int
    gems: int
    shells: int
    current_value: int
    progress: float
    unlocked: bool
    claimed: bool


class AchievementList(BaseModel):
    achievements: list[AchievementProgress]
    total_count: int
    unlocked_count: int
    claimed_count: int
    progress: int


class AchievementReward(BaseModel):
    achievement_id: str
    gems: Decimal
    shells: Decimal
