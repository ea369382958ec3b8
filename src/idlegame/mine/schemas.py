"""Pydantic schemas for mine challenges."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from idlegame.mine.spots import ChallengeState


class SpotView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    level: int
    name: str
    ticket_cost: int
    energy_cost: int
    duration_minutes: int
    base_gem: int
    base_shell: int
    difficulty: float


class ChallengeView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    spot_level: int
    ticket_cost: int
    energy_cost: int
    start_time: datetime
    end_time: datetime
    claimed: bool
    claimed_at: datetime | None = None
    settled_by: str | None = None
    gem_reward: Decimal | None = None
    shell_reward: Decimal | None = None


class MineRewards(BaseModel):
    challenge_id: int
    gems: Decimal
    shells: Decimal
    roll: float
    settled_by: str


class MineStatus(BaseModel):
    challenge: ChallengeView | None = None
    state: ChallengeState | None = None
    remaining_seconds: int = 0
    tickets: int
    energy: int
