"""Pydantic schemas for production sessions and rewards."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from idlegame.leveling.schemas import AddExpResult


class SessionView(BaseModel):
    id: int
    user_id: str
    pet_id: int | None
    start_time: datetime
    end_time: datetime
    energy_cost_per_hour: int
    resumed: bool = False


class Rewards(BaseModel):
    gems: Decimal
    shells: Decimal
    hours: Decimal


class ClaimResult(Rewards):
    energy_consumed: int
    exp_gained: int
    level_up: AddExpResult | None = None


class SessionStatus(BaseModel):
    is_active: bool
    energy: int
    start_time: datetime | None = None
    current_rewards: Rewards | None = None
    estimated_stop_time: datetime | None = None
