"""Pydantic views over pets."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from idlegame.db.models import Rarity


class PetView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    name: str
    rarity: Rarity
    level: int
    exp: int
    bond_tag: str | None
    created_at: datetime


class PetWithRate(PetView):
    gem_per_hour: float
    shell_per_hour: float


class PetStats(BaseModel):
    total_pets: int
    rarity_distribution: dict[str, int]
    average_level: float
    gem_per_hour: float
    shell_per_hour: float


class NewbieGrant(BaseModel):
    pet: PetView
    shell_gift: int


class ExpProgress(BaseModel):
    level: int
    current_exp: int
    current_level_exp: int
    next_level_exp: int
    exp_for_next_level: int
    current_progress: int
    progress_percent: float
    is_max_level: bool
    production_bonus: float


class PetDetail(PetWithRate):
    """One pet with its level progress and lifetime production as session anchor."""

    exp_progress: ExpProgress
    total_gem_produced: Decimal
    total_shell_produced: Decimal
