"""Pydantic schemas for fusion."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from idlegame.db.models import Rarity
from idlegame.pets.schemas import PetView


class RuleView(BaseModel):
    target_rarity: Rarity
    materials: dict[Rarity, int]
    shell_cost: Decimal
    success_rate: float


class MaterialView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pet_id: int
    pet_rarity: Rarity
    pet_level: int
    pet_exp: int


class FusionAttemptView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    target_rarity: Rarity
    shell_cost: Decimal
    use_protection: bool
    success_rate: float
    roll: float
    success: bool
    result_pet_id: int | None
    created_at: datetime
    materials: list[MaterialView]


class FusionResult(BaseModel):
    attempt_id: int
    success: bool
    success_rate: float
    roll: float
    shell_cost: Decimal
    consumed_pet_ids: list[int]
    new_pet: PetView | None = None
