"""Pydantic schemas for leveling results."""

from __future__ import annotations

from pydantic import BaseModel

from idlegame.pets.schemas import PetView


class AddExpResult(BaseModel):
    pet: PetView
    leveled_up: bool
    levels_gained: int
    exp_gained: int
