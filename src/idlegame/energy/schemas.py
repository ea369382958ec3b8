"""Pydantic schemas for energy operations."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class EnergyPurchase(BaseModel):
    energy_gained: int
    shell_cost: Decimal
    new_energy: int
    today_purchased: int
    remaining: int


class PurchaseQuota(BaseModel):
    today_purchased: int
    remaining: int
    daily_limit: int
    energy_price: int
    energy_unit: int
