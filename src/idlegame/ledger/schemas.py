"""Pydantic views over wallet and audit rows."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from idlegame.db.models import Currency, EnergySource, TransactionType


class WalletView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    gem_balance: Decimal
    shell_balance: Decimal
    mine_ticket: int
    energy: int
    last_energy_update: datetime


class TransactionView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransactionType
    currency: Currency
    amount: Decimal
    balance_after: Decimal
    source: str
    description: str | None
    created_at: datetime


class TransactionPage(BaseModel):
    transactions: list[TransactionView]
    total: int
    has_more: bool


class EnergyEntryView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: int
    applied: int
    balance_after: int
    source: EnergySource
    description: str | None
    created_at: datetime
