"""Shared test fixtures.

Integration tests run against a throwaway SQLite file through aiosqlite, one
database per test.
"""

from __future__ import annotations

import random
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from idlegame.core import EconomyCore
from idlegame.database import build_session_factory, create_schema
from idlegame.db.models import Currency, EnergySource, Pet, Rarity, TransactionType
from idlegame.dependencies import default_rng

START = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


class FixedRandom(random.Random):
    """``random()`` always returns the same draw."""

    def __init__(self, draw: float) -> None:
        super().__init__(0)
        self.draw = draw

    def random(self) -> float:
        return self.draw


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'economy.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def core(session_factory, clock) -> EconomyCore:
    return EconomyCore(session_factory, clock=clock, rng=default_rng(1234))


async def add_pet(core: EconomyCore, user_id: str, rarity: Rarity = Rarity.COMMON, level: int = 1, exp: int = 0) -> int:
    """Insert a pet directly and return its id."""
    async with core.ledger.unit_of_work(user_id) as db:
        pet = Pet(
            user_id=user_id,
            name="Tester",
            rarity=rarity,
            level=level,
            exp=exp,
            created_at=core.ledger.clock(),
        )
        db.add(pet)
        await db.flush()
        return pet.id


async def fund(core: EconomyCore, user_id: str, currency: Currency, amount: int | Decimal) -> None:
    await core.ledger.mutate_balance(user_id, currency, amount, TransactionType.EARN, "ADMIN")


async def set_energy(core: EconomyCore, user_id: str, energy: int) -> None:
    wallet = await core.ledger.get_wallet(user_id)
    delta = energy - wallet.energy
    if delta:
        await core.ledger.mutate_energy(user_id, delta, EnergySource.ADMIN)
