"""Production sessions: start, claim, offline preview and status.

Session lifecycle:
- ``start_session`` opens a session anchored on the user's first pet, with an
  estimated end ``session_horizon_hours`` ahead. Starting while a session is
  open returns the open session (resuming the app is not an error).
- ``claim`` pays the window ``[start, min(now, end_time)]`` at the user's
  current total rate, capped by the energy the wallet holds, debits that
  energy, grants the anchor pet one exp per paid minute, reports the paid
  seconds to task progress and closes the session. All of it commits in one
  unit of work.
- ``preview_offline_rewards`` runs the offline formula and writes nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from idlegame.db.base import as_utc
from idlegame.db.models import Currency, EnergySource, Pet, ProductionSession, TransactionType
from idlegame.energy.service import EnergyModel
from idlegame.errors import InsufficientEnergy, NoActiveSession, NoCreatures
from idlegame.ledger import Ledger
from idlegame.leveling.service import LevelingService
from idlegame.production.rates import (
    CENT,
    ENERGY_COST_PER_HOUR,
    Accrual,
    ProductionRate,
    affordable_hours,
    cap_to_energy,
    compute_accrual,
    total_rate,
)
from idlegame.production.schemas import ClaimResult, Rewards, SessionStatus, SessionView
from idlegame.tasks.catalog import PRODUCTION_SECONDS
from idlegame.tasks.service import TaskService

logger = logging.getLogger(__name__)

PRODUCTION_SOURCE = "PRODUCTION"


class ProductionAccrual:
    """Idle production entry points."""

    def __init__(
        self,
        ledger: Ledger,
        energy: EnergyModel,
        leveling: LevelingService,
        session_horizon_hours: int = 24,
        tasks: TaskService | None = None,
    ) -> None:
        self._ledger = ledger
        self._energy = energy
        self._leveling = leveling
        self._tasks = tasks
        self._horizon = timedelta(hours=session_horizon_hours)

    async def start_session(self, user_id: str) -> SessionView:
        async with self._ledger.unit_of_work(user_id) as db:
            existing = await _lock_open_session(db, user_id)
            if existing is not None:
                return _session_view(existing, resumed=True)

            anchor = await db.scalar(select(Pet).where(Pet.user_id == user_id).order_by(Pet.id).limit(1))
            if anchor is None:
                raise NoCreatures("You have no pets to send out", user_id=user_id)

            wallet = await self._ledger.lock_wallet(db, user_id)
            if wallet.energy < ENERGY_COST_PER_HOUR:
                raise InsufficientEnergy(
                    "Not enough energy to start production",
                    required=ENERGY_COST_PER_HOUR,
                    available=wallet.energy,
                )

            now = self._ledger.clock()
            session = ProductionSession(
                user_id=user_id,
                pet_id=anchor.id,
                start_time=now,
                end_time=now + self._horizon,
                is_online=True,
                energy_cost_per_hour=ENERGY_COST_PER_HOUR,
                gem_produced=Decimal("0"),
                shell_produced=Decimal("0"),
                energy_consumed=0,
                exp_granted=0,
            )
            db.add(session)
            await db.flush()

        logger.info("Production started: user=%s session=%s pet=%s", user_id, session.id, anchor.id)
        return _session_view(session)

    async def claim(self, user_id: str) -> ClaimResult:
        """Pay out and close the open session. Raises ``NoActiveSession`` if there is none."""
        async with self._ledger.unit_of_work(user_id) as db:
            session = await _lock_open_session(db, user_id)
            if session is None:
                raise NoActiveSession("No production session in progress", user_id=user_id)

            wallet = await self._ledger.lock_wallet(db, user_id)
            rate = await _user_rate(db, user_id)
            now = self._ledger.clock()
            window_end = min(now, session.end_time)

            accrual = cap_to_energy(
                rate,
                compute_accrual(rate, session.start_time, window_end, online=True),
                wallet.energy,
            )

            await self._pay(db, user_id, session.id, accrual)
            if self._tasks is not None and not rate.is_idle:
                await self._tasks.record_progress(user_id, PRODUCTION_SECONDS, int(accrual.hours * 3600), db=db)

            level_up = None
            exp_gain = accrual.exp
            if session.pet_id is not None and exp_gain > 0:
                pet = await db.scalar(
                    select(Pet).where(Pet.id == session.pet_id, Pet.user_id == user_id).with_for_update()
                )
                if pet is not None:
                    level_up = await self._leveling.apply(db, pet, exp_gain)
                else:
                    exp_gain = 0

            session.end_time = window_end
            session.closed_at = now
            session.gem_produced = accrual.gems
            session.shell_produced = accrual.shells
            session.energy_consumed = accrual.energy_needed
            session.exp_granted = exp_gain if level_up is not None else 0
            await db.flush()

        logger.info(
            "Production claimed: user=%s session=%s gems=%s shells=%s hours=%s energy=%d",
            user_id, session.id, accrual.gems, accrual.shells, _hours(accrual), accrual.energy_needed,
        )
        return ClaimResult(
            gems=accrual.gems,
            shells=accrual.shells,
            hours=_hours(accrual),
            energy_consumed=accrual.energy_needed,
            exp_gained=session.exp_granted,
            level_up=level_up,
        )

    async def _pay(self, db: AsyncSession, user_id: str, session_id: int, accrual: Accrual) -> None:
        description = f"idle production {_hours(accrual)}h"
        if accrual.gems > 0:
            await self._ledger.mutate_balance(
                user_id, Currency.GEM, accrual.gems, TransactionType.EARN, PRODUCTION_SOURCE,
                description=description,
                idempotency_key=f"production:{session_id}:gem",
                db=db,
            )
        if accrual.shells > 0:
            await self._ledger.mutate_balance(
                user_id, Currency.SHELL, accrual.shells, TransactionType.EARN, PRODUCTION_SOURCE,
                description=description,
                idempotency_key=f"production:{session_id}:shell",
                db=db,
            )
        if accrual.energy_needed == 0:
            return
        await self._energy.consume(
            user_id, accrual.energy_needed, EnergySource.PRODUCTION,
            description=f"production session {session_id}",
            db=db,
        )

    async def preview_offline_rewards(self, user_id: str, since: datetime) -> Rewards:
        """Offline accrual since ``since`` (last login). Read-only.

        A naive ``since`` is read as UTC.
        """
        since = as_utc(since)
        async with self._ledger.read_session() as db:
            rate = await _user_rate(db, user_id)
        accrual = compute_accrual(rate, since, self._ledger.clock(), online=False)
        return Rewards(gems=accrual.gems, shells=accrual.shells, hours=_hours(accrual))

    async def get_status(self, user_id: str) -> SessionStatus:
        async with self._ledger.unit_of_work(user_id) as db:
            wallet = await self._ledger.lock_wallet(db, user_id)
            energy = wallet.energy
            session = await _lock_open_session(db, user_id)
            if session is None:
                return SessionStatus(is_active=False, energy=energy)
            rate = await _user_rate(db, user_id)

        now = self._ledger.clock()
        accrual = cap_to_energy(
            rate,
            compute_accrual(rate, session.start_time, min(now, session.end_time), online=True),
            energy,
        )
        remaining = affordable_hours(max(0, energy - accrual.energy_needed))
        return SessionStatus(
            is_active=True,
            energy=energy,
            start_time=session.start_time,
            current_rewards=Rewards(gems=accrual.gems, shells=accrual.shells, hours=_hours(accrual)),
            estimated_stop_time=now + timedelta(hours=float(remaining)),
        )


async def _lock_open_session(db: AsyncSession, user_id: str) -> ProductionSession | None:
    result = await db.execute(
        select(ProductionSession)
        .where(ProductionSession.user_id == user_id, ProductionSession.closed_at.is_(None))
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def _user_rate(db: AsyncSession, user_id: str) -> ProductionRate:
    result = await db.execute(select(Pet.rarity, Pet.level).where(Pet.user_id == user_id))
    return total_rate(result.all())


def _hours(accrual: Accrual) -> Decimal:
    return accrual.hours.quantize(CENT)


def _session_view(session: ProductionSession, resumed: bool = False) -> SessionView:
    return SessionView(
        id=session.id,
        user_id=session.user_id,
        pet_id=session.pet_id,
        start_time=session.start_time,
        end_time=session.end_time,
        energy_cost_per_hour=session.energy_cost_per_hour,
        resumed=resumed,
    )
