"""Energy model: hourly regeneration, consumption and shell-funded purchases.

Rules:
- Capacity is MAX_ENERGY (100); regeneration adds 10 per tick, clamped.
- The tick is meant to run once per hour. Calling it twice in the same hour
  credits twice; that is the scheduler's contract, not guarded here.
- ``consume`` never partially applies: callers size the amount first.
- Purchases come in units of 10 energy for 50 shells, at most 200 energy per
  UTC day, and may not push energy past capacity.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from idlegame.db.models import Currency, EnergyLedgerEntry, EnergySource, TransactionType, Wallet
from idlegame.energy.schemas import EnergyPurchase, PurchaseQuota
from idlegame.errors import InsufficientEnergy, InvalidAmount, PurchaseLimitReached
from idlegame.ledger import MAX_ENERGY, Ledger

logger = logging.getLogger(__name__)

ENERGY_RECOVERY_PER_HOUR = 10
ENERGY_PRICE = 50  # shells per ENERGY_UNIT
ENERGY_UNIT = 10
DAILY_PURCHASE_LIMIT = 200


class EnergyModel:
    """Regeneration tick, consumption and purchases, all through the ledger."""

    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger

    async def regenerate_tick(self) -> int:
        """Credit ENERGY_RECOVERY_PER_HOUR to every wallet below capacity.

        Each wallet is updated in its own unit of work, and its energy is
        re-read under the lock so a concurrent purchase or claim is never lost.
        A wallet that fails is logged and skipped; the rest are still credited.
        Returns the number of wallets credited.
        """
        async with self._ledger.read_session() as db:
            result = await db.execute(select(Wallet.user_id).where(Wallet.energy < MAX_ENERGY))
            user_ids = list(result.scalars().all())

        recovered = 0
        failed = 0
        for user_id in user_ids:
            try:
                credited = await self._regenerate_one(user_id)
            except Exception:
                logger.exception("Energy regeneration failed for user=%s", user_id)
                failed += 1
                continue
            if credited:
                recovered += 1

        logger.info("Energy regeneration tick complete: %d wallets credited, %d failed", recovered, failed)
        return recovered

    async def _regenerate_one(self, user_id: str) -> bool:
        async with self._ledger.unit_of_work(user_id) as db:
            wallet = await self._ledger.lock_wallet(db, user_id)
            if wallet.energy >= MAX_ENERGY:
                return False
            await self._ledger.mutate_energy(
                user_id,
                ENERGY_RECOVERY_PER_HOUR,
                EnergySource.NATURAL_RECOVERY,
                description="hourly regeneration",
                db=db,
            )
        return True

    async def consume(
        self,
        user_id: str,
        amount: int,
        source: EnergySource,
        *,
        description: str | None = None,
        db: AsyncSession | None = None,
    ) -> int:
        """Debit exactly ``amount`` energy or raise ``InsufficientEnergy``. Returns new energy."""
        if amount < 0:
            raise InvalidAmount("Energy consumption must be non-negative", amount=amount)
        if db is None:
            async with self._ledger.unit_of_work(user_id) as own_db:
                return await self._consume(own_db, user_id, amount, source, description)
        return await self._consume(db, user_id, amount, source, description)

    async def _consume(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        source: EnergySource,
        description: str | None,
    ) -> int:
        wallet = await self._ledger.lock_wallet(db, user_id)
        if wallet.energy < amount:
            raise InsufficientEnergy(
                "Not enough energy",
                required=amount,
                available=wallet.energy,
            )
        return await self._ledger.mutate_energy(user_id, -amount, source, description=description, db=db)

    async def buy_energy(self, user_id: str, quantity: int) -> EnergyPurchase:
        """Exchange shells for energy within the daily limit."""
        if quantity <= 0:
            raise InvalidAmount("Purchase quantity must be positive", quantity=quantity)
        if quantity % ENERGY_UNIT != 0:
            raise InvalidAmount(f"Purchase quantity must be a multiple of {ENERGY_UNIT}", quantity=quantity)

        shell_cost = Decimal(quantity // ENERGY_UNIT * ENERGY_PRICE)

        async with self._ledger.unit_of_work(user_id) as db:
            wallet = await self._ledger.lock_wallet(db, user_id)
            purchased = await self._purchased_today(db, user_id)
            if purchased + quantity > DAILY_PURCHASE_LIMIT:
                raise PurchaseLimitReached(
                    "Daily energy purchase limit reached",
                    daily_limit=DAILY_PURCHASE_LIMIT,
                    today_purchased=purchased,
                    remaining=DAILY_PURCHASE_LIMIT - purchased,
                )
            if wallet.energy + quantity > MAX_ENERGY:
                raise InvalidAmount(
                    "Purchase would exceed energy capacity",
                    quantity=quantity,
                    energy=wallet.energy,
                    capacity=MAX_ENERGY,
                )

            await self._ledger.mutate_balance(
                user_id,
                Currency.SHELL,
                -shell_cost,
                TransactionType.SPEND,
                "ENERGY_PURCHASE",
                description=f"bought {quantity} energy",
                db=db,
            )
            new_energy = await self._ledger.mutate_energy(
                user_id,
                quantity,
                EnergySource.PURCHASE,
                description=f"paid {shell_cost} shells",
                db=db,
            )

        logger.info("Energy purchased: user=%s quantity=%d cost=%s", user_id, quantity, shell_cost)
        return EnergyPurchase(
            energy_gained=quantity,
            shell_cost=shell_cost,
            new_energy=new_energy,
            today_purchased=purchased + quantity,
            remaining=DAILY_PURCHASE_LIMIT - purchased - quantity,
        )

    async def purchase_quota(self, user_id: str) -> PurchaseQuota:
        async with self._ledger.read_session() as db:
            purchased = await self._purchased_today(db, user_id)
        return PurchaseQuota(
            today_purchased=purchased,
            remaining=DAILY_PURCHASE_LIMIT - purchased,
            daily_limit=DAILY_PURCHASE_LIMIT,
            energy_price=ENERGY_PRICE,
            energy_unit=ENERGY_UNIT,
        )

    async def _purchased_today(self, db: AsyncSession, user_id: str) -> int:
        now = self._ledger.clock()
        day_start = datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
        total = await db.scalar(
            select(func.coalesce(func.sum(EnergyLedgerEntry.amount), 0)).where(
                EnergyLedgerEntry.user_id == user_id,
                EnergyLedgerEntry.source == EnergySource.PURCHASE,
                EnergyLedgerEntry.created_at >= day_start,
            )
        )
        return int(total or 0)
