"""Ledger: the only code path allowed to change a wallet.

Every balance change happens inside a unit of work:

1. acquire the per-user lock (in-process serialisation),
2. open a session + transaction,
3. ``SELECT ... FOR UPDATE`` the wallet row (cross-process serialisation on PostgreSQL),
4. apply the delta and append exactly one audit row,
5. commit, or roll back everything on any exception.

Higher components open one unit per operation and pass its session to
``mutate_balance`` / ``mutate_energy`` via ``db=`` so that several mutations
commit or fail together.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idlegame.db.models import (
    Currency,
    EnergyLedgerEntry,
    EnergySource,
    Transaction,
    TransactionType,
    Wallet,
)
from idlegame.dependencies import Clock, utc_now
from idlegame.errors import InsufficientFunds, InvalidAmount
from idlegame.ledger.locks import UserLockRegistry
from idlegame.ledger.schemas import EnergyEntryView, TransactionPage, TransactionView, WalletView

logger = structlog.get_logger(__name__)

MAX_ENERGY = 100
DEFAULT_ENERGY = 100
CENT = Decimal("0.01")

_BALANCE_COLUMNS: dict[Currency, str] = {
    Currency.GEM: "gem_balance",
    Currency.SHELL: "shell_balance",
    Currency.TICKET: "mine_ticket",
}


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Normalise an amount to a two-decimal ``Decimal``."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT)


class Ledger:
    """Atomic balance/energy mutation primitives plus audit-trail queries."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        locks: UserLockRegistry | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._locks = locks or UserLockRegistry()

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def unit_of_work(self, user_id: str) -> AsyncIterator[AsyncSession]:
        """Serialised, all-or-nothing transaction scoped to one user."""
        async with self._locks.hold(user_id):
            with structlog.contextvars.bound_contextvars(user_id=user_id):
                async with self._session_factory() as db:
                    async with db.begin():
                        yield db

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        """Plain session for point/range queries (no lock, no writes)."""
        async with self._session_factory() as db:
            yield db

    @asynccontextmanager
    async def housekeeping_session(self) -> AsyncIterator[AsyncSession]:
        """Transaction for cross-user bulk maintenance. Never touches wallets."""
        async with self._session_factory() as db:
            async with db.begin():
                yield db

    # ------------------------------------------------------------------
    # Wallet access
    # ------------------------------------------------------------------

    async def lock_wallet(self, db: AsyncSession, user_id: str) -> Wallet:
        """Load the user's wallet row for update, creating the default wallet on first touch."""
        result = await db.execute(select(Wallet).where(Wallet.user_id == user_id).with_for_update())
        wallet = result.scalar_one_or_none()
        if wallet is None:
            now = self._clock()
            wallet = Wallet(
                user_id=user_id,
                gem_balance=Decimal("0"),
                shell_balance=Decimal("0"),
                mine_ticket=0,
                energy=DEFAULT_ENERGY,
                last_energy_update=now,
                newbie_granted=False,
                created_at=now,
                updated_at=now,
            )
            db.add(wallet)
            await db.flush()
            logger.info("wallet_created", user_id=user_id)
        return wallet

    async def get_wallet(self, user_id: str) -> WalletView:
        async with self.unit_of_work(user_id) as db:
            wallet = await self.lock_wallet(db, user_id)
            return WalletView.model_validate(wallet)

    # ------------------------------------------------------------------
    # Mutation primitives
    # ------------------------------------------------------------------

    async def mutate_balance(
        self,
        user_id: str,
        currency: Currency,
        delta: Decimal | int | float | str,
        tx_type: TransactionType,
        source: str,
        *,
        description: str | None = None,
        idempotency_key: str | None = None,
        db: AsyncSession | None = None,
    ) -> Decimal | int:
        """Apply ``delta`` to one currency balance and append one Transaction row.

        Rejects with ``InsufficientFunds`` if a debit would make the balance
        negative. A repeated ``idempotency_key`` is a no-op that returns the
        current balance. Returns the new balance.
        """
        if db is None:
            async with self.unit_of_work(user_id) as own_db:
                return await self._mutate_balance(
                    own_db, user_id, currency, delta, tx_type, source, description, idempotency_key
                )
        return await self._mutate_balance(db, user_id, currency, delta, tx_type, source, description, idempotency_key)

    async def _mutate_balance(
        self,
        db: AsyncSession,
        user_id: str,
        currency: Currency,
        raw_delta: Decimal | int | float | str,
        tx_type: TransactionType,
        source: str,
        description: str | None,
        idempotency_key: str | None,
    ) -> Decimal | int:
        delta = _normalise_delta(currency, raw_delta)
        if tx_type == TransactionType.EARN and delta < 0:
            raise InvalidAmount("EARN transactions need a non-negative delta", delta=str(delta))
        if tx_type == TransactionType.SPEND and delta > 0:
            raise InvalidAmount("SPEND transactions need a non-positive delta", delta=str(delta))

        column = _BALANCE_COLUMNS[currency]
        wallet = await self.lock_wallet(db, user_id)
        current = getattr(wallet, column)

        if idempotency_key is not None:
            existing = await db.execute(select(Transaction.id).where(Transaction.idempotency_key == idempotency_key))
            if existing.scalar_one_or_none() is not None:
                logger.info("balance_mutation_duplicate", idempotency_key=idempotency_key, currency=currency.value)
                return current

        new_balance = current + delta
        if delta < 0 and new_balance < 0:
            raise InsufficientFunds(
                f"Insufficient {currency.value} balance",
                currency=currency.value,
                required=str(-delta),
                available=str(current),
            )

        now = self._clock()
        setattr(wallet, column, new_balance)
        wallet.updated_at = now
        db.add(
            Transaction(
                user_id=user_id,
                type=tx_type,
                currency=currency,
                amount=Decimal(abs(delta)),
                balance_after=Decimal(new_balance),
                source=source,
                description=description,
                idempotency_key=idempotency_key,
                created_at=now,
            )
        )
        await db.flush()
        logger.info(
            "balance_mutated",
            currency=currency.value,
            delta=str(delta),
            balance=str(new_balance),
            source=source,
        )
        return new_balance

    async def mutate_energy(
        self,
        user_id: str,
        delta: int,
        source: EnergySource,
        *,
        description: str | None = None,
        db: AsyncSession | None = None,
    ) -> int:
        """Apply ``delta`` to energy, clamped into [0, MAX_ENERGY].

        Always appends one EnergyLedgerEntry, even when clamping reduces the
        applied delta to zero. Returns the new energy value.
        """
        if db is None:
            async with self.unit_of_work(user_id) as own_db:
                return await self._mutate_energy(own_db, user_id, delta, source, description)
        return await self._mutate_energy(db, user_id, delta, source, description)

    async def _mutate_energy(
        self,
        db: AsyncSession,
        user_id: str,
        delta: int,
        source: EnergySource,
        description: str | None,
    ) -> int:
        if int(delta) != delta:
            raise InvalidAmount("Energy deltas are whole numbers", delta=str(delta))
        delta = int(delta)

        wallet = await self.lock_wallet(db, user_id)
        before = wallet.energy
        after = min(MAX_ENERGY, max(0, before + delta))

        now = self._clock()
        wallet.energy = after
        wallet.last_energy_update = now
        wallet.updated_at = now
        db.add(
            EnergyLedgerEntry(
                user_id=user_id,
                amount=delta,
                applied=after - before,
                balance_after=after,
                source=source,
                description=description,
                created_at=now,
            )
        )
        await db.flush()
        logger.info(
            "energy_mutated",
            delta=delta,
            applied=after - before,
            energy=after,
            source=source.value,
        )
        return after

    # ------------------------------------------------------------------
    # Audit queries
    # ------------------------------------------------------------------

    async def list_transactions(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        currency: Currency | None = None,
        tx_type: TransactionType | None = None,
    ) -> TransactionPage:
        """Newest-first page of the user's currency transactions."""
        conditions: list[Any] = [Transaction.user_id == user_id]
        if currency is not None:
            conditions.append(Transaction.currency == currency)
        if tx_type is not None:
            conditions.append(Transaction.type == tx_type)

        async with self.read_session() as db:
            rows = await db.execute(
                select(Transaction)
                .where(*conditions)
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())
                .limit(limit)
                .offset(offset)
            )
            total = await db.scalar(select(func.count()).select_from(Transaction).where(*conditions))

        transactions = [TransactionView.model_validate(t) for t in rows.scalars().all()]
        total = total or 0
        return TransactionPage(
            transactions=transactions,
            total=total,
            has_more=offset + limit < total,
        )

    async def list_energy_entries(self, user_id: str, limit: int = 20) -> list[EnergyEntryView]:
        async with self.read_session() as db:
            rows = await db.execute(
                select(EnergyLedgerEntry)
                .where(EnergyLedgerEntry.user_id == user_id)
                .order_by(EnergyLedgerEntry.created_at.desc(), EnergyLedgerEntry.id.desc())
                .limit(limit)
            )
            return [EnergyEntryView.model_validate(e) for e in rows.scalars().all()]


def _normalise_delta(currency: Currency, delta: Decimal | int | float | str) -> Decimal | int:
    if currency == Currency.TICKET:
        as_decimal = Decimal(str(delta))
        if as_decimal != as_decimal.to_integral_value():
            raise InvalidAmount("Tickets are whole numbers", delta=str(delta))
        return int(as_decimal)
    return to_money(delta)
