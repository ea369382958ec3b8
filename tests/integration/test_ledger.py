"""Integration tests for the ledger: balances, energy, audit trail, rollback."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from conftest import fund
from idlegame.db.models import Currency, EnergySource, TransactionType
from idlegame.errors import InsufficientFunds, InvalidAmount


class TestWallet:
    """Wallet creation on first touch."""

    @pytest.mark.asyncio
    async def test_default_wallet(self, core):
        wallet = await core.ledger.get_wallet("alice")
        assert wallet.gem_balance == 0
        assert wallet.shell_balance == 0
        assert wallet.mine_ticket == 0
        assert wallet.energy == 100

    @pytest.mark.asyncio
    async def test_get_wallet_is_stable(self, core):
        first = await core.ledger.get_wallet("alice")
        second = await core.ledger.get_wallet("alice")
        assert first == second


class TestMutateBalance:
    """Atomic balance changes with one audit row each."""

    @pytest.mark.asyncio
    async def test_earn_then_spend(self, core):
        await core.ledger.mutate_balance("alice", Currency.SHELL, 300, TransactionType.EARN, "ADMIN")
        balance = await core.ledger.mutate_balance("alice", Currency.SHELL, -120, TransactionType.SPEND, "SHOP")
        assert balance == Decimal("180.00")

        page = await core.ledger.list_transactions("alice")
        assert page.total == 2
        assert [t.type for t in page.transactions] == [TransactionType.SPEND, TransactionType.EARN]
        assert page.transactions[0].amount == Decimal("120.00")
        assert page.transactions[0].balance_after == Decimal("180.00")

    @pytest.mark.asyncio
    async def test_overdraft_rejected_and_nothing_written(self, core):
        await fund(core, "alice", Currency.GEM, 10)
        with pytest.raises(InsufficientFunds) as exc:
            await core.ledger.mutate_balance("alice", Currency.GEM, -11, TransactionType.SPEND, "SHOP")
        assert exc.value.details["available"] == "10.00"

        wallet = await core.ledger.get_wallet("alice")
        assert wallet.gem_balance == Decimal("10.00")
        assert (await core.ledger.list_transactions("alice")).total == 1

    @pytest.mark.asyncio
    async def test_idempotency_key_applies_once(self, core):
        for _ in range(3):
            balance = await core.ledger.mutate_balance(
                "alice", Currency.GEM, 25, TransactionType.EARN, "TASK", idempotency_key="task:1"
            )
        assert balance == Decimal("25.00")
        assert (await core.ledger.list_transactions("alice")).total == 1

    @pytest.mark.asyncio
    async def test_sign_must_match_type(self, core):
        with pytest.raises(InvalidAmount):
            await core.ledger.mutate_balance("alice", Currency.GEM, -5, TransactionType.EARN, "ADMIN")
        with pytest.raises(InvalidAmount):
            await core.ledger.mutate_balance("alice", Currency.GEM, 5, TransactionType.SPEND, "ADMIN")

    @pytest.mark.asyncio
    async def test_tickets_are_whole(self, core):
        with pytest.raises(InvalidAmount):
            await core.ledger.mutate_balance("alice", Currency.TICKET, Decimal("1.5"), TransactionType.EARN, "ADMIN")
        assert await core.ledger.mutate_balance("alice", Currency.TICKET, 2, TransactionType.EARN, "ADMIN") == 2

    @pytest.mark.asyncio
    async def test_filters_and_paging(self, core):
        await fund(core, "alice", Currency.GEM, 1)
        await fund(core, "alice", Currency.SHELL, 2)
        await fund(core, "alice", Currency.SHELL, 3)

        shells = await core.ledger.list_transactions("alice", currency=Currency.SHELL)
        assert shells.total == 2
        first = await core.ledger.list_transactions("alice", limit=2)
        assert len(first.transactions) == 2
        assert first.has_more is True
        rest = await core.ledger.list_transactions("alice", limit=2, offset=2)
        assert rest.has_more is False


class TestMutateEnergy:
    """Clamped energy changes, always audited."""

    @pytest.mark.asyncio
    async def test_clamped_at_capacity(self, core):
        energy = await core.ledger.mutate_energy("alice", 10, EnergySource.TASK_REWARD)
        assert energy == 100
        [entry] = await core.ledger.list_energy_entries("alice")
        assert entry.amount == 10
        assert entry.applied == 0
        assert entry.balance_after == 100

    @pytest.mark.asyncio
    async def test_clamped_at_zero(self, core):
        energy = await core.ledger.mutate_energy("alice", -150, EnergySource.ADMIN)
        assert energy == 0
        [entry] = await core.ledger.list_energy_entries("alice")
        assert entry.applied == -100


class TestUnitOfWork:
    """All-or-nothing."""

    @pytest.mark.asyncio
    async def test_failure_rolls_back_every_mutation(self, core):
        await fund(core, "alice", Currency.SHELL, 100)
        with pytest.raises(InsufficientFunds):
            async with core.ledger.unit_of_work("alice") as db:
                await core.ledger.mutate_energy("alice", -30, EnergySource.ADMIN, db=db)
                await core.ledger.mutate_balance("alice", Currency.GEM, 50, TransactionType.EARN, "ADMIN", db=db)
                await core.ledger.mutate_balance(
                    "alice", Currency.SHELL, -500, TransactionType.SPEND, "SHOP", db=db
                )

        wallet = await core.ledger.get_wallet("alice")
        assert wallet.energy == 100
        assert wallet.gem_balance == 0
        assert wallet.shell_balance == Decimal("100.00")
        assert await core.ledger.list_energy_entries("alice") == []

    @pytest.mark.asyncio
    async def test_other_users_are_not_blocked(self, core):
        await core.ledger.get_wallet("alice")
        async with core.ledger.unit_of_work("alice"):
            balance = await asyncio.wait_for(
                core.ledger.mutate_balance("bob", Currency.GEM, 5, TransactionType.EARN, "ADMIN"),
                timeout=5,
            )
            assert balance == Decimal("5.00")

            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(core.ledger.get_wallet("alice"), timeout=0.1)

        assert (await core.ledger.get_wallet("alice")).gem_balance == 0
