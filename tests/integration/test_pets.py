"""Integration tests for the pet service."""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import add_pet
from idlegame.db.models import Rarity
from idlegame.errors import NewbieAlreadyGranted, NotOwner, PetNotFound
from idlegame.pets.service import NAME_POOL


class TestNewbieGrant:
    """One COMMON pet and a shell gift per player."""

    @pytest.mark.asyncio
    async def test_grant(self, core):
        grant = await core.pets.grant_newbie_pet("alice")
        assert grant.pet.rarity == Rarity.COMMON
        assert grant.pet.level == 1
        assert grant.pet.bond_tag == "NEWBIE"
        assert grant.pet.name in NAME_POOL[Rarity.COMMON]
        assert grant.shell_gift == 100

        wallet = await core.ledger.get_wallet("alice")
        assert wallet.shell_balance == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_only_once(self, core):
        await core.pets.grant_newbie_pet("alice")
        with pytest.raises(NewbieAlreadyGranted):
            await core.pets.grant_newbie_pet("alice")
        assert len(await core.pets.list_pets("alice")) == 1
        assert (await core.ledger.get_wallet("alice")).shell_balance == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_newbie_pet_can_produce(self, core, clock):
        await core.pets.grant_newbie_pet("alice")
        session = await core.production.start_session("alice")
        assert session.resumed is False


class TestListing:
    """Pets with rates and aggregate stats."""

    @pytest.mark.asyncio
    async def test_list_with_rates(self, core):
        await add_pet(core, "alice", Rarity.COMMON)
        await add_pet(core, "alice", Rarity.EPIC, level=3)

        pets = await core.pets.list_pets("alice")
        assert [(p.rarity, p.gem_per_hour, p.shell_per_hour) for p in pets] == [
            (Rarity.COMMON, 10.0, 25.0),
            (Rarity.EPIC, 22.0, 55.0),
        ]

    @pytest.mark.asyncio
    async def test_stats(self, core):
        await add_pet(core, "alice", Rarity.COMMON)
        await add_pet(core, "alice", Rarity.COMMON, level=3)
        await add_pet(core, "alice", Rarity.MYTHIC)

        stats = await core.pets.pet_stats("alice")
        assert stats.total_pets == 3
        assert stats.rarity_distribution["COMMON"] == 2
        assert stats.rarity_distribution["MYTHIC"] == 1
        assert stats.rarity_distribution["RARE"] == 0
        assert stats.average_level == pytest.approx(1.67)
        assert stats.gem_per_hour == pytest.approx(71.0)

    @pytest.mark.asyncio
    async def test_empty_stats(self, core):
        stats = await core.pets.pet_stats("nobody")
        assert stats.total_pets == 0
        assert stats.average_level == 0.0


class TestPetDetail:
    """Single pet with progress and lifetime production."""

    @pytest.mark.asyncio
    async def test_exp_progress(self, core):
        pet_id = await add_pet(core, "alice", Rarity.RARE, level=2, exp=541)

        detail = await core.pets.get_pet("alice", pet_id)
        assert detail.id == pet_id
        assert detail.gem_per_hour == pytest.approx(15.75)
        assert detail.exp_progress.current_level_exp == 282
        assert detail.exp_progress.next_level_exp == 801
        assert detail.exp_progress.current_progress == 259
        assert detail.exp_progress.progress_percent == pytest.approx(49.9)
        assert detail.exp_progress.production_bonus == pytest.approx(1.05)
        assert detail.total_gem_produced == 0

    @pytest.mark.asyncio
    async def test_production_totals(self, core, clock):
        pet_id = await add_pet(core, "alice")
        await core.production.start_session("alice")
        clock.advance(hours=2)
        await core.production.claim("alice")

        detail = await core.pets.get_pet("alice", pet_id)
        assert detail.total_gem_produced == Decimal("20.00")
        assert detail.total_shell_produced == Decimal("50.00")
        assert detail.exp == 120

    @pytest.mark.asyncio
    async def test_missing_pet(self, core):
        with pytest.raises(PetNotFound):
            await core.pets.get_pet("alice", 999)

    @pytest.mark.asyncio
    async def test_someone_elses_pet(self, core):
        pet_id = await add_pet(core, "bob")
        with pytest.raises(NotOwner):
            await core.pets.get_pet("alice", pet_id)
