"""Integration tests for exp grants on stored pets."""

from __future__ import annotations

import pytest

from conftest import add_pet
from idlegame.errors import InvalidAmount, PetNotFound
from idlegame.leveling.curve import level_for_exp


class TestAddExp:
    """Exp grants and cascading level-ups."""

    @pytest.mark.asyncio
    async def test_small_gain(self, core):
        pet_id = await add_pet(core, "alice")
        result = await core.leveling.add_exp(pet_id, 100)
        assert result.pet.exp == 100
        assert result.pet.level == 1
        assert result.leveled_up is False

    @pytest.mark.asyncio
    async def test_multi_level_jump(self, core):
        pet_id = await add_pet(core, "alice")
        result = await core.leveling.add_exp(pet_id, 1601)
        assert result.pet.level == 4
        assert result.levels_gained == 3
        assert result.leveled_up is True

    @pytest.mark.asyncio
    async def test_exp_never_decreases(self, core):
        pet_id = await add_pet(core, "alice", exp=50)
        with pytest.raises(InvalidAmount):
            await core.leveling.add_exp(pet_id, -10)
        result = await core.leveling.add_exp(pet_id, 0)
        assert result.pet.exp == 50

    @pytest.mark.asyncio
    async def test_level_stays_consistent_with_exp(self, core):
        pet_id = await add_pet(core, "alice")
        for gain in (150, 150, 600, 4000, 25_000):
            result = await core.leveling.add_exp(pet_id, gain)
            assert result.pet.level == level_for_exp(result.pet.exp)

    @pytest.mark.asyncio
    async def test_missing_pet(self, core):
        with pytest.raises(PetNotFound):
            await core.leveling.add_exp(9999, 10)

    @pytest.mark.asyncio
    async def test_batch_skips_missing(self, core):
        a = await add_pet(core, "alice")
        b = await add_pet(core, "bob")
        results = await core.leveling.add_exp_batch([a, 9999, b], 300)
        assert [r.pet.id for r in results] == [a, b]
        assert all(r.pet.level == 2 for r in results)
