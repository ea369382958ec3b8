"""Integration tests for achievement progress and one-time claims."""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import add_pet, fund
from idlegame.achievements.catalog import ACHIEVEMENTS
from idlegame.db.models import Currency, Rarity
from idlegame.errors import AchievementLocked, AchievementNotFound, AlreadyClaimed


def _by_id(listing):
    return {a.id: a for a in listing.achievements}


class TestListAchievements:
    """Live progress."""

    @pytest.mark.asyncio
    async def test_fresh_player(self, core):
        listing = await core.achievements.list("alice")
        assert listing.total_count == len(ACHIEVEMENTS)
        assert listing.unlocked_count == 0
        assert listing.progress == 0

    @pytest.mark.asyncio
    async def test_pet_progress(self, core):
        for _ in range(3):
            await add_pet(core, "alice")
        await add_pet(core, "alice", Rarity.RARE, level=10)

        items = _by_id(await core.achievements.list("alice"))
        assert items["ACH_PET_5"].current_value == 4
        assert items["ACH_PET_5"].progress == 80.0
        assert items["ACH_PET_5"].unlocked is False
        assert items["ACH_RARE_1"].unlocked is True
        assert items["ACH_LEVEL_10"].unlocked is True
        assert items["ACH_LEVEL_20"].unlocked is False


class TestClaimAchievement:
    """Rewards pay out once."""

    @pytest.mark.asyncio
    async def test_claim_fusion_achievement_once(self, core):
        materials = [await add_pet(core, "alice") for _ in range(3)]
        await fund(core, "alice", Currency.SHELL, 200)
        await core.fusion.attempt("alice", materials, Rarity.RARE, use_protection=True)

        reward = await core.achievements.claim("alice", "ACH_FUSION_1")
        assert reward.gems == Decimal(50)
        assert reward.shells == Decimal(100)

        wallet = await core.ledger.get_wallet("alice")
        assert wallet.gem_balance == Decimal("50.00")
        assert wallet.shell_balance == Decimal("100.00")

        with pytest.raises(AlreadyClaimed):
            await core.achievements.claim("alice", "ACH_FUSION_1")
        assert (await core.ledger.get_wallet("alice")).gem_balance == Decimal("50.00")

        items = _by_id(await core.achievements.list("alice"))
        assert items["ACH_FUSION_1"].claimed is True

    @pytest.mark.asyncio
    async def test_gem_only_reward(self, core):
        await add_pet(core, "alice", Rarity.RARE)
        await core.achievements.claim("alice", "ACH_RARE_1")
        page = await core.ledger.list_transactions("alice")
        assert [(t.currency, t.source) for t in page.transactions] == [(Currency.GEM, "ACHIEVEMENT")]

    @pytest.mark.asyncio
    async def test_locked(self, core):
        await add_pet(core, "alice")
        with pytest.raises(AchievementLocked) as exc:
            await core.achievements.claim("alice", "ACH_PET_5")
        assert exc.value.details["current_value"] == 1
        assert (await core.ledger.get_wallet("alice")).gem_balance == 0

    @pytest.mark.asyncio
    async def test_unknown(self, core):
        with pytest.raises(AchievementNotFound):
            await core.achievements.claim("alice", "ACH_FRIEND_5")
