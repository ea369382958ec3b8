"""Achievement progress and reward claims.

Progress is computed live from the user's pets, fusion attempts and claimed
mine challenges. Claims are persisted, so each achievement pays out once.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from idlegame.achievements.catalog import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    FUSION_COUNT,
    MINE_COUNT,
    PET_COUNT,
    PET_LEVEL,
    RARITY_EPIC,
    RARITY_LEGENDARY,
    RARITY_MYTHIC,
    RARITY_RARE,
)
from idlegame.achievements.schemas import AchievementList, AchievementProgress, AchievementReward
from idlegame.db.models import AchievementClaim, Currency, FusionAttempt, MineChallenge, Pet, Rarity, TransactionType
from idlegame.errors import AchievementLocked, AchievementNotFound, AlreadyClaimed
from idlegame.ledger import Ledger

logger = logging.getLogger(__name__)


async def compute_counters(db: AsyncSession, user_id: str) -> dict[str, int]:
    """Current value of every counter an achievement can be measured against."""
    fusions = await db.scalar(select(func.count()).select_from(FusionAttempt).where(FusionAttempt.user_id == user_id))
    mines = await db.scalar(
        select(func.count())
        .select_from(MineChallenge)
        .where(MineChallenge.user_id == user_id, MineChallenge.claimed.is_(True))
    )
    result = await db.execute(select(Pet.rarity, Pet.level).where(Pet.user_id == user_id))
    pets = result.all()

    by_rarity = {rarity: 0 for rarity in Rarity}
    for rarity, _ in pets:
        by_rarity[Rarity(rarity)] += 1

    return {
        FUSION_COUNT: fusions or 0,
        PET_COUNT: len(pets),
        RARITY_RARE: by_rarity[Rarity.RARE],
        RARITY_EPIC: by_rarity[Rarity.EPIC],
        RARITY_LEGENDARY: by_rarity[Rarity.LEGENDARY],
        RARITY_MYTHIC: by_rarity[Rarity.MYTHIC],
        PET_LEVEL: max((level for _, level in pets), default=0),
        MINE_COUNT: mines or 0,
    }


class AchievementService:
    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger

    async def list(self, user_id: str) -> AchievementList:
        async with self._ledger.read_session() as db:
            counters = await compute_counters(db, user_id)
            result = await db.execute(
                select(AchievementClaim.achievement_id).where(AchievementClaim.user_id == user_id)
            )
            claimed = set(result.scalars().all())

        items = []
        for ach in ACHIEVEMENTS:
            current = counters[ach["kind"]]
            items.append(
                AchievementProgress(
                    **ach,
                    current_value=current,
                    progress=round(min(100.0, current / ach["condition"] * 100), 2),
                    unlocked=current >= ach["condition"],
                    claimed=ach["id"] in claimed,
                )
            )

        unlocked = sum(1 for a in items if a.unlocked)
        return AchievementList(
            achievements=items,
            total_count=len(items),
            unlocked_count=unlocked,
            claimed_count=sum(1 for a in items if a.claimed),
            progress=unlocked * 100 // len(items),
        )

    async def claim(self, user_id: str, achievement_id: str) -> AchievementReward:
        """Pay an unlocked achievement's reward once.

        Raises ``AchievementNotFound``, ``AlreadyClaimed`` or ``AchievementLocked``.
        """
        ach = ACHIEVEMENTS_BY_ID.get(achievement_id)
        if ach is None:
            raise AchievementNotFound("Achievement not found", achievement_id=achievement_id)

        gems = Decimal(ach["gems"])
        shells = Decimal(ach["shells"])

        async with self._ledger.unit_of_work(user_id) as db:
            existing = await db.scalar(
                select(AchievementClaim.id).where(
                    AchievementClaim.user_id == user_id,
                    AchievementClaim.achievement_id == achievement_id,
                )
            )
            if existing is not None:
                raise AlreadyClaimed("Achievement reward already claimed", achievement_id=achievement_id)

            counters = await compute_counters(db, user_id)
            current = counters[ach["kind"]]
            if current < ach["condition"]:
                raise AchievementLocked(
                    "Achievement not unlocked yet",
                    achievement_id=achievement_id,
                    current_value=current,
                    condition=ach["condition"],
                )

            db.add(
                AchievementClaim(
                    user_id=user_id,
                    achievement_id=achievement_id,
                    gem_reward=gems,
                    shell_reward=shells,
                    claimed_at=self._ledger.clock(),
                )
            )
            await db.flush()

            for currency, amount in ((Currency.GEM, gems), (Currency.SHELL, shells)):
                if amount > 0:
                    await self._ledger.mutate_balance(
                        user_id, currency, amount, TransactionType.EARN, "ACHIEVEMENT",
                        description=f"achievement {ach['name']}",
                        idempotency_key=f"achievement:{user_id}:{achievement_id}:{currency.value.lower()}",
                        db=db,
                    )

        logger.info("Achievement claimed: user=%s id=%s gems=%s shells=%s", user_id, achievement_id, gems, shells)
        return AchievementReward(achievement_id=achievement_id, gems=gems, shells=shells)
