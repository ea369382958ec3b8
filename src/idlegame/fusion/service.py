"""Fusion engine: validate materials, charge, roll, record, consume.

Materials and the shell cost are spent whatever the roll says; that risk is
part of the game. The attempt record and material snapshots are written
before the material pets are deleted, all in the caller's unit of work.
"""

from __future__ import annotations

import logging
import random

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from idlegame.db.models import Currency, FusionAttempt, FusionMaterial, Pet, Rarity, TransactionType
from idlegame.errors import InvalidMaterials, InvalidRarity
from idlegame.fusion.rules import FUSION_RULES, FusionRule
from idlegame.fusion.schemas import FusionAttemptView, FusionResult, RuleView
from idlegame.ledger import Ledger
from idlegame.pets.schemas import PetView
from idlegame.pets.service import pick_name
from idlegame.tasks.catalog import FUSION_COUNT
from idlegame.tasks.service import TaskService

logger = logging.getLogger(__name__)


def rule_for(target_rarity: Rarity | str) -> FusionRule:
    try:
        target = Rarity(target_rarity)
    except ValueError:
        raise InvalidRarity("Unknown rarity", target_rarity=str(target_rarity)) from None
    rule = FUSION_RULES.get(target)
    if rule is None:
        raise InvalidRarity("No fusion leads to this rarity", target_rarity=target.value)
    return rule


class FusionEngine:
    def __init__(self, ledger: Ledger, rng: random.Random, tasks: TaskService | None = None) -> None:
        self._ledger = ledger
        self._rng = rng
        self._tasks = tasks

    def rules(self) -> list[RuleView]:
        return [
            RuleView(
                target_rarity=rule.target,
                materials=dict(rule.materials),
                shell_cost=rule.shell_cost,
                success_rate=rule.success_rate,
            )
            for rule in FUSION_RULES.values()
        ]

    async def validate(
        self,
        user_id: str,
        material_ids: list[int],
        target_rarity: Rarity | str,
        db: AsyncSession | None = None,
    ) -> list[Pet]:
        """Check ownership and exact composition; return the material pets.

        Raises ``InvalidRarity`` for an unknown target and ``InvalidMaterials``
        for duplicates, foreign or missing pets, or a wrong multiset.
        """
        rule = rule_for(target_rarity)
        if db is None:
            async with self._ledger.read_session() as own_db:
                return await _check_materials(own_db, user_id, material_ids, rule, lock=False)
        return await _check_materials(db, user_id, material_ids, rule, lock=True)

    async def attempt(
        self,
        user_id: str,
        material_ids: list[int],
        target_rarity: Rarity | str,
        use_protection: bool = False,
    ) -> FusionResult:
        rule = rule_for(target_rarity)

        async with self._ledger.unit_of_work(user_id) as db:
            materials = await self.validate(user_id, material_ids, rule.target, db=db)

            # Raises InsufficientFunds before anything else is written.
            await self._ledger.mutate_balance(
                user_id,
                Currency.SHELL,
                -rule.shell_cost,
                TransactionType.SPEND,
                "FUSION",
                description=f"fusion to {rule.target.value}",
                db=db,
            )

            rate = rule.rate(use_protection)
            roll = self._rng.random()
            success = roll < rate
            now = self._ledger.clock()

            new_pet = None
            if success:
                new_pet = Pet(
                    user_id=user_id,
                    name=pick_name(self._rng, rule.target),
                    rarity=rule.target,
                    level=1,
                    exp=0,
                    bond_tag="FUSION",
                    created_at=now,
                )
                db.add(new_pet)
                await db.flush()

            attempt = FusionAttempt(
                user_id=user_id,
                target_rarity=rule.target,
                shell_cost=rule.shell_cost,
                use_protection=use_protection,
                success_rate=rate,
                roll=roll,
                success=success,
                result_pet_id=new_pet.id if new_pet is not None else None,
                created_at=now,
            )
            db.add(attempt)
            await db.flush()

            for pet in materials:
                db.add(
                    FusionMaterial(
                        fusion_attempt_id=attempt.id,
                        pet_id=pet.id,
                        pet_rarity=pet.rarity,
                        pet_level=pet.level,
                        pet_exp=pet.exp,
                    )
                )
            await db.flush()

            consumed = [pet.id for pet in materials]
            await db.execute(delete(Pet).where(Pet.id.in_(consumed)).execution_options(synchronize_session=False))
            for pet in materials:
                db.expunge(pet)

            if self._tasks is not None:
                await self._tasks.record_progress(user_id, FUSION_COUNT, db=db)

        logger.info(
            "Fusion %s: user=%s target=%s rate=%.2f roll=%.4f consumed=%s",
            "succeeded" if success else "failed",
            user_id, rule.target.value, rate, roll, consumed,
        )
        return FusionResult(
            attempt_id=attempt.id,
            success=success,
            success_rate=rate,
            roll=roll,
            shell_cost=rule.shell_cost,
            consumed_pet_ids=consumed,
            new_pet=PetView.model_validate(new_pet) if new_pet is not None else None,
        )

    async def history(self, user_id: str, limit: int = 20) -> list[FusionAttemptView]:
        async with self._ledger.read_session() as db:
            result = await db.execute(
                select(FusionAttempt)
                .where(FusionAttempt.user_id == user_id)
                .order_by(FusionAttempt.created_at.desc(), FusionAttempt.id.desc())
                .limit(limit)
            )
            return [FusionAttemptView.model_validate(a) for a in result.scalars().all()]


async def _check_materials(
    db: AsyncSession,
    user_id: str,
    material_ids: list[int],
    rule: FusionRule,
    lock: bool,
) -> list[Pet]:
    if len(set(material_ids)) != len(material_ids):
        raise InvalidMaterials("Material list contains duplicates", material_ids=list(material_ids))
    if len(material_ids) != rule.material_count:
        raise InvalidMaterials(
            f"{rule.target.value} fusion needs exactly {rule.material_count} materials",
            required=rule.material_count,
            given=len(material_ids),
        )

    stmt = select(Pet).where(Pet.id.in_(material_ids), Pet.user_id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    pets = list(result.scalars().all())

    if len(pets) != len(material_ids):
        found = {pet.id for pet in pets}
        raise InvalidMaterials(
            "Some materials do not exist or belong to another player",
            missing=[pid for pid in material_ids if pid not in found],
        )
    if not rule.matches([pet.rarity for pet in pets]):
        raise InvalidMaterials(
            "Material rarities do not match the fusion rule",
            required={r.value: n for r, n in rule.materials.items()},
            given=sorted(Rarity(p.rarity).value for p in pets),
        )
    return sorted(pets, key=lambda pet: material_ids.index(pet.id))
