"""Exp grants with cascading level-ups."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from idlegame.db.models import Pet
from idlegame.errors import InvalidAmount, PetNotFound
from idlegame.ledger import Ledger
from idlegame.leveling.curve import apply_exp
from idlegame.leveling.schemas import AddExpResult
from idlegame.pets.schemas import PetView

logger = logging.getLogger(__name__)


class LevelingService:
    """Applies exp to pets inside the owner's unit of work."""

    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger

    async def add_exp(self, pet_id: int, gain: int) -> AddExpResult:
        """Grant ``gain`` exp to a pet. Exp never decreases, so ``gain`` must be >= 0."""
        if gain < 0:
            raise InvalidAmount("Exp gain must be non-negative", gain=gain)

        async with self._ledger.read_session() as db:
            owner = await db.scalar(select(Pet.user_id).where(Pet.id == pet_id))
        if owner is None:
            raise PetNotFound("Pet not found", pet_id=pet_id)

        async with self._ledger.unit_of_work(owner) as db:
            pet = await _lock_pet(db, pet_id)
            if pet is None:
                raise PetNotFound("Pet not found", pet_id=pet_id)
            return await self.apply(db, pet, gain)

    async def add_exp_batch(self, pet_ids: list[int], gain: int) -> list[AddExpResult]:
        """Grant the same exp to several pets; missing pets are skipped."""
        results = []
        for pet_id in pet_ids:
            try:
                results.append(await self.add_exp(pet_id, gain))
            except PetNotFound:
                logger.warning("Skipping exp grant for missing pet %s", pet_id)
        return results

    async def apply(self, db: AsyncSession, pet: Pet, gain: int) -> AddExpResult:
        """Apply exp to an already-locked pet within the caller's transaction."""
        old_level = pet.level
        pet.level, pet.exp, levels_gained = apply_exp(pet.level, pet.exp, gain)
        await db.flush()

        if levels_gained:
            logger.info("Pet %s leveled up: %d -> %d (+%d)", pet.id, old_level, pet.level, levels_gained)

        return AddExpResult(
            pet=PetView.model_validate(pet),
            leveled_up=levels_gained > 0,
            levels_gained=levels_gained,
            exp_gained=gain,
        )


async def _lock_pet(db: AsyncSession, pet_id: int) -> Pet | None:
    result = await db.execute(select(Pet).where(Pet.id == pet_id).with_for_update())
    return result.scalar_one_or_none()
