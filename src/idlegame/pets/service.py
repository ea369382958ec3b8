"""Pet collection: newbie grant, listing, detail and aggregate stats."""

from __future__ import annotations

import logging
import random
from decimal import Decimal

from sqlalchemy import func, select

from idlegame.db.models import Currency, Pet, ProductionSession, Rarity, TransactionType
from idlegame.errors import NewbieAlreadyGranted, NotOwner, PetNotFound
from idlegame.ledger import Ledger
from idlegame.leveling.curve import exp_progress
from idlegame.pets.schemas import ExpProgress, NewbieGrant, PetDetail, PetStats, PetView, PetWithRate
from idlegame.production.rates import CENT, pet_rate, total_rate

logger = logging.getLogger(__name__)

NEWBIE_SHELL_GIFT = 100

NAME_POOL: dict[Rarity, tuple[str, ...]] = {
    Rarity.COMMON: ("Pebble", "Sprout", "Bubbles", "Nibbles", "Dusty"),
    Rarity.RARE: ("Coral", "Ember", "Frost", "Breeze"),
    Rarity.EPIC: ("Tidecaller", "Stormwing", "Glimmer"),
    Rarity.LEGENDARY: ("Abyssal King", "Sunfire", "Moonshade"),
    Rarity.MYTHIC: ("Leviathan", "Phoenix Ascendant"),
}


def pick_name(rng: random.Random, rarity: Rarity) -> str:
    return rng.choice(NAME_POOL[rarity])


class PetService:
    def __init__(self, ledger: Ledger, rng: random.Random) -> None:
        self._ledger = ledger
        self._rng = rng

    async def grant_newbie_pet(self, user_id: str) -> NewbieGrant:
        """Give a new player one COMMON pet and a shell gift. Once per wallet."""
        async with self._ledger.unit_of_work(user_id) as db:
            wallet = await self._ledger.lock_wallet(db, user_id)
            if wallet.newbie_granted:
                raise NewbieAlreadyGranted("Newbie reward already claimed", user_id=user_id)

            pet = Pet(
                user_id=user_id,
                name=pick_name(self._rng, Rarity.COMMON),
                rarity=Rarity.COMMON,
                level=1,
                exp=0,
                bond_tag="NEWBIE",
                created_at=self._ledger.clock(),
            )
            db.add(pet)
            wallet.newbie_granted = True
            await db.flush()

            await self._ledger.mutate_balance(
                user_id,
                Currency.SHELL,
                Decimal(NEWBIE_SHELL_GIFT),
                TransactionType.EARN,
                "NEWBIE_GIFT",
                description="welcome gift",
                idempotency_key=f"newbie:{user_id}",
                db=db,
            )

        logger.info("Newbie pet granted: user=%s pet=%s", user_id, pet.id)
        return NewbieGrant(pet=PetView.model_validate(pet), shell_gift=NEWBIE_SHELL_GIFT)

    async def list_pets(self, user_id: str) -> list[PetWithRate]:
        async with self._ledger.read_session() as db:
            result = await db.execute(select(Pet).where(Pet.user_id == user_id).order_by(Pet.id))
            pets = result.scalars().all()

        out = []
        for pet in pets:
            rate = pet_rate(pet.rarity, pet.level)
            out.append(
                PetWithRate(
                    **PetView.model_validate(pet).model_dump(),
                    gem_per_hour=float(rate.gem_per_hour),
                    shell_per_hour=float(rate.shell_per_hour),
                )
            )
        return out

    async def get_pet(self, user_id: str, pet_id: int) -> PetDetail:
        """Pet detail. Raises ``PetNotFound`` or, for someone else's pet, ``NotOwner``."""
        async with self._ledger.read_session() as db:
            pet = await db.get(Pet, pet_id)
            if pet is None:
                raise PetNotFound("Pet not found", pet_id=pet_id)
            if pet.user_id != user_id:
                raise NotOwner("This pet belongs to another player", pet_id=pet_id)

            totals = await db.execute(
                select(
                    func.coalesce(func.sum(ProductionSession.gem_produced), 0),
                    func.coalesce(func.sum(ProductionSession.shell_produced), 0),
                ).where(ProductionSession.pet_id == pet_id, ProductionSession.closed_at.is_not(None))
            )
            gems, shells = totals.one()

        rate = pet_rate(pet.rarity, pet.level)
        return PetDetail(
            **PetView.model_validate(pet).model_dump(),
            gem_per_hour=float(rate.gem_per_hour),
            shell_per_hour=float(rate.shell_per_hour),
            exp_progress=ExpProgress(**exp_progress(pet.level, pet.exp)),
            total_gem_produced=Decimal(str(gems)).quantize(CENT),
            total_shell_produced=Decimal(str(shells)).quantize(CENT),
        )

    async def pet_stats(self, user_id: str) -> PetStats:
        async with self._ledger.read_session() as db:
            result = await db.execute(select(Pet.rarity, Pet.level).where(Pet.user_id == user_id))
            rows = result.all()

        distribution = {rarity.value: 0 for rarity in Rarity}
        for rarity, _ in rows:
            distribution[Rarity(rarity).value] += 1

        rate = total_rate(rows)
        average = sum(level for _, level in rows) / len(rows) if rows else 0.0
        return PetStats(
            total_pets=len(rows),
            rarity_distribution=distribution,
            average_level=round(average, 2),
            gem_per_hour=float(rate.gem_per_hour),
            shell_per_hour=float(rate.shell_per_hour),
        )
