"""Mine challenge engine: enter, claim and the expired-challenge sweep.

The sweep settles through exactly the same ``claim`` path as a player, so a
manual claim that wins the race simply shows up as ``AlreadyClaimed`` there.
"""

from __future__ import annotations

import logging
import random

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from idlegame.db.models import Currency, EnergySource, MineChallenge, TransactionType
from idlegame.errors import (
    AlreadyClaimed,
    ChallengeInProgress,
    ChallengeNotFound,
    EconomyError,
    NotOwner,
    TicketOrEnergyInsufficient,
)
from idlegame.ledger import Ledger
from idlegame.mine.schemas import ChallengeView, MineRewards, MineStatus, SpotView
from idlegame.mine.spots import (
    MINE_SPOTS,
    ChallengeState,
    challenge_state,
    get_spot,
    roll_rewards,
    validate_transition,
)
from idlegame.tasks.catalog import MINE_COUNT
from idlegame.tasks.service import TaskService

logger = logging.getLogger(__name__)

SETTLED_BY_USER = "USER"
SETTLED_BY_SWEEP = "SWEEP"
MINE_SOURCE = "MINE_CHALLENGE"


class MineChallengeEngine:
    def __init__(self, ledger: Ledger, rng: random.Random, tasks: TaskService | None = None) -> None:
        self._ledger = ledger
        self._rng = rng
        self._tasks = tasks

    def spots(self) -> list[SpotView]:
        return [SpotView.model_validate(spot) for spot in MINE_SPOTS.values()]

    async def enter(self, user_id: str, spot_level: int) -> ChallengeView:
        spot = get_spot(spot_level)

        async with self._ledger.unit_of_work(user_id) as db:
            active = await _unclaimed_challenge(db, user_id)
            if active is not None:
                raise ChallengeInProgress(
                    "A mine challenge is already in progress",
                    challenge_id=active.id,
                    state=challenge_state(active, self._ledger.clock()).value,
                )

            wallet = await self._ledger.lock_wallet(db, user_id)
            if wallet.mine_ticket < spot.ticket_cost or wallet.energy < spot.energy_cost:
                raise TicketOrEnergyInsufficient(
                    "Not enough tickets or energy for this spot",
                    spot_level=spot.level,
                    tickets_required=spot.ticket_cost,
                    tickets_available=wallet.mine_ticket,
                    energy_required=spot.energy_cost,
                    energy_available=wallet.energy,
                )

            await self._ledger.mutate_balance(
                user_id, Currency.TICKET, -spot.ticket_cost, TransactionType.SPEND, MINE_SOURCE,
                description=f"entered {spot.name}",
                db=db,
            )
            await self._ledger.mutate_energy(
                user_id, -spot.energy_cost, EnergySource.MINE_CHALLENGE,
                description=f"entered {spot.name}",
                db=db,
            )

            now = self._ledger.clock()
            challenge = MineChallenge(
                user_id=user_id,
                spot_level=spot.level,
                ticket_cost=spot.ticket_cost,
                energy_cost=spot.energy_cost,
                start_time=now,
                end_time=now + spot.duration,
                claimed=False,
            )
            db.add(challenge)
            await db.flush()

        logger.info("Mine entered: user=%s challenge=%s spot=%d", user_id, challenge.id, spot.level)
        return ChallengeView.model_validate(challenge)

    async def claim(self, user_id: str, challenge_id: int, settled_by: str = SETTLED_BY_USER) -> MineRewards:
        """Roll, credit and freeze the rewards of a finished challenge.

        Raises ``ChallengeNotFound``, ``NotOwner``, ``AlreadyClaimed`` or
        ``NotYetComplete``. The roll happens once; a claimed record is never
        recomputed.
        """
        async with self._ledger.read_session() as db:
            owner = await db.scalar(select(MineChallenge.user_id).where(MineChallenge.id == challenge_id))
        if owner is None:
            raise ChallengeNotFound("Challenge not found", challenge_id=challenge_id)
        if owner != user_id:
            raise NotOwner("Challenge belongs to another player", challenge_id=challenge_id)

        async with self._ledger.unit_of_work(owner) as db:
            result = await db.execute(
                select(MineChallenge).where(MineChallenge.id == challenge_id).with_for_update()
            )
            challenge = result.scalar_one()
            now = self._ledger.clock()
            validate_transition(challenge_state(challenge, now), ChallengeState.CLAIMED, challenge.id)

            spot = get_spot(challenge.spot_level)
            reward = roll_rewards(spot, self._rng)

            for currency, amount in ((Currency.GEM, reward.gems), (Currency.SHELL, reward.shells)):
                if amount > 0:
                    await self._ledger.mutate_balance(
                        owner, currency, amount, TransactionType.EARN, MINE_SOURCE,
                        description=f"{spot.name} reward",
                        idempotency_key=f"mine:{challenge.id}:{currency.value.lower()}",
                        db=db,
                    )

            challenge.claimed = True
            challenge.claimed_at = now
            challenge.settled_by = settled_by
            challenge.roll = reward.roll
            challenge.gem_reward = reward.gems
            challenge.shell_reward = reward.shells
            await db.flush()
            if self._tasks is not None:
                await self._tasks.record_progress(owner, MINE_COUNT, db=db)

        logger.info(
            "Mine claimed: user=%s challenge=%s gems=%s shells=%s by=%s",
            owner, challenge_id, reward.gems, reward.shells, settled_by,
        )
        return MineRewards(
            challenge_id=challenge_id,
            gems=reward.gems,
            shells=reward.shells,
            roll=reward.roll,
            settled_by=settled_by,
        )

    async def settle_expired_sweep(self) -> int:
        """Auto-claim every unclaimed challenge whose end time has passed.

        Returns the number of challenges this sweep settled.
        """
        now = self._ledger.clock()
        async with self._ledger.read_session() as db:
            result = await db.execute(
                select(MineChallenge.id, MineChallenge.user_id)
                .where(MineChallenge.claimed.is_(False), MineChallenge.end_time <= now)
                .order_by(MineChallenge.end_time)
            )
            due = result.all()

        settled = 0
        for challenge_id, owner in due:
            try:
                await self.claim(owner, challenge_id, settled_by=SETTLED_BY_SWEEP)
            except AlreadyClaimed:
                logger.debug("Challenge %s claimed concurrently, skipping", challenge_id)
                continue
            except EconomyError as e:
                logger.warning("Sweep could not settle challenge %s: %s %s", challenge_id, e.code, e.details)
                continue
            settled += 1

        if due:
            logger.info("Mine sweep complete: %d due, %d settled", len(due), settled)
        return settled

    async def status(self, user_id: str) -> MineStatus:
        async with self._ledger.unit_of_work(user_id) as db:
            wallet = await self._ledger.lock_wallet(db, user_id)
            active = await _unclaimed_challenge(db, user_id)

        if active is None:
            return MineStatus(tickets=wallet.mine_ticket, energy=wallet.energy)

        now = self._ledger.clock()
        return MineStatus(
            challenge=ChallengeView.model_validate(active),
            state=challenge_state(active, now),
            remaining_seconds=max(0, int((active.end_time - now).total_seconds())),
            tickets=wallet.mine_ticket,
            energy=wallet.energy,
        )

    async def history(self, user_id: str, limit: int = 20) -> list[ChallengeView]:
        async with self._ledger.read_session() as db:
            result = await db.execute(
                select(MineChallenge)
                .where(MineChallenge.user_id == user_id)
                .order_by(MineChallenge.start_time.desc(), MineChallenge.id.desc())
                .limit(limit)
            )
            return [ChallengeView.model_validate(c) for c in result.scalars().all()]


async def _unclaimed_challenge(db: AsyncSession, user_id: str) -> MineChallenge | None:
    result = await db.execute(
        select(MineChallenge)
        .where(MineChallenge.user_id == user_id, MineChallenge.claimed.is_(False))
        .with_for_update()
    )
    return result.scalar_one_or_none()
