"""Mine spot table, challenge state machine and reward roll."""

from __future__ import annotations

import enum
import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from idlegame.db.models import MineChallenge
from idlegame.errors import AlreadyClaimed, InvalidSpotLevel, NotYetComplete

DIFFICULTY_BONUS = 0.1  # reward factor per difficulty step above 1.0
ROLL_LOW = 0.9
ROLL_HIGH = 1.1


@dataclass(frozen=True)
class MineSpot:
    level: int
    name: str
    ticket_cost: int
    energy_cost: int
    duration_minutes: int
    base_gem: int
    base_shell: int
    difficulty: float

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)

    @property
    def difficulty_factor(self) -> float:
        return 1 + (self.difficulty - 1) * DIFFICULTY_BONUS


MINE_SPOTS: dict[int, MineSpot] = {
    spot.level: spot
    for spot in (
        MineSpot(1, "Beginner Cave", 1, 10, 5, 50, 100, 1.0),
        MineSpot(2, "Intermediate Cave", 1, 20, 10, 120, 250, 1.5),
        MineSpot(3, "Advanced Cave", 2, 30, 15, 220, 500, 2.0),
        MineSpot(4, "Elite Cave", 2, 40, 20, 350, 800, 2.5),
        MineSpot(5, "Legendary Cave", 3, 50, 30, 550, 1300, 3.0),
    )
}


def get_spot(level: int) -> MineSpot:
    spot = MINE_SPOTS.get(level)
    if spot is None:
        raise InvalidSpotLevel("Unknown mine spot", spot_level=level, valid=sorted(MINE_SPOTS))
    return spot


class ChallengeState(str, enum.Enum):
    ENTERED = "ENTERED"
    COMPLETABLE = "COMPLETABLE"
    CLAIMED = "CLAIMED"


VALID_TRANSITIONS: dict[ChallengeState, list[ChallengeState]] = {
    ChallengeState.ENTERED: [ChallengeState.COMPLETABLE],
    ChallengeState.COMPLETABLE: [ChallengeState.CLAIMED],
    ChallengeState.CLAIMED: [],
}


def challenge_state(challenge: MineChallenge, now: datetime) -> ChallengeState:
    """Derived state: CLAIMED is stored, COMPLETABLE is ``now >= end_time``."""
    if challenge.claimed:
        return ChallengeState.CLAIMED
    if now >= challenge.end_time:
        return ChallengeState.COMPLETABLE
    return ChallengeState.ENTERED


def validate_transition(current: ChallengeState, target: ChallengeState, challenge_id: int | None = None) -> None:
    """Raise the matching ``InvalidState`` error if ``current -> target`` is not allowed."""
    if target in VALID_TRANSITIONS[current]:
        return
    details = {"challenge_id": challenge_id, "state": current.value, "target": target.value}
    if current == ChallengeState.CLAIMED:
        raise AlreadyClaimed("Challenge already claimed", **details)
    raise NotYetComplete("Challenge is still in progress", **details)


@dataclass(frozen=True)
class RolledReward:
    roll: float
    gems: Decimal
    shells: Decimal


def roll_rewards(spot: MineSpot, rng: random.Random) -> RolledReward:
    """``floor(base * difficulty_factor * uniform(0.9, 1.1))``; one roll covers both currencies."""
    roll = rng.uniform(ROLL_LOW, ROLL_HIGH)
    factor = spot.difficulty_factor * roll
    return RolledReward(
        roll=roll,
        gems=Decimal(math.floor(spot.base_gem * factor)),
        shells=Decimal(math.floor(spot.base_shell * factor)),
    )
