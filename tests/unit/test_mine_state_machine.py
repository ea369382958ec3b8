"""Unit tests for the mine spot table, challenge states and reward roll."""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from idlegame.db.models import MineChallenge
from idlegame.errors import AlreadyClaimed, InvalidSpotLevel, NotYetComplete
from idlegame.mine.spots import (
    MINE_SPOTS,
    VALID_TRANSITIONS,
    ChallengeState,
    challenge_state,
    get_spot,
    roll_rewards,
    validate_transition,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FixedRoll(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def uniform(self, a: float, b: float) -> float:
        return self.value


def _challenge(claimed: bool = False) -> MineChallenge:
    return MineChallenge(
        user_id="u1",
        spot_level=1,
        ticket_cost=1,
        energy_cost=10,
        start_time=T0,
        end_time=T0 + timedelta(minutes=5),
        claimed=claimed,
    )


class TestSpots:
    """Static spot table."""

    def test_five_levels(self):
        assert sorted(MINE_SPOTS) == [1, 2, 3, 4, 5]

    def test_costs_grow_with_level(self):
        energies = [MINE_SPOTS[level].energy_cost for level in sorted(MINE_SPOTS)]
        assert energies == [10, 20, 30, 40, 50]

    def test_unknown_level_rejected(self):
        with pytest.raises(InvalidSpotLevel):
            get_spot(6)

    def test_duration(self):
        assert get_spot(5).duration == timedelta(minutes=30)


class TestChallengeState:
    """Derived state from the stored record."""

    def test_entered_before_end(self):
        assert challenge_state(_challenge(), T0 + timedelta(minutes=4)) == ChallengeState.ENTERED

    def test_completable_at_end(self):
        assert challenge_state(_challenge(), T0 + timedelta(minutes=5)) == ChallengeState.COMPLETABLE

    def test_claimed_wins(self):
        assert challenge_state(_challenge(claimed=True), T0) == ChallengeState.CLAIMED

    def test_claimed_is_terminal(self):
        assert VALID_TRANSITIONS[ChallengeState.CLAIMED] == []


class TestValidateTransition:
    """Claim is only allowed from COMPLETABLE."""

    def test_completable_to_claimed(self):
        validate_transition(ChallengeState.COMPLETABLE, ChallengeState.CLAIMED)

    def test_entered_to_claimed_is_not_yet_complete(self):
        with pytest.raises(NotYetComplete) as exc:
            validate_transition(ChallengeState.ENTERED, ChallengeState.CLAIMED, challenge_id=7)
        assert exc.value.details["state"] == "ENTERED"
        assert exc.value.details["challenge_id"] == 7

    def test_claimed_again_is_already_claimed(self):
        with pytest.raises(AlreadyClaimed) as exc:
            validate_transition(ChallengeState.CLAIMED, ChallengeState.CLAIMED)
        assert exc.value.details["state"] == "CLAIMED"


class TestRollRewards:
    """base * difficulty factor * roll, floored."""

    def test_neutral_roll_beginner(self):
        reward = roll_rewards(get_spot(1), FixedRoll(1.0))
        assert (reward.gems, reward.shells) == (Decimal(50), Decimal(100))

    def test_low_roll_beginner(self):
        reward = roll_rewards(get_spot(1), FixedRoll(0.9))
        assert (reward.gems, reward.shells) == (Decimal(45), Decimal(90))

    def test_difficulty_factor(self):
        reward = roll_rewards(get_spot(3), FixedRoll(1.0))
        assert reward.gems == Decimal(242)
        assert reward.shells == Decimal(550)

    def test_seeded_rolls_stay_in_band(self):
        rng = random.Random(42)
        spot = get_spot(5)
        for _ in range(200):
            reward = roll_rewards(spot, rng)
            assert 0.9 <= reward.roll <= 1.1
            low = int(spot.base_gem * spot.difficulty_factor * 0.9)
            high = int(spot.base_gem * spot.difficulty_factor * 1.1)
            assert low <= reward.gems <= high
