"""Unit tests for production rate and accrual math."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from idlegame.db.models import Rarity
from idlegame.production.rates import (
    ProductionRate,
    accrue_hours,
    cap_to_energy,
    compute_accrual,
    elapsed_hours,
    pet_rate,
    total_rate,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TestPetRate:
    """Per-pet hourly rate."""

    def test_common_level_one(self):
        rate = pet_rate(Rarity.COMMON, 1)
        assert rate.gem_per_hour == Decimal("10.00")
        assert rate.shell_per_hour == Decimal("25.00")

    def test_rare_level_one(self):
        rate = pet_rate(Rarity.RARE, 1)
        assert rate.gem_per_hour == Decimal("15.00")
        assert rate.shell_per_hour == Decimal("37.50")

    def test_level_bonus(self):
        assert pet_rate(Rarity.COMMON, 3).gem_per_hour == Decimal("11.00")

    def test_mythic_multiplier(self):
        assert pet_rate(Rarity.MYTHIC, 1).gem_per_hour == Decimal("50.00")

    def test_total_rate_sums_pets(self):
        rate = total_rate([(Rarity.COMMON, 1), (Rarity.RARE, 1)])
        assert rate == ProductionRate(Decimal("25.00"), Decimal("62.50"))

    def test_total_rate_of_nothing_is_zero(self):
        assert total_rate([]) == ProductionRate()


class TestComputeAccrual:
    """Online and offline windows."""

    def test_online_two_hours(self):
        rate = total_rate([(Rarity.COMMON, 1), (Rarity.RARE, 1)])
        accrual = compute_accrual(rate, T0, T0 + timedelta(hours=2), online=True)
        assert accrual.gems == Decimal("50.00")
        assert accrual.energy_needed == 40
        assert accrual.exp == 120

    def test_offline_is_capped_and_discounted(self):
        rate = pet_rate(Rarity.COMMON, 1)
        long = compute_accrual(rate, T0, T0 + timedelta(hours=20), online=False)
        capped = compute_accrual(rate, T0, T0 + timedelta(hours=12), online=False)
        assert long == capped
        assert long.gems == Decimal("96.00")
        assert long.shells == Decimal("240.00")

    def test_online_is_not_capped(self):
        rate = pet_rate(Rarity.COMMON, 1)
        accrual = compute_accrual(rate, T0, T0 + timedelta(hours=20), online=True)
        assert accrual.gems == Decimal("200.00")

    def test_reversed_window_is_empty(self):
        assert elapsed_hours(T0, T0 - timedelta(hours=1)) == 0

    def test_partial_hour_energy_is_floored(self):
        accrual = accrue_hours(pet_rate(Rarity.COMMON, 1), Decimal("0.5"), online=True)
        assert accrual.energy_needed == 10
        assert accrual.gems == Decimal("5.00")

    def test_no_pets_costs_no_energy(self):
        accrual = compute_accrual(total_rate([]), T0, T0 + timedelta(hours=2), online=True)
        assert accrual.gems == 0
        assert accrual.energy_needed == 0
        assert cap_to_energy(total_rate([]), accrual, 0) is accrual


class TestCapToEnergy:
    """Shortfall shrinks the paid window."""

    def test_enough_energy_is_untouched(self):
        rate = pet_rate(Rarity.COMMON, 1)
        accrual = accrue_hours(rate, Decimal("2"), online=True)
        assert cap_to_energy(rate, accrual, 100) is accrual

    def test_shortfall_pays_affordable_hours(self):
        rate = pet_rate(Rarity.COMMON, 1)
        accrual = accrue_hours(rate, Decimal("3"), online=True)
        capped = cap_to_energy(rate, accrual, 30)
        assert capped.hours == Decimal("1.5")
        assert capped.gems == Decimal("15.00")
        assert capped.energy_needed == 30

    def test_no_energy_pays_nothing(self):
        rate = pet_rate(Rarity.COMMON, 1)
        capped = cap_to_energy(rate, accrue_hours(rate, Decimal("3"), online=True), 0)
        assert capped.gems == 0
        assert capped.energy_needed == 0

    def test_never_exceeds_original(self):
        rate = pet_rate(Rarity.COMMON, 1)
        accrual = accrue_hours(rate, Decimal("1"), online=True)
        capped = cap_to_energy(rate, accrual, 19)
        assert capped.hours <= accrual.hours
        assert capped.energy_needed <= 19
