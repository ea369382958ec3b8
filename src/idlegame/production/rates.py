"""Production rates and time-window accrual. Pure functions, no I/O.

Per-pet hourly rate:

    gem_per_hour   = BASE_GEM_RATE   * production_bonus(level) * RARITY_MULTIPLIER[rarity]
    shell_per_hour = BASE_SHELL_RATE * production_bonus(level) * RARITY_MULTIPLIER[rarity]

A user's rate is the sum over every pet they own. Offline windows are capped at
MAX_OFFLINE_HOURS and paid at OFFLINE_RATE. Every paid hour costs
ENERGY_COST_PER_HOUR energy; a user with no pets is never charged.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from idlegame.db.models import Rarity
from idlegame.leveling.curve import production_bonus

BASE_GEM_RATE = Decimal("10")
BASE_SHELL_RATE = Decimal("25")
ENERGY_COST_PER_HOUR = 20
OFFLINE_RATE = Decimal("0.8")
MAX_OFFLINE_HOURS = Decimal("12")
EXP_PER_MINUTE = 1

RARITY_MULTIPLIER: dict[Rarity, Decimal] = {
    Rarity.COMMON: Decimal("1.0"),
    Rarity.RARE: Decimal("1.5"),
    Rarity.EPIC: Decimal("2.0"),
    Rarity.LEGENDARY: Decimal("3.0"),
    Rarity.MYTHIC: Decimal("5.0"),
}

CENT = Decimal("0.01")
_SECONDS_PER_HOUR = Decimal(3600)


@dataclass(frozen=True)
class ProductionRate:
    gem_per_hour: Decimal = Decimal("0")
    shell_per_hour: Decimal = Decimal("0")

    def __add__(self, other: ProductionRate) -> ProductionRate:
        return ProductionRate(
            self.gem_per_hour + other.gem_per_hour,
            self.shell_per_hour + other.shell_per_hour,
        )

    @property
    def is_idle(self) -> bool:
        """True when nothing produces, e.g. the user owns no pets."""
        return self.gem_per_hour == 0 and self.shell_per_hour == 0


@dataclass(frozen=True)
class Accrual:
    gems: Decimal
    shells: Decimal
    hours: Decimal
    energy_needed: int

    @property
    def exp(self) -> int:
        """Exp earned by the anchor pet: one per whole minute paid."""
        return int((self.hours * 60 * EXP_PER_MINUTE).to_integral_value(rounding=ROUND_FLOOR))


def pet_rate(rarity: Rarity, level: int) -> ProductionRate:
    factor = Decimal(str(production_bonus(level))) * RARITY_MULTIPLIER[Rarity(rarity)]
    return ProductionRate(
        gem_per_hour=(BASE_GEM_RATE * factor).quantize(CENT, rounding=ROUND_HALF_UP),
        shell_per_hour=(BASE_SHELL_RATE * factor).quantize(CENT, rounding=ROUND_HALF_UP),
    )


def total_rate(pets: Iterable[tuple[Rarity, int]]) -> ProductionRate:
    """Sum of ``pet_rate`` over ``(rarity, level)`` pairs."""
    total = ProductionRate()
    for rarity, level in pets:
        total = total + pet_rate(rarity, level)
    return total


def elapsed_hours(start: datetime, end: datetime) -> Decimal:
    seconds = max(0.0, (end - start).total_seconds())
    return Decimal(str(seconds)) / _SECONDS_PER_HOUR


def affordable_hours(energy: int) -> Decimal:
    """How long the given energy can fund production."""
    return Decimal(max(0, energy)) / ENERGY_COST_PER_HOUR


def energy_for_hours(hours: Decimal) -> int:
    return int((hours * ENERGY_COST_PER_HOUR).to_integral_value(rounding=ROUND_FLOOR))


def compute_accrual(rate: ProductionRate, start: datetime, end: datetime, online: bool) -> Accrual:
    """Accrual for the window ``[start, end]`` under the online/offline policy."""
    return accrue_hours(rate, elapsed_hours(start, end), online)


def accrue_hours(rate: ProductionRate, hours: Decimal, online: bool) -> Accrual:
    if not online:
        hours = min(hours, MAX_OFFLINE_HOURS)

    gems = rate.gem_per_hour * hours
    shells = rate.shell_per_hour * hours
    if not online:
        gems *= OFFLINE_RATE
        shells *= OFFLINE_RATE

    return Accrual(
        gems=gems.quantize(CENT, rounding=ROUND_HALF_UP),
        shells=shells.quantize(CENT, rounding=ROUND_HALF_UP),
        hours=hours,
        energy_needed=0 if rate.is_idle else energy_for_hours(hours),
    )


def cap_to_energy(rate: ProductionRate, accrual: Accrual, energy: int) -> Accrual:
    """Shrink an online accrual to what ``energy`` can pay for.

    The paid window is ``min(original hours, affordable hours)``, so the result
    never exceeds the original accrual and never needs more energy than held.
    """
    if accrual.energy_needed <= energy:
        return accrual
    hours = min(accrual.hours, affordable_hours(energy))
    return accrue_hours(rate, hours, online=True)
