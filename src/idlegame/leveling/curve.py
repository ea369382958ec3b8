"""Experience curve and production bonus.

Cumulative exp to reach ``level`` is

    required_exp(level) = sum(floor(BASE_EXP * i ** EXPONENT) for i in 2..level)

so level 2 needs 282 exp, level 3 needs 801, ... level 30 needs the whole
table. Above MAX_LEVEL the requirement is infinite: exp keeps accumulating but
never buys another level.
"""

from __future__ import annotations

import math

BASE_EXP = 100
EXPONENT = 1.5
MAX_LEVEL = 30
PRODUCTION_BONUS_PER_LEVEL = 0.05


def _step_cost(level: int) -> int:
    return math.floor(BASE_EXP * level**EXPONENT)


# CUMULATIVE_EXP[level] for level in 0..MAX_LEVEL (index 0 unused).
CUMULATIVE_EXP: list[int] = [0, 0]
for _level in range(2, MAX_LEVEL + 1):
    CUMULATIVE_EXP.append(CUMULATIVE_EXP[-1] + _step_cost(_level))
del _level


def required_exp(level: int) -> float:
    """Cumulative exp needed to stand at ``level``. ``inf`` past MAX_LEVEL."""
    if level <= 1:
        return 0
    if level > MAX_LEVEL:
        return math.inf
    return CUMULATIVE_EXP[level]


def exp_for_next_level(level: int) -> int:
    """Exp needed to go from ``level`` to ``level + 1`` (0 at the cap)."""
    if level >= MAX_LEVEL:
        return 0
    return _step_cost(level + 1)


def level_for_exp(exp: int) -> int:
    """Deterministic level for a total exp amount."""
    level = 1
    while level < MAX_LEVEL and exp >= CUMULATIVE_EXP[level + 1]:
        level += 1
    return level


def apply_exp(level: int, exp: int, gain: int) -> tuple[int, int, int]:
    """Add ``gain`` and cascade level-ups.

    Returns ``(new_level, new_exp, levels_gained)``. Handles multi-level jumps;
    exp above the cap is retained without effect.
    """
    new_exp = exp + gain
    new_level = level
    while new_level < MAX_LEVEL and new_exp >= required_exp(new_level + 1):
        new_level += 1
    return new_level, new_exp, new_level - level


def production_bonus(level: int) -> float:
    """Production multiplier: 1.0 at level 1, +5% per level above."""
    if level <= 1:
        return 1.0
    return 1.0 + (level - 1) * PRODUCTION_BONUS_PER_LEVEL


def exp_table() -> list[dict]:
    """Level table for clients: cumulative and next-step exp per level."""
    return [
        {
            "level": level,
            "required_exp": required_exp(level),
            "next_level_exp": exp_for_next_level(level),
        }
        for level in range(1, MAX_LEVEL + 1)
    ]


def exp_progress(level: int, exp: int) -> dict:
    """Progress within the current level, as shown on the pet detail screen."""
    current_floor = required_exp(level)
    is_max = level >= MAX_LEVEL
    span = exp_for_next_level(level)
    into_level = exp - current_floor
    percent = 100.0 if is_max or span == 0 else min(100.0, max(0.0, into_level / span * 100))

    return {
        "level": level,
        "current_exp": exp,
        "current_level_exp": current_floor,
        "next_level_exp": current_floor if is_max else required_exp(level + 1),
        "exp_for_next_level": span,
        "current_progress": into_level,
        "progress_percent": round(percent, 2),
        "is_max_level": is_max,
        "production_bonus": production_bonus(level),
    }
