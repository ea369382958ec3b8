"""Injectable collaborators shared by every component: clock and dice."""

from __future__ import annotations

import random
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def default_rng(seed: int | None = None) -> random.Random:
    """RNG used for fusion and mine rolls. Pass a seed for reproducible tests."""
    return random.Random(seed)
