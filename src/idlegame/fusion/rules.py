"""Static fusion rule table.

Each target rarity needs an exact material composition, a shell cost paid
whether or not the roll succeeds, and a base success rate. Protection raises
the rate to 1.0 for the same cost.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal

from idlegame.db.models import Rarity

PROTECTED_SUCCESS_RATE = 1.0


@dataclass(frozen=True)
class FusionRule:
    target: Rarity
    materials: dict[Rarity, int] = field(hash=False)
    shell_cost: Decimal
    success_rate: float

    @property
    def material_count(self) -> int:
        return sum(self.materials.values())

    def matches(self, rarities: list[Rarity]) -> bool:
        """True if ``rarities`` is exactly the required multiset."""
        return Counter(Rarity(r) for r in rarities) == Counter(self.materials)

    def rate(self, use_protection: bool) -> float:
        return PROTECTED_SUCCESS_RATE if use_protection else self.success_rate


FUSION_RULES: dict[Rarity, FusionRule] = {
    Rarity.RARE: FusionRule(Rarity.RARE, {Rarity.COMMON: 3}, Decimal("200"), 0.70),
    Rarity.EPIC: FusionRule(Rarity.EPIC, {Rarity.RARE: 3}, Decimal("500"), 0.50),
    Rarity.LEGENDARY: FusionRule(Rarity.LEGENDARY, {Rarity.EPIC: 3}, Decimal("1000"), 0.30),
    Rarity.MYTHIC: FusionRule(Rarity.MYTHIC, {Rarity.LEGENDARY: 3}, Decimal("2000"), 0.20),
}
