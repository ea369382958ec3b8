"""Unit tests for the fusion rule table."""

from decimal import Decimal

import pytest

from idlegame.db.models import Rarity
from idlegame.errors import InvalidRarity
from idlegame.fusion.rules import FUSION_RULES
from idlegame.fusion.service import rule_for


class TestFusionRules:
    """Composition, cost and rate per target."""

    def test_rare_rule(self):
        rule = FUSION_RULES[Rarity.RARE]
        assert rule.materials == {Rarity.COMMON: 3}
        assert rule.shell_cost == Decimal("200")
        assert rule.success_rate == 0.70

    def test_costs_and_rates(self):
        table = {target.value: (rule.shell_cost, rule.success_rate) for target, rule in FUSION_RULES.items()}
        assert table == {
            "RARE": (Decimal("200"), 0.70),
            "EPIC": (Decimal("500"), 0.50),
            "LEGENDARY": (Decimal("1000"), 0.30),
            "MYTHIC": (Decimal("2000"), 0.20),
        }

    def test_exact_multiset_matches(self):
        rule = FUSION_RULES[Rarity.EPIC]
        assert rule.matches([Rarity.RARE, Rarity.RARE, Rarity.RARE])

    def test_substitution_rejected(self):
        rule = FUSION_RULES[Rarity.RARE]
        assert not rule.matches([Rarity.COMMON, Rarity.COMMON, Rarity.RARE])

    def test_extra_material_rejected(self):
        rule = FUSION_RULES[Rarity.RARE]
        assert not rule.matches([Rarity.COMMON] * 4)

    def test_protection_guarantees_success(self):
        rule = FUSION_RULES[Rarity.MYTHIC]
        assert rule.rate(use_protection=True) == 1.0
        assert rule.rate(use_protection=False) == 0.20


class TestRuleFor:
    """Target rarity lookup."""

    def test_accepts_string(self):
        assert rule_for("LEGENDARY").target == Rarity.LEGENDARY

    def test_common_is_not_a_target(self):
        with pytest.raises(InvalidRarity):
            rule_for(Rarity.COMMON)

    def test_unknown_rarity(self):
        with pytest.raises(InvalidRarity):
            rule_for("GOLDEN")
