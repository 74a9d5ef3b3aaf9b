"""
Unit tests for the modifier pipeline.

Run: pytest tests/unit/test_price_calculator.py -v
"""

import pytest
from decimal import Decimal

from services.price_calculator import apply_modifier, apply_modifiers, price_change, round_price
from models.pricing import ModifierType, PriceChange, PriceModifier, PriceType

from tests.factories import LineFactory


def pct(price_type: str, value) -> PriceModifier:
    return PriceModifier(price_type=price_type, modifier_type="percentage", value=value)


class TestApplyModifiers:
    """Tests for apply_modifiers()"""

    def test_no_modifiers_passes_prices_through(self):
        """Should seed all three slots from the line."""
        # Arrange
        line = LineFactory.create(purchase_price="80", retail_price="100", list_price="120")

        # Act
        prices = apply_modifiers(line, [])

        # Assert
        assert prices.purchase == Decimal("80")
        assert prices.retail == Decimal("100")
        assert prices.list == Decimal("120")

    def test_percentage_modifiers_compound_with_rounding(self):
        """Two +10% steps on 100 give 110.00 then 121.00."""
        # Arrange
        line = LineFactory.create(retail_price="100")
        first = apply_modifiers(line, [pct("retail", 10)])

        # Act
        second = apply_modifiers(line, [pct("retail", 10), pct("retail", 10)])

        # Assert
        assert first.retail == Decimal("110.00")
        assert second.retail == Decimal("121.00")

    def test_rounding_happens_after_every_step(self):
        """Intermediate values are rounded half-up before the next modifier."""
        # Arrange
        line = LineFactory.create(retail_price="0.05")

        # Act
        prices = apply_modifiers(line, [pct("retail", 10), pct("retail", 10)])

        # Assert - 0.055 -> 0.06, 0.066 -> 0.07 (0.0605 rounded once would be 0.06)
        assert prices.retail == Decimal("0.07")

    def test_fixed_modifier_adds_amount(self):
        """Fixed modifiers add their value (negative values subtract)."""
        # Arrange
        line = LineFactory.create(purchase_price="50.10")
        modifiers = [
            PriceModifier(price_type="purchase", modifier_type="fixed", value="5"),
            PriceModifier(price_type="purchase", modifier_type="fixed", value="-0.15"),
        ]

        # Act
        prices = apply_modifiers(line, modifiers)

        # Assert
        assert prices.purchase == Decimal("54.95")

    def test_missing_price_is_not_created(self):
        """A modifier never invents a price the line does not carry."""
        # Arrange
        line = LineFactory.create(retail_price="100", list_price=None)

        # Act
        prices = apply_modifiers(line, [pct("list", 20)])

        # Assert
        assert prices.list is None
        assert prices.retail == Decimal("100")

    def test_modifier_without_price_type_is_ignored(self):
        """Incomplete modifier rows from the template are skipped."""
        # Arrange
        line = LineFactory.create(retail_price="100")

        # Act
        prices = apply_modifiers(line, [PriceModifier(modifier_type="percentage", value=50)])

        # Assert
        assert prices.retail == Decimal("100")

    def test_modifiers_only_touch_their_own_slot(self):
        """A retail modifier leaves purchase untouched."""
        # Arrange
        line = LineFactory.create(purchase_price="60", retail_price="100")

        # Act
        prices = apply_modifiers(line, [pct("retail", 25)])

        # Assert
        assert prices.purchase == Decimal("60")
        assert prices.retail == Decimal("125.00")


class TestApplyModifier:
    """Tests for apply_modifier()"""

    def test_none_modifier_is_noop(self):
        modifier = PriceModifier(price_type="retail", modifier_type="none", value=99)
        assert apply_modifier(Decimal("10.555"), modifier) == Decimal("10.555")

    def test_legacy_modifier_value_key_is_accepted(self):
        """Templates store the amount under modifier_value."""
        # Arrange
        modifier = PriceModifier.model_validate(
            {"price_type": "retail", "modifier_type": "percentage", "modifier_value": "20"}
        )

        # Act
        result = apply_modifier(Decimal("10"), modifier)

        # Assert
        assert modifier.price_type == PriceType.RETAIL
        assert result == Decimal("12.00")

    def test_empty_modifier_type_means_none(self):
        modifier = PriceModifier.model_validate({"price_type": "retail", "modifier_type": ""})
        assert modifier.modifier_type == ModifierType.NONE

    def test_round_price_is_half_up(self):
        assert round_price(Decimal("2.675")) == Decimal("2.68")
        assert round_price(Decimal("2.665")) == Decimal("2.67")


class TestPriceChange:
    """Tests for price_change()"""

    @pytest.mark.parametrize("old,new,expected", [
        (None, Decimal("10"), PriceChange.NEW),
        (Decimal("10"), None, PriceChange.NEW),
        (Decimal("10"), Decimal("12"), PriceChange.INCREASE),
        (Decimal("10"), Decimal("8"), PriceChange.DECREASE),
        (Decimal("10.00"), Decimal("10"), PriceChange.UNCHANGED),
    ])
    def test_price_change(self, old, new, expected):
        assert price_change(old, new) == expected
