"""
Price calculator: modifier pipeline.

Seeds purchase / retail / list from a supplier line and applies the
template's modifiers strictly in order. Every application is rounded to
2 decimals (half-up) before the next modifier sees the value, so two +10%
steps on 100.00 give 110.00 then 121.00, and on 0.05 give 0.06 then 0.07
rather than 0.0605 rounded once.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from models.price_list import SupplierLineRecord
from models.pricing import (
    CalculatedPrices,
    ModifierType,
    PriceChange,
    PriceModifier,
    PriceType,
)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def round_price(value: Decimal) -> Decimal:
    """Round to 2 decimals, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def apply_modifier(price: Optional[Decimal], modifier: PriceModifier) -> Optional[Decimal]:
    """
    Apply one modifier to one price.

    None prices and ``none`` modifiers pass through untouched (and unrounded).
    """
    if price is None or modifier.modifier_type == ModifierType.NONE:
        return price

    if modifier.modifier_type == ModifierType.PERCENTAGE:
        result = price * (1 + modifier.value / HUNDRED)
    else:
        result = price + modifier.value

    return round_price(result)


def apply_modifiers(line: SupplierLineRecord, modifiers: list[PriceModifier]) -> CalculatedPrices:
    """
    Calculate final prices for a supplier line.

    Args:
        line: Normalized supplier line
        modifiers: Ordered modifier pipeline

    Returns:
        CalculatedPrices with all three slots (None where the line has no price)
    """
    prices: dict[PriceType, Optional[Decimal]] = {
        PriceType.PURCHASE: line.purchase_price,
        PriceType.RETAIL: line.retail_price,
        PriceType.LIST: line.list_price,
    }

    for modifier in modifiers:
        if modifier.price_type is None:
            continue
        prices[modifier.price_type] = apply_modifier(prices[modifier.price_type], modifier)

    return CalculatedPrices(
        purchase=prices[PriceType.PURCHASE],
        retail=prices[PriceType.RETAIL],
        list=prices[PriceType.LIST],
    )


def price_change(old: Optional[Decimal], new: Optional[Decimal]) -> PriceChange:
    """Compare a stored price with the newly calculated one."""
    if old is None or new is None:
        return PriceChange.NEW
    if new > old:
        return PriceChange.INCREASE
    if new < old:
        return PriceChange.DECREASE
    return PriceChange.UNCHANGED
