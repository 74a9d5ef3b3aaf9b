"""
Price schemas: modifiers, calculated prices and stored price attributes.

Price fields are named purchase / retail / list throughout. The classes
below that declare a ``list`` field avoid ``list[...]`` annotations in their
own body, since the field name shadows the builtin there.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from models.base import BaseSchema, FrozenSchema


class PriceType(str, Enum):
    """The three price slots a supplier line can carry."""
    PURCHASE = "purchase"
    RETAIL = "retail"
    LIST = "list"


class ModifierType(str, Enum):
    """How a modifier changes a price."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    NONE = "none"


class PriceChange(str, Enum):
    """Direction of a price change shown in the preview."""
    NEW = "new"
    INCREASE = "increase"
    DECREASE = "decrease"
    UNCHANGED = "unchanged"


class PriceModifier(BaseSchema):
    """
    One step of the modifier pipeline.

    Accepts the template's legacy ``modifier_value`` key as an alias of
    ``value``.
    """

    price_type: Optional[PriceType] = Field(None, description="Price slot to modify")
    modifier_type: ModifierType = Field(ModifierType.NONE, description="percentage, fixed or none")
    value: Decimal = Field(
        Decimal("0"),
        validation_alias=AliasChoices("value", "modifier_value"),
        description="Percent for percentage, amount for fixed"
    )

    @field_validator("modifier_type", mode="before")
    @classmethod
    def missing_type_is_none(cls, v):
        return ModifierType.NONE if v in (None, "") else v

    @field_validator("value", mode="before")
    @classmethod
    def missing_value_is_zero(cls, v):
        return Decimal("0") if v in (None, "") else v


class CalculatedPrices(FrozenSchema):
    """Prices produced by the modifier pipeline (null = not supplied)."""

    purchase: Optional[Decimal] = None
    retail: Optional[Decimal] = None
    list: Optional[Decimal] = None

    def get(self, price_type: PriceType) -> Optional[Decimal]:
        return getattr(self, price_type.value)


class PriceCurrencies(BaseSchema):
    """ISO currency per price slot."""

    purchase: str = Field(..., min_length=3, max_length=3)
    retail: str = Field(..., min_length=3, max_length=3)
    list: str = Field(..., min_length=3, max_length=3)

    @classmethod
    def uniform(cls, currency: str) -> "PriceCurrencies":
        return cls(purchase=currency, retail=currency, list=currency)

    def get(self, price_type: PriceType) -> str:
        return getattr(self, price_type.value)


class PriceValue(FrozenSchema):
    """A stored price in a given currency."""

    value: Optional[Decimal] = None
    currency: Optional[str] = None


class PriceAttributes(FrozenSchema):
    """
    Canonical multi-currency price snapshot of a catalog product.

    The catalog store adapter translates this to and from whatever attribute
    shape the store uses.
    """

    purchase: PriceValue = PriceValue()
    retail: PriceValue = PriceValue()
    list: PriceValue = PriceValue()

    def get(self, price_type: PriceType) -> PriceValue:
        return getattr(self, price_type.value)

    def has_any(self) -> bool:
        return any(self.get(t).value is not None for t in PriceType)

    def values(self) -> CalculatedPrices:
        """Price values without currencies, for preview comparison."""
        return CalculatedPrices(
            purchase=self.purchase.value,
            retail=self.retail.value,
            list=self.list.value,
        )
