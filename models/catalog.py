"""
Catalog-side schemas consumed and produced by the catalog store adapter.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema, FrozenSchema
from models.pricing import PriceAttributes
from models.template import TemplateFilters

# Flat custom field holding the supplier code of a product
SUPPLIER_CODE_FIELD = "kod_postavschika"


class CatalogProduct(FrozenSchema):
    """Snapshot of a catalog product as seen by the matcher."""

    id: str
    name: str = ""
    stock: Optional[int] = None
    custom_fields: dict[str, Any] = Field(default_factory=dict)
    prices: PriceAttributes = PriceAttributes()

    @property
    def supplier_code(self) -> str:
        """Stored supplier code, uppercased and trimmed ('' if unset)."""
        raw = self.custom_fields.get(SUPPLIER_CODE_FIELD)
        if raw is None:
            return ""
        return str(raw).strip().upper()


class ProductFilter(BaseSchema):
    """Catalog query used to select candidate products."""

    categories: list[str] = Field(default_factory=list)
    manufacturers: list[str] = Field(default_factory=list)
    equipment_types: list[str] = Field(default_factory=list)
    supplier: Optional[str] = None
    exclude_ids: list[str] = Field(default_factory=list)
    limit: Optional[int] = Field(None, ge=1)

    @classmethod
    def from_template(
        cls,
        filters: TemplateFilters,
        exclude_ids: Optional[list[str]] = None,
        limit: Optional[int] = None,
    ) -> "ProductFilter":
        return cls(
            categories=filters.categories,
            manufacturers=filters.manufacturers,
            equipment_types=filters.equipment_types,
            supplier=filters.supplier,
            exclude_ids=exclude_ids or [],
            limit=limit,
        )


class BasePrices(FrozenSchema):
    """Base-currency prices written by the recalculation sweep."""

    price: Optional[Decimal] = Field(None, description="Retail price in base currency")
    purchase_price: Optional[Decimal] = None
    list_price: Optional[Decimal] = None


class ProductPatch(FrozenSchema):
    """
    One row of a catalog batch update.

    Only the parts that are set are written; ``stock=None`` leaves stock as is.
    The store adapter decides how supplier code and prices are laid out.
    """

    id: str
    supplier_code: Optional[str] = None
    prices: Optional[PriceAttributes] = None
    stock: Optional[int] = None
    base_prices: Optional[BasePrices] = None
