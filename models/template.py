"""
Price template schemas.

A price template is the long-lived configuration of one supplier feed:
column mapping, candidate filters, modifiers, currencies, the confirmed
product -> supplier code mapping, and the normalization cache.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from models.base import BaseSchema
from models.price_list import ColumnType, Media
from models.pricing import PriceCurrencies, PriceModifier


class AvailabilityAction(str, Enum):
    """What apply does with the product stock."""
    DONT_CHANGE = "dont_change"
    SET_FROM_PRICE = "set_from_price"
    SET_1000 = "set_1000"


class TemplateFilters(BaseSchema):
    """Catalog query restricting the candidate products, plus stock policy."""

    categories: list[str] = Field(default_factory=list)
    manufacturers: list[str] = Field(default_factory=list)
    equipment_types: list[str] = Field(default_factory=list)
    supplier: Optional[str] = None
    availability_action: AvailabilityAction = AvailabilityAction.DONT_CHANGE
    zero_stock_for_missing: bool = False


class TemplateConfig(BaseSchema):
    """The ``config`` JSON column of a price template."""

    selected_media_id: Optional[str] = None
    start_row: Optional[int] = Field(None, ge=1)
    column_mapping: dict[str, list[ColumnType]] = Field(default_factory=dict)
    filters: TemplateFilters = Field(default_factory=TemplateFilters)
    modifiers: list[PriceModifier] = Field(default_factory=list)
    price_currencies: Optional[PriceCurrencies] = None

    @field_validator("column_mapping", mode="before")
    @classmethod
    def wrap_single_types(cls, v):
        """Older templates map a column to one type instead of a list."""
        if not v:
            return {}
        return {
            column.upper(): types if isinstance(types, list) else [types]
            for column, types in v.items()
        }

    @property
    def availability_mapped(self) -> bool:
        return any(ColumnType.AVAILABILITY in types for types in self.column_mapping.values())


class NormalizedCache(BaseSchema):
    """
    Versioned cache record: parsed blob plus the media fingerprint it came from.

    Written as one unit; ``version`` guards the compare-and-swap. None means
    the row has never stored a version.
    """

    normalized_data: Optional[str] = None
    last_import_media_id: Optional[str] = None
    last_import_media_updated_at: Optional[datetime] = None
    version: Optional[int] = None

    def is_valid_for(self, media: Media) -> bool:
        return (
            self.normalized_data is not None
            and self.last_import_media_id == media.id
            and self.last_import_media_updated_at == media.updated_at
        )


class PriceTemplate(BaseSchema):
    """Price template with its cache and confirmed mapping."""

    id: str
    supplier_id: Optional[str] = None
    name: str = ""
    config: TemplateConfig = Field(default_factory=TemplateConfig)
    matched_products: dict[str, str] = Field(
        default_factory=dict,
        description="Confirmed product_id -> supplier_code mapping"
    )
    cache: NormalizedCache = Field(default_factory=NormalizedCache)
    applied_at: Optional[datetime] = None
    applied_by_user_id: Optional[str] = None

    @field_validator("config", "matched_products", mode="before")
    @classmethod
    def null_json_is_empty(cls, v):
        return {} if v is None else v

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PriceTemplate":
        """Build from a ``price_templates`` row (cache columns are flat there)."""
        return cls(
            id=row["id"],
            supplier_id=row.get("supplier_id"),
            name=row.get("name") or "",
            config=row.get("config"),
            matched_products=row.get("matched_products"),
            cache=NormalizedCache(
                normalized_data=row.get("normalized_data"),
                last_import_media_id=row.get("last_import_media_id"),
                last_import_media_updated_at=row.get("last_import_media_updated_at"),
                version=row.get("cache_version"),
            ),
            applied_at=row.get("applied_at"),
            applied_by_user_id=row.get("applied_by_user_id"),
        )
