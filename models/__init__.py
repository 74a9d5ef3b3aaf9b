"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, FrozenSchema
from models.price_list import (
    ColumnType,
    SupplierLineRecord,
    Media,
    ParserConfig,
    FilePreview,
)
from models.pricing import (
    PriceType,
    ModifierType,
    PriceChange,
    PriceModifier,
    CalculatedPrices,
    PriceCurrencies,
    PriceValue,
    PriceAttributes,
)
from models.template import (
    AvailabilityAction,
    TemplateFilters,
    TemplateConfig,
    NormalizedCache,
    PriceTemplate,
)
from models.catalog import (
    SUPPLIER_CODE_FIELD,
    CatalogProduct,
    ProductFilter,
    BasePrices,
    ProductPatch,
)
from models.matching import (
    Confidence,
    MatchMethod,
    MatchStatus,
    MatchResult,
    MatchStats,
    PreviewItem,
    MatchPreview,
    AutoMatchCandidate,
    AutoMatchResult,
    MatchPair,
    ConfirmResult,
)
from models.apply import (
    MatchDecision,
    OutcomeStatus,
    ItemOutcome,
    ApplyStats,
    RecalcPriceType,
    RecalculationStats,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",

    # Price lists
    "ColumnType",
    "SupplierLineRecord",
    "Media",
    "ParserConfig",
    "FilePreview",

    # Pricing
    "PriceType",
    "ModifierType",
    "PriceChange",
    "PriceModifier",
    "CalculatedPrices",
    "PriceCurrencies",
    "PriceValue",
    "PriceAttributes",

    # Templates
    "AvailabilityAction",
    "TemplateFilters",
    "TemplateConfig",
    "NormalizedCache",
    "PriceTemplate",

    # Catalog
    "SUPPLIER_CODE_FIELD",
    "CatalogProduct",
    "ProductFilter",
    "BasePrices",
    "ProductPatch",

    # Matching
    "Confidence",
    "MatchMethod",
    "MatchStatus",
    "MatchResult",
    "MatchStats",
    "PreviewItem",
    "MatchPreview",
    "AutoMatchCandidate",
    "AutoMatchResult",
    "MatchPair",
    "ConfirmResult",

    # Apply
    "MatchDecision",
    "OutcomeStatus",
    "ItemOutcome",
    "ApplyStats",
    "RecalcPriceType",
    "RecalculationStats",
]
