"""
Matching schemas: confidence tiers, match results and the preview payload.
"""

from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import BaseSchema, FrozenSchema
from models.price_list import SupplierLineRecord
from models.pricing import CalculatedPrices, PriceChange, PriceCurrencies


class Confidence(str, Enum):
    """How much a match can be trusted."""
    EXACT = "exact"    # Prior human decision
    HIGH = "high"      # Stored supplier code equals line code
    MEDIUM = "medium"  # Name containment or fuzzy score
    NONE = "none"


class MatchMethod(str, Enum):
    """Strategy that produced a match."""
    MATCHED_PRODUCTS = "matched_products"
    CATALOG_CODE = "kod_postavschika"
    NAME_SIMILARITY = "name_similarity"


class MatchStatus(str, Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"


class MatchResult(FrozenSchema):
    """Outcome of the matcher chain for one candidate product."""

    product_id: str
    supplier_code: str = ""
    confidence: Confidence = Confidence.NONE
    method: Optional[MatchMethod] = None
    is_confirmed: bool = False
    line_index: Optional[int] = Field(None, description="Position of the claimed line")
    line: Optional[SupplierLineRecord] = None

    @property
    def status(self) -> MatchStatus:
        return MatchStatus.MATCHED if self.line is not None else MatchStatus.UNMATCHED


class MatchStats(BaseSchema):
    """Counts per matching method."""

    total: int = 0
    matched_exact: int = 0
    matched_code: int = 0
    matched_name: int = 0
    unmatched_products: int = 0
    unmatched_lines: int = 0
    unmatched: int = 0


class PriceChanges(BaseSchema):
    purchase: Optional[PriceChange] = None
    retail: Optional[PriceChange] = None
    list: Optional[PriceChange] = None


class PreviewItem(BaseSchema):
    """
    One row of the reconciliation preview.

    Product rows carry a product_id; price-list residue rows do not.
    """

    supplier_code: str = ""
    supplier_name: str = ""
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    current_kod_postavschika: Optional[str] = None
    current_prices: CalculatedPrices = CalculatedPrices()
    new_prices: CalculatedPrices = CalculatedPrices()
    currencies: PriceCurrencies
    price_changes: PriceChanges = Field(default_factory=PriceChanges)
    availability: Optional[int] = None
    current_stock: Optional[int] = None
    confidence: Confidence = Confidence.NONE
    method: Optional[MatchMethod] = None
    is_confirmed: bool = False
    status: MatchStatus = MatchStatus.UNMATCHED


class MatchPreview(BaseSchema):
    """Preview payload returned before anything is written."""

    matched: list[PreviewItem] = Field(default_factory=list)
    unmatched: list[PreviewItem] = Field(default_factory=list)
    stats: MatchStats = Field(default_factory=MatchStats)


# ===================
# AUTO-MATCH
# ===================

class AutoMatchCandidate(BaseSchema):
    """Fuzzy candidate awaiting human confirmation."""

    supplier_code: str = ""
    supplier_name: str = ""
    product_id: str
    product_name: str = ""
    confidence: Confidence
    score: float = Field(..., ge=0, le=1)
    similarity: float = Field(..., description="Score as a percentage, 1 decimal")
    is_confirmed: bool = False


class AutoMatchStats(BaseSchema):
    total_unmatched: int = 0
    auto_matched: int = 0
    still_unmatched: int = 0


class AutoMatchResult(BaseSchema):
    matches: list[AutoMatchCandidate] = Field(default_factory=list)
    still_unmatched: list[SupplierLineRecord] = Field(default_factory=list)
    stats: AutoMatchStats = Field(default_factory=AutoMatchStats)


# ===================
# CONFIRMATION
# ===================

class MatchPair(BaseSchema):
    """Product/supplier-code pair submitted for confirmation."""

    product_id: Optional[str] = None
    supplier_code: Optional[str] = None


class ConfirmResult(BaseSchema):
    confirmed: int
    total_mappings: int
