"""
Apply and recalculation schemas.

Batch outcomes are values: every decision ends as exactly one ItemOutcome,
and ApplyStats is derived from them.
"""

from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import BaseSchema
from models.pricing import CalculatedPrices


class MatchDecision(BaseSchema):
    """A preview row after human review, as submitted to apply."""

    product_id: str
    supplier_code: str = ""
    new_prices: CalculatedPrices = CalculatedPrices()
    availability: Optional[int] = None
    is_confirmed: bool = False


class OutcomeStatus(str, Enum):
    UPDATED = "updated"
    FAILED = "failed"
    SKIPPED = "skipped"


class ItemOutcome(BaseSchema):
    """Final state of one decision."""

    product_id: str
    status: OutcomeStatus
    reason: Optional[str] = None

    @classmethod
    def updated(cls, product_id: str) -> "ItemOutcome":
        return cls(product_id=product_id, status=OutcomeStatus.UPDATED)

    @classmethod
    def failed(cls, product_id: str, error: str) -> "ItemOutcome":
        return cls(product_id=product_id, status=OutcomeStatus.FAILED, reason=error)

    @classmethod
    def skipped(cls, product_id: str, reason: str) -> "ItemOutcome":
        return cls(product_id=product_id, status=OutcomeStatus.SKIPPED, reason=reason)


class ApplyStats(BaseSchema):
    """
    Result of an apply call.

    updated + failed + skipped always equals the number of decisions.
    Zero-stock and recalculation fields are independent side effects.
    """

    updated: int = 0
    failed: int = 0
    skipped: int = 0
    zero_stock_set: Optional[int] = None
    zero_stock_error: Optional[str] = None
    recalculated: Optional[int] = None
    recalculate_error: Optional[str] = None
    outcomes: list[ItemOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[ItemOutcome]) -> "ApplyStats":
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1
        return cls(
            updated=counts[OutcomeStatus.UPDATED],
            failed=counts[OutcomeStatus.FAILED],
            skipped=counts[OutcomeStatus.SKIPPED],
            outcomes=outcomes,
        )


class RecalcPriceType(str, Enum):
    """Which stored prices the recalculation sweep converts."""
    PURCHASE = "purchase"
    RETAIL = "retail"
    LIST = "list"
    ALL = "all"


class RecalculationStats(BaseSchema):
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
