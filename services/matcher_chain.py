"""
Matcher chain: pairs catalog products with supplier lines.

Matching runs per candidate product, in catalog order. For each product the
strategies are tried in fixed priority and the first hit wins:

1. ConfirmedMappingStrategy  exact   product's confirmed code is in the file
2. CatalogCodeStrategy       high    product's stored supplier code is in the file
3. NameContainmentStrategy   medium  one name contains the other

A line is claimed by at most one product. Lines never claimed are returned
as the unmatched price-list residue. No clock or randomness is involved, so
identical inputs in identical order give identical output.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import structlog

from exceptions import DuplicateSupplierCodeError
from models.catalog import CatalogProduct
from models.matching import Confidence, MatchMethod, MatchResult, MatchStats
from models.price_list import SupplierLineRecord

logger = structlog.get_logger(__name__)


class DuplicateCodePolicy(str, Enum):
    """What to do when a file repeats a supplier code."""
    FIRST_WINS = "first_wins"
    REJECT = "reject"


def normalize_match_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


@dataclass
class MatchState:
    """
    Lookup tables for one matching run.

    ``code_index`` maps a code to the position of its first line. Positions
    in ``claimed`` are no longer available to later products.
    """

    lines: list[SupplierLineRecord]
    confirmed_map: dict[str, str]
    code_index: dict[str, int] = field(default_factory=dict)
    normalized_names: list[str] = field(default_factory=list)
    claimed: set[int] = field(default_factory=set)
    duplicate_codes: list[str] = field(default_factory=list)

    @classmethod
    def build(cls, lines: list[SupplierLineRecord], confirmed_map: dict[str, str]) -> "MatchState":
        state = cls(lines=lines, confirmed_map=confirmed_map)
        for position, line in enumerate(lines):
            state.normalized_names.append(normalize_match_name(line.name))
            if not line.code:
                continue
            if line.code in state.code_index:
                if line.code not in state.duplicate_codes:
                    state.duplicate_codes.append(line.code)
                continue
            state.code_index[line.code] = position
        return state

    def available_by_code(self, code: str) -> Optional[int]:
        position = self.code_index.get(code)
        if position is None or position in self.claimed:
            return None
        return position


class MatchStrategy:
    """
    One way of finding a line for a product.

    Subclasses implement ``find_line``; the chain claims the line of the
    returned result.
    """

    method: MatchMethod
    confidence: Confidence
    confirms = False

    def try_match(self, product: CatalogProduct, state: MatchState) -> Optional[MatchResult]:
        position = self.find_line(product, state)
        if position is None:
            return None

        line = state.lines[position]
        return MatchResult(
            product_id=product.id,
            supplier_code=line.code,
            confidence=self.confidence,
            method=self.method,
            is_confirmed=self.confirms,
            line_index=position,
            line=line,
        )

    def find_line(self, product: CatalogProduct, state: MatchState) -> Optional[int]:
        raise NotImplementedError


class ConfirmedMappingStrategy(MatchStrategy):
    """A human already confirmed this product's supplier code."""

    method = MatchMethod.MATCHED_PRODUCTS
    confidence = Confidence.EXACT
    confirms = True

    def find_line(self, product: CatalogProduct, state: MatchState) -> Optional[int]:
        code = state.confirmed_map.get(product.id)
        if not code:
            return None
        return state.available_by_code(code)


class CatalogCodeStrategy(MatchStrategy):
    """The product's stored supplier code (upper/trim) equals a line code."""

    method = MatchMethod.CATALOG_CODE
    confidence = Confidence.HIGH

    def find_line(self, product: CatalogProduct, state: MatchState) -> Optional[int]:
        code = product.supplier_code
        if not code:
            return None
        return state.available_by_code(code)


class NameContainmentStrategy(MatchStrategy):
    """First unclaimed line, in file order, whose name contains or is contained in the product name."""

    method = MatchMethod.NAME_SIMILARITY
    confidence = Confidence.MEDIUM

    def find_line(self, product: CatalogProduct, state: MatchState) -> Optional[int]:
        product_name = normalize_match_name(product.name)
        if not product_name:
            return None

        for position, line_name in enumerate(state.normalized_names):
            if not line_name or position in state.claimed:
                continue
            if line_name in product_name or product_name in line_name:
                return position
        return None


@dataclass
class MatchOutcome:
    """Result of one matching run."""

    results: list[MatchResult]
    unmatched_lines: list[SupplierLineRecord]
    stats: MatchStats

    @property
    def matched(self) -> list[MatchResult]:
        return [r for r in self.results if r.line is not None]

    @property
    def unmatched_products(self) -> list[MatchResult]:
        return [r for r in self.results if r.line is None]


STAT_FIELDS = {
    MatchMethod.MATCHED_PRODUCTS: "matched_exact",
    MatchMethod.CATALOG_CODE: "matched_code",
    MatchMethod.NAME_SIMILARITY: "matched_name",
}


class MatcherChain:
    """Runs the strategies in priority order over every candidate product."""

    def __init__(
        self,
        strategies: Optional[list[MatchStrategy]] = None,
        duplicate_policy: DuplicateCodePolicy = DuplicateCodePolicy.FIRST_WINS,
    ):
        self.strategies = strategies if strategies is not None else [
            ConfirmedMappingStrategy(),
            CatalogCodeStrategy(),
            NameContainmentStrategy(),
        ]
        self.duplicate_policy = duplicate_policy

    def match(
        self,
        lines: list[SupplierLineRecord],
        products: list[CatalogProduct],
        confirmed_map: dict[str, str],
    ) -> MatchOutcome:
        """
        Partition products and lines into matched and unmatched.

        Args:
            lines: Normalized supplier lines, in file order
            products: Candidate products, in catalog order
            confirmed_map: Confirmed product_id -> supplier_code mapping

        Returns:
            MatchOutcome with one MatchResult per product (confidence none
            when unmatched), the unclaimed lines and per-method counts

        Raises:
            DuplicateSupplierCodeError: Duplicate codes under the reject policy
        """
        state = MatchState.build(lines, confirmed_map)

        if state.duplicate_codes:
            logger.warning(
                "duplicate_supplier_codes",
                count=len(state.duplicate_codes),
                codes=state.duplicate_codes[:10],
                policy=self.duplicate_policy.value
            )
            if self.duplicate_policy == DuplicateCodePolicy.REJECT:
                raise DuplicateSupplierCodeError(state.duplicate_codes)

        stats = MatchStats(total=len(products))
        results = []

        for product in products:
            result = self._match_product(product, state)
            results.append(result)

            if result.method is None:
                stats.unmatched_products += 1
            else:
                field_name = STAT_FIELDS[result.method]
                setattr(stats, field_name, getattr(stats, field_name) + 1)

        unmatched_lines = [
            line for position, line in enumerate(lines)
            if position not in state.claimed
        ]
        stats.unmatched_lines = len(unmatched_lines)
        stats.unmatched = stats.unmatched_products + stats.unmatched_lines

        logger.info(
            "matching_complete",
            products=stats.total,
            lines=len(lines),
            matched_exact=stats.matched_exact,
            matched_code=stats.matched_code,
            matched_name=stats.matched_name,
            unmatched=stats.unmatched
        )

        return MatchOutcome(results=results, unmatched_lines=unmatched_lines, stats=stats)

    def _match_product(self, product: CatalogProduct, state: MatchState) -> MatchResult:
        for strategy in self.strategies:
            result = strategy.try_match(product, state)
            if result is not None:
                state.claimed.add(result.line_index)
                return result

        return MatchResult(product_id=product.id)
