"""
Fuzzy auto-matcher.

Proposes a product for each leftover price-list line by name similarity.
Proposals are never confirmed and never written; a human reviews them and
sends the accepted ones back through confirm-matches.
"""

from typing import Optional
import structlog
from rapidfuzz.distance import Levenshtein

from config import settings
from models.catalog import CatalogProduct
from models.matching import (
    AutoMatchCandidate,
    AutoMatchResult,
    AutoMatchStats,
    Confidence,
)
from models.price_list import SupplierLineRecord

logger = structlog.get_logger(__name__)

# Names longer than this are cut before the edit distance is computed
MAX_NAME_LENGTH = 255
CONTAINMENT_SCORE = 0.8


def _prepare(name: Optional[str]) -> str:
    return (name or "").strip().lower()[:MAX_NAME_LENGTH]


def similarity(a: str, b: str) -> float:
    """
    Name similarity in [0, 1].

    Containment either way scores at least 0.8; otherwise the score is
    ``1 - levenshtein(a, b) / max(len(a), len(b))``. Distance is counted in
    characters, not bytes.
    """
    a = _prepare(a)
    b = _prepare(b)
    if not a or not b:
        return 0.0

    longest = max(len(a), len(b))
    edit_score = 1 - Levenshtein.distance(a, b) / longest

    if a in b or b in a:
        return max(CONTAINMENT_SCORE, edit_score)
    return edit_score


class FuzzyAutoMatcher:
    """Best-product-per-line name matcher."""

    def __init__(
        self,
        threshold: Optional[float] = None,
        high_threshold: Optional[float] = None,
    ):
        self.threshold = settings.auto_match_threshold if threshold is None else threshold
        self.high_threshold = settings.auto_match_high_threshold if high_threshold is None else high_threshold

    def auto_match(
        self,
        unmatched_lines: list[SupplierLineRecord],
        products: list[CatalogProduct],
        offset: int = 0,
        batch_size: Optional[int] = None,
    ) -> AutoMatchResult:
        """
        Propose a product for each unmatched line.

        Args:
            unmatched_lines: Price-list residue left by the matcher chain
            products: Candidate products, in catalog order
            offset: Skip this many lines of the residue
            batch_size: Only look at this many lines (all when None)

        Returns:
            AutoMatchResult with the candidates and the lines still unmatched
        """
        window = unmatched_lines[offset:]
        if batch_size is not None:
            window = window[:batch_size]

        matches = []
        still_unmatched = []

        for line in window:
            if not line.name:
                still_unmatched.append(line)
                continue

            candidate = self._best_candidate(line, products)
            if candidate is None:
                still_unmatched.append(line)
            else:
                matches.append(candidate)

        stats = AutoMatchStats(
            total_unmatched=len(window),
            auto_matched=len(matches),
            still_unmatched=len(still_unmatched),
        )

        logger.info(
            "auto_match_complete",
            lines=len(window),
            offset=offset,
            products=len(products),
            auto_matched=stats.auto_matched
        )

        return AutoMatchResult(matches=matches, still_unmatched=still_unmatched, stats=stats)

    def _best_candidate(
        self,
        line: SupplierLineRecord,
        products: list[CatalogProduct],
    ) -> Optional[AutoMatchCandidate]:
        best_product = None
        best_score = 0.0

        for product in products:
            score = similarity(line.name, product.name)
            # Strict comparison keeps the first best product in catalog order
            if score > best_score:
                best_score = score
                best_product = product

        if best_product is None or best_score <= self.threshold:
            return None

        return AutoMatchCandidate(
            supplier_code=line.code,
            supplier_name=line.name,
            product_id=best_product.id,
            product_name=best_product.name,
            confidence=Confidence.HIGH if best_score > self.high_threshold else Confidence.MEDIUM,
            score=best_score,
            similarity=round(best_score * 100, 1),
            is_confirmed=False,
        )
