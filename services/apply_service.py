"""
Apply engine: commits reviewed matches to the catalog.

Flow:
1. Unconfirmed decisions are skipped and never reach the store
2. Confirmed decisions become product patches written in ONE batch
3. On success the pairs join the template's confirmed mapping
4. Optionally zero the stock of candidates the file no longer lists
5. Stamp the template and recalculate base prices

A failed batch leaves the catalog and the template mapping as they were.
A failed stamp is raised last, with the final stats attached.
"""

from typing import Optional
import structlog

from config import settings
from exceptions import AppError, CatalogWriteError, DatabaseError
from models.apply import ApplyStats, ItemOutcome, MatchDecision, RecalcPriceType
from models.catalog import ProductFilter, ProductPatch
from models.pricing import PriceAttributes, PriceCurrencies, PriceType, PriceValue
from models.template import AvailabilityAction, PriceTemplate
from services.catalog_store import CatalogStore, get_catalog_store
from services.recalculation_service import RecalculationService, get_recalculation_service
from services.template_service import TemplateService, get_template_service

logger = structlog.get_logger(__name__)


def resolve_stock(action: AvailabilityAction, availability: Optional[int]) -> Optional[int]:
    """New stock for a product under the template's availability policy (None = unchanged)."""
    if action == AvailabilityAction.SET_FROM_PRICE:
        return max(0, int(availability)) if availability is not None else 0
    if action == AvailabilityAction.SET_1000:
        return settings.restock_quantity
    return None


def template_currencies(template: PriceTemplate) -> PriceCurrencies:
    return template.config.price_currencies or PriceCurrencies.uniform(settings.default_currency)


def build_patch(decision: MatchDecision, template: PriceTemplate) -> ProductPatch:
    """Product patch for one confirmed decision."""
    currencies = template_currencies(template)

    slots = {}
    for price_type in PriceType:
        value = decision.new_prices.get(price_type)
        if value is not None:
            slots[price_type.value] = PriceValue(value=value, currency=currencies.get(price_type))

    return ProductPatch(
        id=decision.product_id,
        supplier_code=decision.supplier_code,
        prices=PriceAttributes(**slots),
        stock=resolve_stock(template.config.filters.availability_action, decision.availability),
    )


class ApplyEngine:
    """Writes confirmed decisions and runs the post-apply side effects."""

    def __init__(
        self,
        store: Optional[CatalogStore] = None,
        template_service: Optional[TemplateService] = None,
        recalculation_service: Optional[RecalculationService] = None,
    ):
        self.store = store or get_catalog_store()
        self.template_service = template_service or get_template_service()
        self.recalculation_service = recalculation_service or get_recalculation_service()

    def apply(
        self,
        template: PriceTemplate,
        decisions: list[MatchDecision],
        actor: Optional[str] = None,
    ) -> ApplyStats:
        """
        Apply reviewed decisions.

        Args:
            template: Price template the decisions belong to
            decisions: Preview rows after human review
            actor: User ID recorded as applied_by_user_id

        Returns:
            ApplyStats where updated + failed + skipped == len(decisions)

        Raises:
            CatalogWriteError: The batch write failed; ``.stats`` carries the
                final counts (updated=0, failed=len(batch))
            AppError: Stamping the template failed after the catalog write;
                recalculation has still run and ``.stats`` carries the counts
        """
        outcomes = []
        patches = []
        confirmed_pairs = {}

        for decision in decisions:
            if not decision.is_confirmed:
                outcomes.append(ItemOutcome.skipped(decision.product_id, "not_confirmed"))
                continue
            patches.append(build_patch(decision, template))
            confirmed_pairs[decision.product_id] = decision.supplier_code

        logger.info(
            "applying_prices",
            template_id=template.id,
            confirmed=len(patches),
            skipped=len(outcomes)
        )

        try:
            if patches:
                self.store.update_products(patches)
        except CatalogWriteError as e:
            outcomes.extend(ItemOutcome.failed(patch.id, e.message) for patch in patches)
            e.stats = ApplyStats.from_outcomes(outcomes)
            logger.error(
                "apply_batch_failed",
                template_id=template.id,
                failed=len(patches),
                error=e.message
            )
            raise

        outcomes.extend(ItemOutcome.updated(patch.id) for patch in patches)
        stats = ApplyStats.from_outcomes(outcomes)
        mapping = {**template.matched_products, **confirmed_pairs}

        if template.config.filters.zero_stock_for_missing and stats.updated > 0:
            self._zero_missing_stock(template, [d.product_id for d in decisions], stats)

        stamp_error: Optional[AppError] = None
        try:
            self.template_service.mark_applied(template.id, mapping, actor)
        except AppError as e:
            logger.error(
                "apply_template_stamp_failed",
                template_id=template.id,
                updated=stats.updated,
                error=e.message
            )
            stamp_error = e

        # Runs even when the stamp failed
        if stats.updated > 0:
            try:
                recalc = self.recalculation_service.recalculate(RecalcPriceType.ALL)
                stats.recalculated = recalc.updated
            except AppError as e:
                logger.warning("post_apply_recalculation_failed", template_id=template.id, error=e.message)
                stats.recalculate_error = e.message

        if stamp_error is not None:
            stamp_error.stats = stats
            raise stamp_error

        logger.info(
            "prices_applied",
            template_id=template.id,
            updated=stats.updated,
            skipped=stats.skipped,
            zero_stock_set=stats.zero_stock_set
        )
        return stats

    def _zero_missing_stock(
        self,
        template: PriceTemplate,
        decided_ids: list[str],
        stats: ApplyStats,
    ) -> None:
        """Set stock to 0 on candidates outside the decision set; sub-batch failures are skipped."""
        try:
            products = self.store.find_products(
                ProductFilter.from_template(template.config.filters, exclude_ids=decided_ids)
            )
        except DatabaseError as e:
            logger.warning("zero_stock_lookup_failed", template_id=template.id, error=e.message)
            stats.zero_stock_error = e.message
            return

        batch_size = settings.stock_sweep_batch_size
        written = 0

        for start in range(0, len(products), batch_size):
            chunk = products[start:start + batch_size]
            try:
                self.store.update_products([ProductPatch(id=p.id, stock=0) for p in chunk])
                written += len(chunk)
            except CatalogWriteError as e:
                logger.warning(
                    "zero_stock_batch_failed",
                    template_id=template.id,
                    count=len(chunk),
                    error=e.message
                )

        stats.zero_stock_set = written


# Singleton instance for convenience
_apply_engine: Optional[ApplyEngine] = None

def get_apply_engine() -> ApplyEngine:
    """Get or create ApplyEngine instance."""
    global _apply_engine
    if _apply_engine is None:
        _apply_engine = ApplyEngine()
    return _apply_engine
