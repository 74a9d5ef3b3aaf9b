"""
Currency recalculation sweep.

Converts the supplier prices stored on products into base-currency catalog
prices using the current currency factors. Safe to run repeatedly: the same
stored prices and factors always produce the same base prices.
"""

from decimal import Decimal
from typing import Optional
import structlog

from config import settings
from exceptions import CatalogWriteError, DatabaseError, RecalculationError
from models.apply import RecalcPriceType, RecalculationStats
from models.catalog import BasePrices, CatalogProduct, ProductPatch
from models.pricing import PriceType, PriceValue
from services.catalog_store import CatalogStore, get_catalog_store
from services.price_calculator import round_price

logger = structlog.get_logger(__name__)

# Which base price column each supplier price feeds
BASE_PRICE_FIELDS = {
    PriceType.RETAIL: "price",
    PriceType.PURCHASE: "purchase_price",
    PriceType.LIST: "list_price",
}


def to_base_currency(price: PriceValue, factors: dict[str, float]) -> Optional[Decimal]:
    """
    Convert a stored price to the base currency.

    Unknown currencies use factor 1.0.
    """
    if price.value is None:
        return None
    currency = price.currency or settings.default_currency
    factor = Decimal(str(factors.get(currency, 1.0)))
    return round_price(price.value / factor)


class RecalculationService:
    """Batch conversion of stored supplier prices into catalog base prices."""

    def __init__(self, store: Optional[CatalogStore] = None):
        self.store = store or get_catalog_store()

    def recalculate(
        self,
        price_type: RecalcPriceType = RecalcPriceType.RETAIL,
        limit: Optional[int] = None,
        dry_run: bool = False,
    ) -> RecalculationStats:
        """
        Recalculate base prices.

        Args:
            price_type: purchase, retail, list or all
            limit: Max products to scan (defaults to the configured limit)
            dry_run: Count what would change without writing

        Returns:
            RecalculationStats; a failed write batch moves its count from
            updated to errors and the sweep continues
        """
        price_type = RecalcPriceType(price_type)

        try:
            factors = self.store.load_currency_factors()
            products = self.store.find_products_with_prices(limit or settings.recalculation_limit)
        except DatabaseError as e:
            raise RecalculationError(
                f"Could not load recalculation input: {e.message}",
                {"price_type": price_type.value}
            )

        logger.info(
            "recalculation_started",
            price_type=price_type.value,
            products=len(products),
            currencies=len(factors),
            dry_run=dry_run
        )

        stats = RecalculationStats()
        pending: list[ProductPatch] = []

        for product in products:
            if not product.prices.has_any():
                stats.skipped += 1
                continue

            patch = self._build_patch(product, price_type, factors)
            if patch is None:
                stats.skipped += 1
            else:
                pending.append(patch)
                stats.updated += 1
            stats.processed += 1

            if len(pending) >= settings.write_batch_size:
                self._flush(pending, stats, dry_run)
                pending = []

        if pending:
            self._flush(pending, stats, dry_run)

        logger.info(
            "recalculation_complete",
            processed=stats.processed,
            updated=stats.updated,
            skipped=stats.skipped,
            errors=stats.errors
        )
        return stats

    def _build_patch(
        self,
        product: CatalogProduct,
        price_type: RecalcPriceType,
        factors: dict[str, float],
    ) -> Optional[ProductPatch]:
        if price_type == RecalcPriceType.ALL:
            targets = list(PriceType)
        else:
            targets = [PriceType(price_type.value)]

        base = {}
        for target in targets:
            value = to_base_currency(product.prices.get(target), factors)
            if value is not None:
                base[BASE_PRICE_FIELDS[target]] = value

        if not base:
            return None
        return ProductPatch(id=product.id, base_prices=BasePrices(**base))

    def _flush(self, batch: list[ProductPatch], stats: RecalculationStats, dry_run: bool) -> None:
        if dry_run:
            return
        try:
            self.store.update_products(batch)
        except CatalogWriteError as e:
            logger.warning("recalculation_batch_failed", count=len(batch), error=e.message)
            stats.errors += len(batch)
            stats.updated -= len(batch)


# Singleton instance for convenience
_recalculation_service: Optional[RecalculationService] = None

def get_recalculation_service() -> RecalculationService:
    """Get or create RecalculationService instance."""
    global _recalculation_service
    if _recalculation_service is None:
        _recalculation_service = RecalculationService()
    return _recalculation_service
