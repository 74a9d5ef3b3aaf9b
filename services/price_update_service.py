"""
Price update service: orchestrates the reconciliation pipeline.

parse (cached) -> match preview -> manual / fuzzy matching -> confirm -> apply

Each step is a separate call so an operator can review the preview and the
auto-match proposals before anything reaches the catalog.
"""

from typing import Optional
import structlog

from config import settings
from exceptions import ValidationError
from models.apply import ApplyStats, MatchDecision, RecalcPriceType, RecalculationStats
from models.catalog import SUPPLIER_CODE_FIELD, CatalogProduct, ProductFilter
from models.matching import (
    AutoMatchResult,
    ConfirmResult,
    MatchPair,
    MatchPreview,
    MatchResult,
    MatchStatus,
    PreviewItem,
    PriceChanges,
)
from models.price_list import FilePreview, SupplierLineRecord
from models.pricing import CalculatedPrices, PriceCurrencies, PriceType
from models.template import PriceTemplate
from parsers.registry import ParserRegistry, get_parser_registry
from services.apply_service import ApplyEngine, get_apply_engine, template_currencies
from services.catalog_store import CatalogStore, get_catalog_store
from services.fuzzy_matcher import FuzzyAutoMatcher
from services.matcher_chain import DuplicateCodePolicy, MatcherChain
from services.normalization_service import NormalizationService, get_normalization_service
from services.price_calculator import apply_modifiers, price_change
from services.recalculation_service import RecalculationService, get_recalculation_service
from services.template_service import TemplateService, get_template_service

logger = structlog.get_logger(__name__)


class PriceUpdateService:
    """
    Supplier price list reconciliation.

    Collaborators are injected for tests and default to the module
    singletons.
    """

    def __init__(
        self,
        template_service: Optional[TemplateService] = None,
        normalization_service: Optional[NormalizationService] = None,
        store: Optional[CatalogStore] = None,
        parser_registry: Optional[ParserRegistry] = None,
        apply_engine: Optional[ApplyEngine] = None,
        recalculation_service: Optional[RecalculationService] = None,
        matcher: Optional[MatcherChain] = None,
        fuzzy_matcher: Optional[FuzzyAutoMatcher] = None,
    ):
        self.template_service = template_service or get_template_service()
        self.normalization_service = normalization_service or get_normalization_service()
        self.store = store or get_catalog_store()
        self.parser_registry = parser_registry or get_parser_registry()
        self.apply_engine = apply_engine or get_apply_engine()
        self.recalculation_service = recalculation_service or get_recalculation_service()
        self.matcher = matcher or MatcherChain(
            duplicate_policy=DuplicateCodePolicy(settings.duplicate_code_policy)
        )
        self.fuzzy_matcher = fuzzy_matcher or FuzzyAutoMatcher()

    # ===================
    # PARSING
    # ===================

    def parse_and_normalize(
        self,
        template_id: str,
        media_id: Optional[str] = None,
        force_refresh: bool = False,
    ) -> list[SupplierLineRecord]:
        """Normalized rows of a template's price list (cached)."""
        return self.normalization_service.resolve(template_id, media_id, force_refresh)

    def preview_file(self, media_id: str, preview_rows: int = 5) -> FilePreview:
        """First rows of a raw file, for configuring the column mapping."""
        media = self.template_service.get_media(media_id)
        return self.parser_registry.preview(media, preview_rows)

    def supported_types(self) -> dict:
        return {
            "extensions": self.parser_registry.supported_extensions(),
            "parsers": self.parser_registry.parser_info(),
        }

    # ===================
    # MATCHING
    # ===================

    def match_preview(self, template_id: str) -> MatchPreview:
        """
        Match every candidate product against the price list.

        ``matched`` holds one row per candidate product (status matched or
        unmatched); ``unmatched`` holds the price-list lines no product
        claimed.
        """
        template = self.template_service.get(template_id)
        lines = self.normalization_service.resolve(template_id)
        products = self._candidates(template)

        outcome = self.matcher.match(lines, products, template.matched_products)

        currencies = template_currencies(template)
        modifiers = template.config.modifiers
        by_id = {product.id: product for product in products}

        rows = [
            self._product_row(by_id[result.product_id], result, modifiers, currencies)
            for result in outcome.results
        ]
        residue = [
            self._residue_row(line, modifiers, currencies)
            for line in outcome.unmatched_lines
        ]

        logger.info(
            "match_preview_built",
            template_id=template_id,
            products=len(rows),
            residue=len(residue)
        )
        return MatchPreview(matched=rows, unmatched=residue, stats=outcome.stats)

    def update_match(self, template_id: str, product_id: str, supplier_code: str) -> dict[str, str]:
        """Record one manual product -> supplier code pairing."""
        return self.template_service.upsert_matches(template_id, {product_id: supplier_code})

    def auto_match(
        self,
        template_id: str,
        batch_size: int = 50,
        offset: int = 0,
    ) -> AutoMatchResult:
        """Fuzzy proposals for the lines the matcher chain left unclaimed."""
        template = self.template_service.get(template_id)
        lines = self.normalization_service.resolve(template_id)
        products = self._candidates(template)

        outcome = self.matcher.match(lines, products, template.matched_products)
        return self.fuzzy_matcher.auto_match(
            outcome.unmatched_lines,
            products,
            offset=offset,
            batch_size=batch_size,
        )

    def confirm_all_matches(self, template_id: str, matches: list[MatchPair]) -> ConfirmResult:
        """Store reviewed pairs; pairs missing either side are ignored."""
        pairs = {
            match.product_id: match.supplier_code
            for match in matches
            if match.product_id and match.supplier_code
        }
        mapping = self.template_service.upsert_matches(template_id, pairs)
        return ConfirmResult(confirmed=len(pairs), total_mappings=len(mapping))

    # ===================
    # WRITES
    # ===================

    def apply_prices(
        self,
        template_id: str,
        decisions: Optional[list[MatchDecision]] = None,
        user_id: Optional[str] = None,
    ) -> ApplyStats:
        """
        Write reviewed decisions to the catalog.

        With no decisions every matched preview row is applied as confirmed.

        Raises:
            ValidationError: Nothing to apply (no decisions and no matched rows)
        """
        template = self.template_service.get(template_id)

        if not decisions:
            decisions = self._decisions_from_preview(template_id)
            logger.info("apply_all_matched", template_id=template_id, count=len(decisions))

        if not decisions:
            raise ValidationError(
                "No matched products to apply",
                code="NO_MATCHED_PRODUCTS",
                details={"template_id": template_id}
            )

        return self.apply_engine.apply(template, decisions, user_id)

    def recalculate(
        self,
        price_type: RecalcPriceType = RecalcPriceType.RETAIL,
        limit: Optional[int] = None,
    ) -> RecalculationStats:
        return self.recalculation_service.recalculate(price_type, limit)

    # ===================
    # HELPERS
    # ===================

    def _candidates(self, template: PriceTemplate) -> list[CatalogProduct]:
        return self.store.find_products(ProductFilter.from_template(template.config.filters))

    def _decisions_from_preview(self, template_id: str) -> list[MatchDecision]:
        preview = self.match_preview(template_id)
        return [
            MatchDecision(
                product_id=row.product_id,
                supplier_code=row.supplier_code,
                new_prices=row.new_prices,
                availability=row.availability,
                is_confirmed=True,
            )
            for row in preview.matched
            if row.status == MatchStatus.MATCHED and row.product_id
        ]

    @staticmethod
    def _product_row(
        product: CatalogProduct,
        result: MatchResult,
        modifiers: list,
        currencies: PriceCurrencies,
    ) -> PreviewItem:
        current = product.prices.values()
        new = apply_modifiers(result.line, modifiers) if result.line else CalculatedPrices()

        return PreviewItem(
            supplier_code=result.supplier_code,
            supplier_name=result.line.name if result.line else "",
            product_id=product.id,
            product_name=product.name,
            current_kod_postavschika=str(product.custom_fields.get(SUPPLIER_CODE_FIELD) or ""),
            current_prices=current,
            new_prices=new,
            currencies=currencies,
            price_changes=PriceChanges(**{
                t.value: price_change(current.get(t), new.get(t)) for t in PriceType
            }),
            availability=result.line.availability if result.line else None,
            current_stock=product.stock or 0,
            confidence=result.confidence,
            method=result.method,
            is_confirmed=result.is_confirmed,
            status=result.status,
        )

    @staticmethod
    def _residue_row(
        line: SupplierLineRecord,
        modifiers: list,
        currencies: PriceCurrencies,
    ) -> PreviewItem:
        return PreviewItem(
            supplier_code=line.code,
            supplier_name=line.name,
            new_prices=apply_modifiers(line, modifiers),
            currencies=currencies,
            availability=line.availability,
        )


# Singleton instance for convenience
_price_update_service: Optional[PriceUpdateService] = None

def get_price_update_service() -> PriceUpdateService:
    """Get or create PriceUpdateService instance."""
    global _price_update_service
    if _price_update_service is None:
        _price_update_service = PriceUpdateService()
    return _price_update_service
