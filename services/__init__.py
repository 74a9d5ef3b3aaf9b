"""
Business logic services.

Each service handles one stage of the price update pipeline.
"""

from services.catalog_store import CatalogStore, SupabaseCatalogStore, get_catalog_store
from services.template_service import TemplateService, get_template_service
from services.normalization_service import NormalizationService, get_normalization_service
from services.matcher_chain import MatcherChain, MatchOutcome, DuplicateCodePolicy
from services.fuzzy_matcher import FuzzyAutoMatcher, similarity
from services.recalculation_service import RecalculationService, get_recalculation_service
from services.apply_service import ApplyEngine, get_apply_engine
from services.price_update_service import PriceUpdateService, get_price_update_service

__all__ = [
    "CatalogStore",
    "SupabaseCatalogStore",
    "get_catalog_store",
    "TemplateService",
    "get_template_service",
    "NormalizationService",
    "get_normalization_service",
    "MatcherChain",
    "MatchOutcome",
    "DuplicateCodePolicy",
    "FuzzyAutoMatcher",
    "similarity",
    "RecalculationService",
    "get_recalculation_service",
    "ApplyEngine",
    "get_apply_engine",
    "PriceUpdateService",
    "get_price_update_service",
]
