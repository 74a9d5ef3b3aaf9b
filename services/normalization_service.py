"""
Normalization cache.

Decides whether the parsed rows stored on a template can be reused for a
media file or whether the file must be parsed again, and stores a fresh
parse together with the media fingerprint it came from.
"""

from typing import Optional
import structlog

from config import settings
from exceptions import ConfigurationError, EmptyDataError
from models.price_list import LINE_RECORDS, ParserConfig, SupplierLineRecord
from models.template import NormalizedCache, PriceTemplate
from parsers.registry import ParserRegistry, get_parser_registry
from services.template_service import TemplateService, get_template_service

logger = structlog.get_logger(__name__)


class NormalizationService:
    """Cache-aware access to the normalized rows of a price list."""

    def __init__(
        self,
        template_service: Optional[TemplateService] = None,
        parser_registry: Optional[ParserRegistry] = None,
    ):
        self.template_service = template_service or get_template_service()
        self.parser_registry = parser_registry or get_parser_registry()

    def resolve(
        self,
        template_id: str,
        media_id: Optional[str] = None,
        force_refresh: bool = False,
    ) -> list[SupplierLineRecord]:
        """
        Get the normalized rows for a template's price list.

        Args:
            template_id: Price template ID
            media_id: Media file ID (defaults to the template's selected media)
            force_refresh: Parse again even if the cache is valid

        Returns:
            Normalized supplier line records, in file order

        Raises:
            TemplateNotFoundError: Unknown template
            MediaNotFoundError: Unknown media
            ConfigurationError: No media selected, or column mapping empty
            EmptyDataError: File parsed but produced no rows
            StaleCacheError: A concurrent parse stored its result first
        """
        template = self.template_service.get(template_id)
        media_id = media_id or template.config.selected_media_id

        if not media_id:
            raise ConfigurationError(
                "No media file selected in template",
                template_id=template_id
            )

        media = self.template_service.get_media(media_id)

        if not force_refresh and template.cache.is_valid_for(media):
            logger.info(
                "normalized_cache_hit",
                template_id=template_id,
                media_id=media_id,
                version=template.cache.version
            )
            return LINE_RECORDS.validate_json(template.cache.normalized_data)

        blob = LINE_RECORDS.dump_json(self._parse(template, media)).decode("utf-8")

        self.template_service.save_cache(
            template_id,
            NormalizedCache(
                normalized_data=blob,
                last_import_media_id=media.id,
                last_import_media_updated_at=media.updated_at,
            ),
            expected_version=template.cache.version,
        )

        # Same path as a cache hit, so both return identical rows
        return LINE_RECORDS.validate_json(blob)

    def _parse(self, template: PriceTemplate, media) -> list[SupplierLineRecord]:
        config = template.config

        # Not configured and configured-empty look the same here
        if not config.column_mapping:
            raise ConfigurationError(
                "Column mapping is not configured. Configure column mapping before preview.",
                template_id=template.id
            )

        logger.info(
            "normalized_cache_miss",
            template_id=template.id,
            media_id=media.id,
            cached_media_id=template.cache.last_import_media_id
        )

        records = self.parser_registry.parse(
            media,
            ParserConfig(
                start_row=config.start_row or settings.default_start_row,
                column_mapping=config.column_mapping,
            ),
        )

        if not records:
            raise EmptyDataError(template.id, media.id)

        return records


# Singleton instance for convenience
_normalization_service: Optional[NormalizationService] = None

def get_normalization_service() -> NormalizationService:
    """Get or create NormalizationService instance."""
    global _normalization_service
    if _normalization_service is None:
        _normalization_service = NormalizationService()
    return _normalization_service
