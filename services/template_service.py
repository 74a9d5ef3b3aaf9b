"""
Price template repository.

Reads templates and media rows and performs the template mutations of the
reconciliation pipeline: the versioned cache write, confirmed-mapping
upserts and the applied stamp.
"""

from datetime import datetime
from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import (
    DatabaseError,
    MediaNotFoundError,
    StaleCacheError,
    TemplateNotFoundError,
)
from models.price_list import Media
from models.template import NormalizedCache, PriceTemplate

logger = structlog.get_logger(__name__)


class TemplateService:
    """Price template persistence."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "price_templates"
        self.media_table = "media"

    # ===================
    # READ OPERATIONS
    # ===================

    def get(self, template_id: str) -> PriceTemplate:
        """
        Get a price template by ID.

        Raises:
            TemplateNotFoundError: If the template doesn't exist
        """
        logger.debug("getting_price_template", template_id=template_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", template_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_price_template_failed", template_id=template_id, error=str(e))
            raise DatabaseError("select", str(e), {"template_id": template_id})

        if not result.data:
            raise TemplateNotFoundError(template_id)

        return PriceTemplate.from_row(result.data[0])

    def get_media(self, media_id: str) -> Media:
        """
        Get a price list media row.

        Raises:
            MediaNotFoundError: If the media doesn't exist
        """
        try:
            result = (
                self.db.table(self.media_table)
                .select("*")
                .eq("id", media_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_media_failed", media_id=media_id, error=str(e))
            raise DatabaseError("select", str(e), {"media_id": media_id})

        if not result.data:
            raise MediaNotFoundError(media_id)

        return Media(**result.data[0])

    # ===================
    # WRITE OPERATIONS
    # ===================

    def save_cache(
        self,
        template_id: str,
        cache: NormalizedCache,
        expected_version: Optional[int],
    ) -> NormalizedCache:
        """
        Compare-and-swap the normalization cache.

        Blob, fingerprint and version are written in a single update that only
        matches while the stored version is still ``expected_version``. A row
        whose version column is still NULL is matched with ``is null``.

        Returns:
            The cache record as stored (version incremented)

        Raises:
            StaleCacheError: Another writer got there first
        """
        stored = cache.model_copy(update={"version": (expected_version or 0) + 1})
        updated_at = stored.last_import_media_updated_at

        try:
            query = (
                self.db.table(self.table)
                .update({
                    "normalized_data": stored.normalized_data,
                    "last_import_media_id": stored.last_import_media_id,
                    "last_import_media_updated_at": updated_at.isoformat() if updated_at else None,
                    "cache_version": stored.version,
                })
                .eq("id", template_id)
            )
            if expected_version is None:
                query = query.is_("cache_version", "null")
            else:
                query = query.eq("cache_version", expected_version)
            result = query.execute()
        except Exception as e:
            logger.error("save_template_cache_failed", template_id=template_id, error=str(e))
            raise DatabaseError("update", str(e), {"template_id": template_id})

        if not result.data:
            logger.warning(
                "template_cache_write_conflict",
                template_id=template_id,
                expected_version=expected_version
            )
            raise StaleCacheError(template_id, expected_version)

        logger.info(
            "template_cache_saved",
            template_id=template_id,
            media_id=stored.last_import_media_id,
            version=stored.version
        )
        return stored

    def upsert_matches(self, template_id: str, pairs: dict[str, str]) -> dict[str, str]:
        """
        Merge product_id -> supplier_code pairs into the confirmed mapping.

        Last write wins per product; no concurrency check is made.

        Returns:
            The full mapping after the merge
        """
        template = self.get(template_id)
        mapping = {**template.matched_products, **pairs}
        self._update(template_id, {"matched_products": mapping})

        logger.info(
            "matched_products_updated",
            template_id=template_id,
            upserted=len(pairs),
            total=len(mapping)
        )
        return mapping

    def mark_applied(self, template_id: str, matched_products: dict[str, str], user_id: Optional[str]) -> None:
        """Store the mapping after an apply together with who applied it and when."""
        self._update(template_id, {
            "matched_products": matched_products,
            "applied_at": datetime.utcnow().isoformat(),
            "applied_by_user_id": user_id,
        })

    def _update(self, template_id: str, data: dict) -> None:
        try:
            result = (
                self.db.table(self.table)
                .update(data)
                .eq("id", template_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_price_template_failed", template_id=template_id, error=str(e))
            raise DatabaseError("update", str(e), {"template_id": template_id})

        if not result.data:
            raise TemplateNotFoundError(template_id)


# Singleton instance for convenience
_template_service: Optional[TemplateService] = None

def get_template_service() -> TemplateService:
    """Get or create TemplateService instance."""
    global _template_service
    if _template_service is None:
        _template_service = TemplateService()
    return _template_service
