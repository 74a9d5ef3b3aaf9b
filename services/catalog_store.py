"""
Catalog store adapter.

The reconciliation core talks to the catalog through the CatalogStore
protocol. SupabaseCatalogStore implements it on the ``products`` and
``currencies`` tables, where supplier data lives in the ``custom_fields``
JSON column using flat keys::

    kod_postavschika, purchase_price_value, purchase_price_currency,
    retail_price_value, retail_price_currency, list_price_value, ...

Older rows may still hold the prices nested under ``product_prices``;
those are read transparently and rewritten flat on the next update.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol
import structlog
from supabase import Client

from config import get_supabase_client, settings
from exceptions import CatalogWriteError, DatabaseError
from models.catalog import (
    SUPPLIER_CODE_FIELD,
    BasePrices,
    CatalogProduct,
    ProductFilter,
    ProductPatch,
)
from models.pricing import PriceAttributes, PriceType, PriceValue

logger = structlog.get_logger(__name__)

PRODUCT_COLUMNS = "id, name, stock, custom_fields, price, purchase_prices, list_price"
LEGACY_PRICES_FIELD = "product_prices"


class CatalogStore(Protocol):
    """What the reconciliation core needs from the catalog."""

    def find_products(self, product_filter: ProductFilter) -> list[CatalogProduct]:
        ...

    def find_products_with_prices(self, limit: int) -> list[CatalogProduct]:
        ...

    def update_products(self, patches: list[ProductPatch]) -> None:
        """Write all patches or none. Raises CatalogWriteError."""
        ...

    def load_currency_factors(self) -> dict[str, float]:
        ...


# ===================
# ATTRIBUTE LAYOUT
# ===================

def _value_key(price_type: PriceType) -> str:
    return f"{price_type.value}_price_value"


def _currency_key(price_type: PriceType) -> str:
    return f"{price_type.value}_price_currency"


def _stored_decimal(raw: Any) -> Optional[Decimal]:
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def read_price_attributes(
    custom_fields: dict[str, Any],
    default_currency: str,
    product_id: Optional[str] = None,
) -> PriceAttributes:
    """
    Read stored prices from custom fields.

    Flat keys win; the nested legacy block is used only when no flat value
    is present at all. A value that is not a number reads as an empty slot.
    """
    source = custom_fields
    if not any(custom_fields.get(_value_key(t)) is not None for t in PriceType):
        legacy = custom_fields.get(LEGACY_PRICES_FIELD)
        if isinstance(legacy, dict):
            source = legacy

    slots = {}
    for price_type in PriceType:
        raw = source.get(_value_key(price_type))
        if raw is None or raw == "":
            slots[price_type.value] = PriceValue()
            continue
        value = _stored_decimal(raw)
        if value is None:
            logger.warning(
                "invalid_stored_price",
                product_id=product_id,
                price_type=price_type.value,
                value=str(raw)
            )
            slots[price_type.value] = PriceValue()
            continue
        slots[price_type.value] = PriceValue(
            value=value,
            currency=source.get(_currency_key(price_type)) or default_currency,
        )
    return PriceAttributes(**slots)


def flatten_price_fields(prices: PriceAttributes) -> dict[str, Any]:
    """Flat custom-field entries for every price slot that has a value."""
    fields: dict[str, Any] = {}
    for price_type in PriceType:
        slot = prices.get(price_type)
        if slot.value is None:
            continue
        fields[_value_key(price_type)] = float(slot.value)
        fields[_currency_key(price_type)] = slot.currency
    return fields


def _base_price_entry(value: Decimal, currency_id: str) -> list[dict]:
    amount = float(value)
    return [{"currency_id": currency_id, "gross": amount, "net": amount, "linked": False}]


class SupabaseCatalogStore:
    """CatalogStore backed by Supabase tables."""

    def __init__(self, client: Optional[Client] = None):
        self.db = client or get_supabase_client()
        self.table = "products"

    # ===================
    # READ OPERATIONS
    # ===================

    def find_products(self, product_filter: ProductFilter) -> list[CatalogProduct]:
        """
        Products matching the template filters, ordered by id.

        Raises:
            DatabaseError: If the query fails
        """
        logger.debug(
            "finding_catalog_products",
            categories=len(product_filter.categories),
            manufacturers=len(product_filter.manufacturers),
            excluded=len(product_filter.exclude_ids)
        )

        try:
            query = self.db.table(self.table).select(PRODUCT_COLUMNS)

            if product_filter.categories:
                query = query.overlaps("category_ids", product_filter.categories)
            if product_filter.manufacturers:
                query = query.in_("manufacturer_id", product_filter.manufacturers)
            if product_filter.equipment_types:
                query = query.in_("custom_fields->>equipment_type", product_filter.equipment_types)
            if product_filter.supplier:
                query = query.eq("custom_fields->>supplier", product_filter.supplier)
            if product_filter.exclude_ids:
                query = query.not_.in_("id", product_filter.exclude_ids)

            result = (
                query
                .order("id")
                .limit(product_filter.limit or settings.product_scan_limit)
                .execute()
            )

            return [self._to_product(row) for row in result.data]

        except Exception as e:
            logger.error("find_catalog_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def find_products_with_prices(self, limit: int) -> list[CatalogProduct]:
        """Products carrying any stored supplier price (flat or legacy)."""
        try:
            result = (
                self.db.table(self.table)
                .select(PRODUCT_COLUMNS)
                .or_(
                    "custom_fields->>purchase_price_value.not.is.null,"
                    "custom_fields->>retail_price_value.not.is.null,"
                    "custom_fields->>list_price_value.not.is.null,"
                    f"custom_fields->>{LEGACY_PRICES_FIELD}.not.is.null"
                )
                .order("id")
                .limit(limit)
                .execute()
            )
            return [self._to_product(row) for row in result.data]

        except Exception as e:
            logger.error("find_priced_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def load_currency_factors(self) -> dict[str, float]:
        """{iso_code: factor} for every configured currency."""
        try:
            result = self.db.table("currencies").select("iso_code, factor").execute()
            return {
                row["iso_code"]: float(row["factor"])
                for row in result.data
                if row.get("iso_code") and row.get("factor")
            }
        except Exception as e:
            logger.error("load_currency_factors_failed", error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def update_products(self, patches: list[ProductPatch]) -> None:
        """
        Apply patches in one upsert.

        Current rows are read first so that custom fields are merged rather
        than replaced and every upserted row has the same columns.

        Raises:
            CatalogWriteError: If any product is missing or the write fails
        """
        if not patches:
            return

        product_ids = [patch.id for patch in patches]
        logger.info("updating_catalog_products", count=len(patches))

        try:
            result = (
                self.db.table(self.table)
                .select(PRODUCT_COLUMNS)
                .in_("id", product_ids)
                .execute()
            )
            current = {row["id"]: row for row in result.data}

            missing = [pid for pid in product_ids if pid not in current]
            if missing:
                raise CatalogWriteError(
                    f"{len(missing)} products no longer exist",
                    product_ids=missing
                )

            rows = [self._merge(current[patch.id], patch) for patch in patches]
            self.db.table(self.table).upsert(rows, on_conflict="id").execute()

        except CatalogWriteError:
            raise
        except Exception as e:
            logger.error(
                "update_catalog_products_failed",
                count=len(patches),
                error=str(e)
            )
            raise CatalogWriteError(str(e), product_ids=product_ids)

        logger.info("catalog_products_updated", count=len(patches))

    # ===================
    # ROW MAPPING
    # ===================

    @staticmethod
    def _to_product(row: dict) -> CatalogProduct:
        custom_fields = row.get("custom_fields") or {}
        return CatalogProduct(
            id=row["id"],
            name=row.get("name") or "",
            stock=row.get("stock"),
            custom_fields=custom_fields,
            prices=read_price_attributes(custom_fields, settings.default_currency, row["id"]),
        )

    @staticmethod
    def _merge(row: dict, patch: ProductPatch) -> dict:
        custom_fields = dict(row.get("custom_fields") or {})
        if patch.supplier_code is not None:
            custom_fields[SUPPLIER_CODE_FIELD] = patch.supplier_code
        if patch.prices is not None:
            custom_fields.update(flatten_price_fields(patch.prices))
            custom_fields.pop(LEGACY_PRICES_FIELD, None)

        merged = {
            "id": row["id"],
            "name": row.get("name"),
            "stock": patch.stock if patch.stock is not None else row.get("stock"),
            "custom_fields": custom_fields,
            "price": row.get("price"),
            "purchase_prices": row.get("purchase_prices"),
            "list_price": row.get("list_price"),
        }

        base: Optional[BasePrices] = patch.base_prices
        if base is not None:
            if base.price is not None:
                merged["price"] = _base_price_entry(base.price, settings.base_currency)
            if base.purchase_price is not None:
                merged["purchase_prices"] = _base_price_entry(base.purchase_price, settings.base_currency)
            if base.list_price is not None:
                merged["list_price"] = _base_price_entry(base.list_price, settings.base_currency)

        return merged


# Singleton instance for convenience
_catalog_store: Optional[SupabaseCatalogStore] = None

def get_catalog_store() -> SupabaseCatalogStore:
    """Get or create SupabaseCatalogStore instance."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = SupabaseCatalogStore()
    return _catalog_store
