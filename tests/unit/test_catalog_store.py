"""
Unit tests for the Supabase catalog store adapter.

Run: pytest tests/unit/test_catalog_store.py -v
"""

import pytest
from decimal import Decimal

from services.catalog_store import (
    SupabaseCatalogStore,
    flatten_price_fields,
    read_price_attributes,
)
from models.catalog import BasePrices, ProductFilter, ProductPatch
from models.pricing import PriceAttributes, PriceValue
from exceptions import CatalogWriteError, DatabaseError

from tests.factories import CatalogProductFactory


class TestPriceAttributeLayout:
    """Flat and legacy custom-field shapes."""

    def test_reads_flat_fields(self):
        # Arrange
        fields = {
            "retail_price_value": 120.5,
            "retail_price_currency": "USD",
            "purchase_price_value": "80",
        }

        # Act
        prices = read_price_attributes(fields, "UAH")

        # Assert
        assert prices.retail == PriceValue(value=Decimal("120.5"), currency="USD")
        assert prices.purchase.currency == "UAH"
        assert prices.list.value is None

    def test_reads_legacy_nested_block(self):
        # Arrange
        fields = {"product_prices": {"list_price_value": 15, "list_price_currency": "EUR"}}

        # Act
        prices = read_price_attributes(fields, "UAH")

        # Assert
        assert prices.list == PriceValue(value=Decimal("15"), currency="EUR")

    def test_flat_fields_win_over_legacy(self):
        # Arrange
        fields = {
            "retail_price_value": 10,
            "product_prices": {"retail_price_value": 99},
        }

        # Act
        prices = read_price_attributes(fields, "UAH")

        # Assert
        assert prices.retail.value == Decimal("10")

    @pytest.mark.parametrize("raw", ["12,50", "n/a", "NaN", "Infinity"])
    def test_unparseable_value_is_empty_slot(self, raw):
        prices = read_price_attributes({"retail_price_value": raw}, "UAH", "p1")
        assert prices.retail == PriceValue()

    def test_flatten_skips_empty_slots(self):
        # Arrange
        prices = PriceAttributes(retail=PriceValue(value=Decimal("12.30"), currency="UAH"))

        # Act
        fields = flatten_price_fields(prices)

        # Assert
        assert fields == {"retail_price_value": 12.3, "retail_price_currency": "UAH"}


class TestFindProducts:
    """Tests for SupabaseCatalogStore.find_products()"""

    def test_maps_rows_to_products(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("products", [
            CatalogProductFactory.create_row(id="p1", name="Widget", stock=4, custom_fields={
                "kod_postavschika": " a1 ",
                "retail_price_value": 50,
                "retail_price_currency": "UAH",
            })
        ])

        # Act
        products = SupabaseCatalogStore().find_products(ProductFilter())

        # Assert
        assert len(products) == 1
        assert products[0].supplier_code == "A1"
        assert products[0].stock == 4
        assert products[0].prices.retail.value == Decimal("50")

    def test_excludes_ids(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("products", [
            CatalogProductFactory.create_row(id="p1"),
            CatalogProductFactory.create_row(id="p2"),
        ])

        # Act
        products = SupabaseCatalogStore().find_products(ProductFilter(exclude_ids=["p1"]))

        # Assert
        assert [p.id for p in products] == ["p2"]

    def test_malformed_stored_price_reads_as_empty(self, mock_db, mock_supabase):
        """One bad value must not hide the other candidates."""
        # Arrange
        mock_supabase.set_table_data("products", [
            CatalogProductFactory.create_row(id="p1", custom_fields={
                "retail_price_value": "12,50",
                "purchase_price_value": 8,
            }),
            CatalogProductFactory.create_row(id="p2", custom_fields={"retail_price_value": 20}),
        ])

        # Act
        products = SupabaseCatalogStore().find_products(ProductFilter())

        # Assert
        assert [p.id for p in products] == ["p1", "p2"]
        assert products[0].prices.retail.value is None
        assert products[0].prices.purchase.value == Decimal("8")
        assert products[1].prices.retail.value == Decimal("20")

    def test_uses_injected_client(self, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("products", [CatalogProductFactory.create_row(id="p7")])

        # Act
        products = SupabaseCatalogStore(mock_supabase).find_products(ProductFilter())

        # Assert
        assert [p.id for p in products] == ["p7"]

    def test_query_failure_raises_database_error(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_error("products", RuntimeError("timeout"))

        # Act & Assert
        with pytest.raises(DatabaseError):
            SupabaseCatalogStore().find_products(ProductFilter())


class TestLoadCurrencyFactors:

    def test_returns_factor_map(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("currencies", [
            {"iso_code": "EUR", "factor": 1},
            {"iso_code": "UAH", "factor": "45.5"},
            {"iso_code": "XXX", "factor": None},
        ])

        # Act
        factors = SupabaseCatalogStore().load_currency_factors()

        # Assert
        assert factors == {"EUR": 1.0, "UAH": 45.5}


class TestUpdateProducts:
    """Tests for SupabaseCatalogStore.update_products()"""

    def test_single_upsert_merges_custom_fields(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("products", [
            CatalogProductFactory.create_row(id="p1", stock=2, custom_fields={
                "color": "oak",
                "product_prices": {"retail_price_value": 1},
            }),
            CatalogProductFactory.create_row(id="p2", stock=9),
        ])
        patches = [
            ProductPatch(
                id="p1",
                supplier_code="A1",
                prices=PriceAttributes(retail=PriceValue(value=Decimal("110.00"), currency="UAH")),
                stock=0,
            ),
            ProductPatch(id="p2", supplier_code="B2"),
        ]

        # Act
        SupabaseCatalogStore().update_products(patches)

        # Assert
        upserts = mock_supabase.table("products").upserts
        assert len(upserts) == 1
        first, second = upserts[0]
        assert first["custom_fields"] == {
            "color": "oak",
            "kod_postavschika": "A1",
            "retail_price_value": 110.0,
            "retail_price_currency": "UAH",
        }
        assert first["stock"] == 0
        assert second["stock"] == 9
        assert second["custom_fields"]["kod_postavschika"] == "B2"

    def test_missing_product_fails_whole_batch(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("products", [CatalogProductFactory.create_row(id="p1")])
        patches = [ProductPatch(id="p1", stock=1), ProductPatch(id="gone", stock=1)]

        # Act & Assert
        with pytest.raises(CatalogWriteError) as exc_info:
            SupabaseCatalogStore().update_products(patches)

        assert exc_info.value.details["product_ids"] == ["gone"]
        assert mock_supabase.table("products").upserts == []

    def test_write_failure_raises_catalog_write_error(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("products", [CatalogProductFactory.create_row(id="p1")])
        mock_supabase.set_table_error("products", RuntimeError("constraint"), operation="upsert")

        # Act & Assert
        with pytest.raises(CatalogWriteError) as exc_info:
            SupabaseCatalogStore().update_products([ProductPatch(id="p1", stock=3)])

        assert exc_info.value.status_code == 502

    def test_base_prices_written_in_base_currency(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("products", [CatalogProductFactory.create_row(id="p1")])
        patch = ProductPatch(id="p1", base_prices=BasePrices(price=Decimal("50.00")))

        # Act
        SupabaseCatalogStore().update_products([patch])

        # Assert
        row = mock_supabase.table("products").upserts[0][0]
        assert row["price"] == [{"currency_id": "EUR", "gross": 50.0, "net": 50.0, "linked": False}]
        assert row["purchase_prices"] is None

    def test_empty_batch_is_noop(self, mock_db, mock_supabase):
        SupabaseCatalogStore().update_products([])
        assert mock_supabase.table("products").upserts == []
