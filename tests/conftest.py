"""
Shared test fixtures.

Provides a chainable in-memory Supabase mock and service fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

# Settings are loaded at import time and require Supabase credentials
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import MagicMock, patch
from typing import Generator, Optional

from tests.factories import TemplateFactory, MediaFactory

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class _NegatedFilters:
    """Backs ``query.not_.in_(...)``."""

    def __init__(self, query: "MockSupabaseQuery"):
        self._query = query

    def in_(self, column, values):
        values = list(values)
        self._query._filters.append(lambda row: row.get(column) not in values)
        return self._query


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    ``eq``/``in_``/``is_``/``not_.in_`` filter on plain columns; JSON path filters
    (``custom_fields->>x``), ``overlaps`` and ``or_`` are accepted and ignored.
    Updates only touch rows that pass the filters, so an update that matches
    nothing returns no data.
    """

    def __init__(self, table: "MockSupabaseTable"):
        self._table = table
        self._filters = []
        self._update: Optional[dict] = None
        self._upsert: Optional[list] = None
        self._limit: Optional[int] = None
        self._operation = "select"

    def select(self, *args, **kwargs):
        return self

    def update(self, data: dict):
        self._update = data
        self._operation = "update"
        return self

    def upsert(self, rows, on_conflict: str = "id"):
        self._upsert = rows if isinstance(rows, list) else [rows]
        self._operation = "upsert"
        return self

    def eq(self, column, value):
        if "->" not in column:
            self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        if "->" not in column:
            values = list(values)
            self._filters.append(lambda row: row.get(column) in values)
        return self

    def is_(self, column, value):
        if "->" not in column and value == "null":
            self._filters.append(lambda row: row.get(column) is None)
        return self

    @property
    def not_(self):
        return _NegatedFilters(self)

    def overlaps(self, column, values):
        return self

    def or_(self, filters):
        return self

    def order(self, column, **kwargs):
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self) -> MockSupabaseResponse:
        error = self._table.errors.get(self._operation)
        if error is not None:
            raise error

        if self._operation == "upsert":
            self._table.upserts.append(self._upsert)
            return MockSupabaseResponse(data=self._upsert)

        rows = [row for row in self._table.data if all(f(row) for f in self._filters)]

        if self._operation == "update":
            updated = []
            for row in rows:
                row.update(self._update)
                updated.append(dict(row))
            self._table.updates.append(self._update)
            return MockSupabaseResponse(data=updated)

        if self._limit is not None:
            rows = rows[:self._limit]
        return MockSupabaseResponse(data=[dict(row) for row in rows])


class MockSupabaseTable:
    """Mock Supabase table that remembers the writes made to it."""

    def __init__(self, data: list = None):
        self.data = [dict(row) for row in (data or [])]
        self.updates: list[dict] = []
        self.upserts: list[list] = []
        self.errors: dict[str, Exception] = {}

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self).select(*args, **kwargs)

    def update(self, data):
        return MockSupabaseQuery(self).update(data)

    def upsert(self, rows, on_conflict: str = "id"):
        return MockSupabaseQuery(self).upsert(rows, on_conflict=on_conflict)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Configure mock data for a table."""
        self._tables[table_name] = MockSupabaseTable(data)

    def set_table_error(self, table_name: str, error: Exception, operation: str = "select"):
        """Make one operation on a table raise."""
        self.table(table_name).errors[operation] = error

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table (created empty on first use)."""
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable()
        return self._tables[name]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "name": "Widget", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.template_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.catalog_store.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


@pytest.fixture
def mock_store() -> MagicMock:
    """CatalogStore double; configure return values per test."""
    store = MagicMock()
    store.find_products.return_value = []
    store.find_products_with_prices.return_value = []
    store.load_currency_factors.return_value = {}
    store.update_products.return_value = None
    return store


@pytest.fixture
def mock_template_service() -> MagicMock:
    """TemplateService double."""
    return MagicMock()


@pytest.fixture
def sample_template_row() -> dict:
    """Price template row with a column mapping and selected media."""
    return TemplateFactory.create_row(id="tpl-1", selected_media_id="media-1")


@pytest.fixture
def sample_media_row() -> dict:
    """CSV media row."""
    return MediaFactory.create_row(id="media-1")


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
