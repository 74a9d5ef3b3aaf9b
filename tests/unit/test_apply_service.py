"""
Unit tests for the apply engine.

Run: pytest tests/unit/test_apply_service.py -v
"""

import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from services.apply_service import ApplyEngine, build_patch, resolve_stock
from models.apply import MatchDecision, OutcomeStatus, RecalcPriceType, RecalculationStats
from models.pricing import CalculatedPrices
from models.template import AvailabilityAction
from exceptions import CatalogWriteError, DatabaseError, RecalculationError

from tests.factories import CatalogProductFactory, TemplateFactory


def decision(product_id: str, confirmed: bool = True, availability=None, retail="110.00", code=None):
    return MatchDecision(
        product_id=product_id,
        supplier_code=code or f"S-{product_id}",
        new_prices=CalculatedPrices(retail=Decimal(retail) if retail else None),
        availability=availability,
        is_confirmed=confirmed,
    )


@pytest.fixture
def recalculation_service():
    service = MagicMock()
    service.recalculate.return_value = RecalculationStats(processed=4, updated=4)
    return service


@pytest.fixture
def engine(mock_store, mock_template_service, recalculation_service):
    return ApplyEngine(mock_store, mock_template_service, recalculation_service)


class TestApplyAccounting:
    """updated + failed + skipped == len(decisions)"""

    def test_unconfirmed_decisions_are_skipped(self, engine, mock_store):
        """Three unconfirmed decisions: skipped=3, nothing written."""
        # Arrange
        template = TemplateFactory.create()
        decisions = [decision(f"p{i}", confirmed=False) for i in range(3)]

        # Act
        stats = engine.apply(template, decisions, "user-1")

        # Assert
        assert stats.skipped == 3
        assert stats.updated == 0
        assert stats.failed == 0
        mock_store.update_products.assert_not_called()

    def test_confirmed_decisions_written_in_one_batch(self, engine, mock_store):
        # Arrange
        template = TemplateFactory.create()
        decisions = [decision("p1"), decision("p2"), decision("p3", confirmed=False)]

        # Act
        stats = engine.apply(template, decisions, "user-1")

        # Assert
        assert mock_store.update_products.call_count == 1
        written = mock_store.update_products.call_args[0][0]
        assert [patch.id for patch in written] == ["p1", "p2"]
        assert (stats.updated, stats.failed, stats.skipped) == (2, 0, 1)
        assert [o.status for o in stats.outcomes].count(OutcomeStatus.UPDATED) == 2

    def test_failed_batch_marks_every_confirmed_item_failed(self, engine, mock_store, mock_template_service):
        """A failing batch of 7: failed=7, updated=0, mapping untouched."""
        # Arrange
        template = TemplateFactory.create()
        decisions = [decision(f"p{i}") for i in range(7)]
        mock_store.update_products.side_effect = CatalogWriteError("store unavailable")

        # Act & Assert
        with pytest.raises(CatalogWriteError) as exc_info:
            engine.apply(template, decisions, "user-1")

        stats = exc_info.value.stats
        assert stats.failed == 7
        assert stats.updated == 0
        assert all(o.reason == "store unavailable" for o in stats.outcomes)
        mock_template_service.mark_applied.assert_not_called()

    def test_failed_batch_keeps_skipped_counts(self, engine, mock_store):
        # Arrange
        template = TemplateFactory.create()
        decisions = [decision("p1"), decision("p2", confirmed=False)]
        mock_store.update_products.side_effect = CatalogWriteError("boom")

        # Act & Assert
        with pytest.raises(CatalogWriteError) as exc_info:
            engine.apply(template, decisions)

        stats = exc_info.value.stats
        assert (stats.updated, stats.failed, stats.skipped) == (0, 1, 1)


class TestApplyPatches:
    """Patch contents: supplier code, prices, stock."""

    def test_patch_carries_code_and_template_currencies(self):
        # Arrange
        template = TemplateFactory.create(
            price_currencies={"purchase": "USD", "retail": "UAH", "list": "EUR"}
        )
        d = MatchDecision(
            product_id="p1",
            supplier_code="A1",
            new_prices=CalculatedPrices(purchase=Decimal("5.00"), retail=Decimal("9.99")),
            is_confirmed=True,
        )

        # Act
        patch = build_patch(d, template)

        # Assert
        assert patch.supplier_code == "A1"
        assert patch.prices.purchase.currency == "USD"
        assert patch.prices.retail.value == Decimal("9.99")
        assert patch.prices.list.value is None
        assert patch.stock is None

    def test_default_currency_when_template_has_none(self):
        # Arrange
        template = TemplateFactory.create()

        # Act
        patch = build_patch(decision("p1"), template)

        # Assert
        assert patch.prices.retail.currency == "UAH"

    @pytest.mark.parametrize("action,availability,expected", [
        (AvailabilityAction.DONT_CHANGE, 12, None),
        (AvailabilityAction.SET_FROM_PRICE, 12, 12),
        (AvailabilityAction.SET_FROM_PRICE, -4, 0),
        (AvailabilityAction.SET_FROM_PRICE, None, 0),
        (AvailabilityAction.SET_1000, None, 1000),
    ])
    def test_resolve_stock(self, action, availability, expected):
        assert resolve_stock(action, availability) == expected

    def test_set_from_price_without_availability_writes_zero(self, engine, mock_store):
        # Arrange
        template = TemplateFactory.create(availability_action="set_from_price")

        # Act
        engine.apply(template, [decision("p1", availability=None)])

        # Assert
        assert mock_store.update_products.call_args[0][0][0].stock == 0


class TestApplySideEffects:
    """Template stamp, zero-stock sweep and recalculation."""

    def test_confirmed_pairs_join_mapping(self, engine, mock_template_service):
        # Arrange
        template = TemplateFactory.create(matched_products={"old": "X9", "p1": "STALE"})

        # Act
        engine.apply(template, [decision("p1", code="A1"), decision("p2", confirmed=False)], "user-5")

        # Assert
        template_id, mapping, user_id = mock_template_service.mark_applied.call_args[0]
        assert template_id == "tpl-1"
        assert mapping == {"old": "X9", "p1": "A1"}
        assert user_id == "user-5"

    def test_zero_stock_sweep_in_sub_batches(self, engine, mock_store, monkeypatch):
        """Failed sub-batches are skipped and not counted."""
        # Arrange
        monkeypatch.setattr("services.apply_service.settings.stock_sweep_batch_size", 2)
        template = TemplateFactory.create(zero_stock_for_missing=True)
        mock_store.find_products.return_value = CatalogProductFactory.create_batch(5)
        calls = []

        def update(patches):
            calls.append(patches)
            if len(calls) == 3:  # second sweep chunk
                raise CatalogWriteError("chunk failed")

        mock_store.update_products.side_effect = update

        # Act
        stats = engine.apply(template, [decision("p1")])

        # Assert
        sweep_chunks = calls[1:]
        assert [len(c) for c in sweep_chunks] == [2, 2, 1]
        assert all(p.stock == 0 for c in sweep_chunks for p in c)
        assert stats.zero_stock_set == 3
        product_filter = mock_store.find_products.call_args[0][0]
        assert product_filter.exclude_ids == ["p1"]

    def test_zero_stock_lookup_failure_is_reported(self, engine, mock_store):
        # Arrange
        template = TemplateFactory.create(zero_stock_for_missing=True)
        mock_store.find_products.side_effect = DatabaseError("select", "timeout")

        # Act
        stats = engine.apply(template, [decision("p1")])

        # Assert
        assert stats.updated == 1
        assert stats.zero_stock_set is None
        assert "timeout" in stats.zero_stock_error

    def test_no_sweep_when_nothing_updated(self, engine, mock_store):
        # Arrange
        template = TemplateFactory.create(zero_stock_for_missing=True)

        # Act
        engine.apply(template, [decision("p1", confirmed=False)])

        # Assert
        mock_store.find_products.assert_not_called()

    def test_recalculates_all_after_update(self, engine, recalculation_service):
        # Arrange
        template = TemplateFactory.create()

        # Act
        stats = engine.apply(template, [decision("p1")])

        # Assert
        recalculation_service.recalculate.assert_called_once_with(RecalcPriceType.ALL)
        assert stats.recalculated == 4

    def test_recalculation_failure_is_soft(self, engine, recalculation_service):
        # Arrange
        template = TemplateFactory.create()
        recalculation_service.recalculate.side_effect = RecalculationError("no currencies")

        # Act
        stats = engine.apply(template, [decision("p1")])

        # Assert
        assert stats.updated == 1
        assert stats.recalculate_error == "no currencies"

    def test_no_recalculation_when_nothing_updated(self, engine, recalculation_service):
        # Arrange
        template = TemplateFactory.create()

        # Act
        stats = engine.apply(template, [decision("p1", confirmed=False)])

        # Assert
        recalculation_service.recalculate.assert_not_called()
        assert stats.recalculated is None

    def test_stamp_failure_raises_with_final_stats(self, engine, mock_store, mock_template_service, recalculation_service):
        """Products were written: the error carries the counts and recalculation still runs."""
        # Arrange
        template = TemplateFactory.create()
        mock_template_service.mark_applied.side_effect = DatabaseError("update", "connection reset")

        # Act & Assert
        with pytest.raises(DatabaseError) as exc_info:
            engine.apply(template, [decision("p1"), decision("p2"), decision("p3", confirmed=False)])

        stats = exc_info.value.stats
        assert (stats.updated, stats.failed, stats.skipped) == (2, 0, 1)
        assert stats.recalculated == 4
        assert mock_store.update_products.call_count == 1
        recalculation_service.recalculate.assert_called_once_with(RecalcPriceType.ALL)
