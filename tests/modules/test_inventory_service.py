"""
Tests for InventoryService.

Covers:
- Product catalog
- Receipts, adjustments and the availability check
- Weighted-average valuation and the bulk re-baseline
- Stock positions and kardex
"""

from decimal import Decimal

import pytest

from mfg_kernel.domain.movements import MovementKind
from mfg_kernel.exceptions import (
    InsufficientStockError,
    NegativeUnitCostError,
    ProductNotFoundError,
    UnknownSkuError,
    ValidationError,
    ZeroQuantityError,
)


class TestCatalog:

    def test_register_product(self, inventory, test_actor_id):
        info = inventory.register_product(
            "BAR-1020", "Round bar 1020", test_actor_id,
            category="BARRAS", reference_cost=Decimal("8.40"),
        )

        assert info.sku == "BAR-1020"
        assert info.unit == "UND"
        assert inventory.get_product("BAR-1020").reference_cost == Decimal("8.40")

    def test_duplicate_sku_rejected(self, inventory, make_product, test_actor_id):
        sku = make_product().sku

        with pytest.raises(ValidationError, match="already exists"):
            inventory.register_product(sku, "Again", test_actor_id)

    @pytest.mark.parametrize("sku, name", [("", "Name"), ("  ", "Name"), ("SKU-X", "")])
    def test_blank_fields_rejected(self, inventory, test_actor_id, sku, name):
        with pytest.raises(ValidationError):
            inventory.register_product(sku, name, test_actor_id)

    def test_negative_reference_cost_rejected(self, inventory, test_actor_id):
        with pytest.raises(NegativeUnitCostError):
            inventory.register_product("NEG-1", "Negative", test_actor_id, reference_cost=Decimal("-1"))

    def test_set_reference_cost(self, inventory, make_product, test_actor_id):
        sku = make_product(unit_cost=Decimal("1.00")).sku

        info = inventory.set_reference_cost(sku, Decimal("2.75"), test_actor_id)

        assert info.reference_cost == Decimal("2.75")

    def test_get_unknown_product(self, inventory):
        with pytest.raises(ProductNotFoundError):
            inventory.get_product("GHOST")


class TestMovements:

    def test_adjust_in_and_out(self, inventory, make_product, test_actor_id, clock):
        sku = make_product().sku

        inventory.adjust_stock(sku, Decimal("10"), test_actor_id, unit_cost=Decimal("3"))
        clock.advance()
        out = inventory.adjust_stock(sku, Decimal("-4"), test_actor_id)

        assert out.kind is MovementKind.MANUAL_ADJUSTMENT_OUT
        assert out.quantity == Decimal("-4")
        # Outgoing adjustments default to the reference cost.
        assert out.unit_cost == Decimal("3")
        assert inventory.get_stock(sku) == Decimal("6")

    def test_adjust_zero_rejected(self, inventory, make_product, test_actor_id):
        sku = make_product().sku

        with pytest.raises(ZeroQuantityError):
            inventory.adjust_stock(sku, Decimal("0"), test_actor_id)

    def test_outgoing_beyond_stock_rejected(self, inventory, make_product, test_actor_id):
        sku = make_product(stock=Decimal("2")).sku

        with pytest.raises(InsufficientStockError) as exc_info:
            inventory.adjust_stock(sku, Decimal("-3"), test_actor_id)

        assert exc_info.value.code == "INSUFFICIENT_STOCK"
        assert inventory.get_stock(sku) == Decimal("2")

    def test_adjust_unknown_sku(self, inventory, test_actor_id):
        with pytest.raises(UnknownSkuError):
            inventory.adjust_stock("GHOST", Decimal("1"), test_actor_id, unit_cost=Decimal("1"))

    def test_receive_stock_refreshes_reference_cost(self, inventory, make_product, test_actor_id, clock):
        sku = make_product(unit_cost=Decimal("1.00")).sku

        inventory.receive_stock(sku, Decimal("10"), Decimal("5.00"), test_actor_id)
        clock.advance()
        inventory.receive_stock(sku, Decimal("30"), Decimal("7.00"), test_actor_id)

        assert inventory.get_stock(sku) == Decimal("40")
        assert inventory.get_product(sku).reference_cost == Decimal("6.50")

    @pytest.mark.parametrize("quantity, error", [
        (Decimal("0"), ZeroQuantityError),
        (Decimal("-2"), ValidationError),
    ])
    def test_receive_non_positive_rejected(self, inventory, make_product, test_actor_id, quantity, error):
        sku = make_product().sku

        with pytest.raises(error):
            inventory.receive_stock(sku, quantity, Decimal("1"), test_actor_id)

    def test_append_movement_is_raw(self, inventory, make_product, test_actor_id):
        sku = make_product().sku

        record = inventory.append_movement(
            sku, MovementKind.MANUAL_ADJUSTMENT_OUT, Decimal("-3"), Decimal("1"), test_actor_id,
        )

        # No availability check on the raw path.
        assert record.quantity == Decimal("-3")
        assert inventory.get_stock(sku) == Decimal("-3")


class TestValuation:

    def test_weighted_average_uses_recent_window(self, inventory, make_product, test_actor_id, clock):
        sku = make_product().sku
        for quantity, cost in [("10", "1.00"), ("10", "2.00"), ("10", "3.00")]:
            clock.advance()
            inventory.receive_stock(sku, Decimal(quantity), Decimal(cost), test_actor_id)

        assert inventory.compute_weighted_average_cost(sku) == Decimal("2.00")
        assert inventory.compute_weighted_average_cost(sku, sample_size=2) == Decimal("2.50")
        assert inventory.compute_weighted_average_cost(sku, sample_size=1) == Decimal("3.00")

    def test_no_history_returns_none(self, inventory, make_product):
        sku = make_product().sku

        assert inventory.compute_weighted_average_cost(sku) is None

    def test_invalid_sample_size(self, inventory, make_product):
        sku = make_product().sku

        with pytest.raises(ValidationError):
            inventory.compute_weighted_average_cost(sku, sample_size=0)

    def test_rebaseline(self, inventory, make_product, test_actor_id, clock, captured_logs):
        with_history = make_product(unit_cost=Decimal("1.00")).sku
        without_history = make_product(unit_cost=Decimal("9.99")).sku
        inventory.receive_stock(with_history, Decimal("4"), Decimal("2.00"), test_actor_id)
        clock.advance()
        inventory.receive_stock(with_history, Decimal("4"), Decimal("4.00"), test_actor_id)
        inventory.set_reference_cost(with_history, Decimal("100"), test_actor_id)

        summary = inventory.rebaseline_reference_costs(test_actor_id)

        assert summary.costs[with_history] == Decimal("3.00")
        assert without_history not in summary.costs
        assert inventory.get_product(with_history).reference_cost == Decimal("3.00")
        assert inventory.get_product(without_history).reference_cost == Decimal("9.99")
        assert summary.total == summary.updated + summary.skipped
        assert any(r["message"] == "reference_costs_rebaselined" for r in captured_logs())


class TestReports:

    def test_stock_positions(self, inventory, make_product):
        product = make_product(category="TEST-POSITIONS", stock=Decimal("3"), unit_cost=Decimal("2.50"))

        positions = inventory.list_stock_positions("TEST-POSITIONS")

        assert [p.sku for p in positions] == [product.sku]
        assert positions[0].stock_value == Decimal("7.50")

    def test_kardex(self, inventory, make_product, test_actor_id, clock):
        sku = make_product(stock=Decimal("5")).sku
        clock.advance()
        inventory.adjust_stock(sku, Decimal("-2"), test_actor_id)

        lines = inventory.kardex(sku)

        assert [line.balance for line in lines] == [Decimal("5"), Decimal("3")]
        assert [line.movement.kind for line in lines] == [
            MovementKind.MANUAL_ADJUSTMENT_IN,
            MovementKind.MANUAL_ADJUSTMENT_OUT,
        ]
