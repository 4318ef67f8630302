"""
Tests for the work-order cost snapshot as maintained by WorkOrderService.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from mfg_kernel.exceptions import WorkOrderNotFoundError
from mfg_modules.workorders import IssueItem, MaterialLineInput, PieceLineInput, WorkOrderStatus


@pytest.fixture
def reference_order(work_orders, make_product, test_actor_id, clock):
    """
    Released order planning 2 units of a 50.00 material and 10 pieces,
    with no machine category.
    """
    material = make_product(stock=Decimal("5"), unit_cost=Decimal("50.00"))
    clock.advance()

    def _create(machine_category=None):
        order = work_orders.create_work_order(
            test_actor_id,
            materials=[MaterialLineInput(material.sku, Decimal("2"))],
            pieces=[PieceLineInput("Eje", Decimal("10"))],
            machine_category=machine_category,
        )
        order = work_orders.release(order.id, test_actor_id)
        return order, material

    return _create


class TestCostSnapshot:

    def test_reference_scenario(self, work_orders, reference_order, test_actor_id):
        order, material = reference_order()

        work_orders.issue_materials(order.id, [IssueItem(material.sku, Decimal("2"))], test_actor_id)
        work_orders.log_production(order.id, Decimal("3"), test_actor_id)
        updated = work_orders.record_pieces(order.id, order.pieces[0].id, Decimal("4"), test_actor_id)

        assert updated.status is WorkOrderStatus.IN_PROGRESS
        assert updated.cost_materials == Decimal("100.00")
        assert updated.cost_labor == Decimal("0.00")
        # 3 h * 10.00 rent + 4 pieces * 2.50 tooling
        assert updated.cost_overhead == Decimal("40.00")
        assert updated.cost_total == Decimal("140.00")
        assert updated.costed_at is not None

    def test_snapshot_follows_every_write(self, work_orders, reference_order, test_actor_id):
        order, material = reference_order()

        after_issue = work_orders.issue_materials(
            order.id, [IssueItem(material.sku, Decimal("1"))], test_actor_id,
        )
        assert after_issue.cost_materials == Decimal("50.00")

        work_orders.log_production(order.id, Decimal("2"), test_actor_id)
        assert work_orders.get_work_order(order.id).cost_overhead == Decimal("20.00")

    def test_machine_category_rates(self, work_orders, reference_order, test_actor_id):
        order, _ = reference_order(machine_category="TORNO CNC")

        work_orders.log_production(order.id, Decimal("2"), test_actor_id)
        snapshot = work_orders.recompute_costs(order.id, test_actor_id)

        assert snapshot.labor == Decimal("10.86")  # 2 * 5.43
        assert snapshot.overhead == Decimal("20.92")  # 2 * (10.00 + 0.46)
        assert snapshot.total == Decimal("31.78")

    def test_recompute_is_idempotent(self, work_orders, reference_order, test_actor_id):
        order, material = reference_order()
        work_orders.issue_materials(order.id, [IssueItem(material.sku, Decimal("2"))], test_actor_id)
        work_orders.log_production(order.id, Decimal("1.5"), test_actor_id)

        first = work_orders.recompute_costs(order.id)
        second = work_orders.recompute_costs(order.id)

        assert first.as_tuple() == second.as_tuple()

    def test_recompute_picks_up_new_rates(self, work_orders, costing, reference_order, test_actor_id):
        order, _ = reference_order()
        work_orders.log_production(order.id, Decimal("2"), test_actor_id)

        costing.set_param("rentPerHour", Decimal("15.00"), test_actor_id)
        snapshot = work_orders.recompute_costs(order.id, test_actor_id)

        assert snapshot.overhead == Decimal("30.00")
        assert work_orders.get_work_order(order.id).cost_total == Decimal("30.00")

    def test_recompute_unknown_order(self, work_orders):
        with pytest.raises(WorkOrderNotFoundError):
            work_orders.recompute_costs(uuid4())

    def test_snapshot_is_logged_with_rate_sources(
        self, work_orders, reference_order, test_actor_id, captured_logs,
    ):
        order, _ = reference_order()

        work_orders.recompute_costs(order.id, test_actor_id)

        written = [r for r in captured_logs() if r["message"] == "cost_snapshot_written"]
        assert written[-1]["total"] == "0.00"
        assert written[-1]["rate_sources"]["rent"]["source"] == "param"
