"""
Tests for WorkOrderService.

Covers:
- Creation, numbering and validation
- Manual transitions and their guards
- Material issue, production hours, piece completion
- Automatic start and completion
- Cost snapshot maintenance
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from mfg_kernel.domain.document_ref import DocumentRef
from mfg_kernel.domain.movements import MovementKind
from mfg_kernel.exceptions import (
    DuplicateProductError,
    InsufficientStockError,
    InvalidTransitionError,
    PieceLineNotFoundError,
    ProductionExceedsPlanError,
    UnknownSkuError,
    ValidationError,
    WorkOrderNotFoundError,
    ZeroQuantityError,
)
from mfg_kernel.selectors.stock_selector import StockSelector
from mfg_modules.workorders import (
    IssueItem,
    MaterialLineInput,
    PieceLineInput,
    Priority,
    WorkOrderStatus,
)


@pytest.fixture
def steel(make_product):
    """Material with 5 units on hand at 50.00."""
    return make_product(sku="STEEL-1045", stock=Decimal("5"), unit_cost=Decimal("50.00"))


@pytest.fixture
def open_order(work_orders, steel, test_actor_id):
    """Released work order planning 2 units of steel and 10 pieces."""

    def _create(planned=Decimal("2"), pieces=(PieceLineInput("Eje 40mm", Decimal("10")),), **kwargs):
        order = work_orders.create_work_order(
            test_actor_id,
            materials=[MaterialLineInput(steel.sku, planned)],
            pieces=pieces,
            **kwargs,
        )
        return work_orders.release(order.id, test_actor_id)

    return _create


class TestCreateWorkOrder:

    def test_created_in_draft_with_lines(self, work_orders, steel, test_actor_id):
        order = work_orders.create_work_order(
            test_actor_id,
            materials=[MaterialLineInput(steel.sku, Decimal("3"))],
            pieces=[PieceLineInput("Brida", Decimal("4"))],
            priority=Priority.HIGH,
            notes="rush",
        )

        assert order.status is WorkOrderStatus.DRAFT
        assert order.priority is Priority.HIGH
        assert order.code == "OT-202401-0001"
        assert order.materials[0].qty_planned == Decimal("3")
        assert order.materials[0].qty_issued == Decimal("0")
        assert order.pieces[0].description == "Brida"

    def test_codes_are_sequential(self, work_orders, test_actor_id):
        first = work_orders.create_work_order(test_actor_id)
        second = work_orders.create_work_order(test_actor_id)

        assert (first.code, second.code) == ("OT-202401-0001", "OT-202401-0002")

    def test_explicit_code_must_be_unique(self, work_orders, test_actor_id):
        work_orders.create_work_order(test_actor_id, code="OT-CUSTOM")

        with pytest.raises(ValidationError, match="already exists"):
            work_orders.create_work_order(test_actor_id, code="OT-CUSTOM")

    def test_duplicate_material_rejected(self, work_orders, steel, test_actor_id):
        with pytest.raises(DuplicateProductError):
            work_orders.create_work_order(
                test_actor_id,
                materials=[
                    MaterialLineInput(steel.sku, Decimal("1")),
                    MaterialLineInput(steel.sku, Decimal("2")),
                ],
            )

    def test_unknown_material_rejected(self, work_orders, test_actor_id):
        with pytest.raises(UnknownSkuError):
            work_orders.create_work_order(
                test_actor_id, materials=[MaterialLineInput("GHOST", Decimal("1"))],
            )

    @pytest.mark.parametrize("pieces", [
        [PieceLineInput(" ", Decimal("1"))],
        [PieceLineInput("Eje", Decimal("0"))],
    ])
    def test_invalid_piece_lines_rejected(self, work_orders, test_actor_id, pieces):
        with pytest.raises(ValidationError):
            work_orders.create_work_order(test_actor_id, pieces=pieces)

    def test_new_order_has_zero_snapshot_after_release(self, open_order):
        order = open_order()

        assert order.status is WorkOrderStatus.OPEN
        assert order.cost_total == Decimal("0")

    def test_get_unknown_order(self, work_orders):
        with pytest.raises(WorkOrderNotFoundError):
            work_orders.get_work_order(uuid4())


class TestManualTransitions:

    def test_start_requires_minimum_coverage(self, work_orders, open_order, steel, test_actor_id):
        order = open_order(planned=Decimal("10"))
        work_orders.issue_materials(order.id, [IssueItem(steel.sku, Decimal("1"))], test_actor_id)

        with pytest.raises(InvalidTransitionError, match="coverage"):
            work_orders.start(order.id, test_actor_id)

        work_orders.issue_materials(order.id, [IssueItem(steel.sku, Decimal("1"))], test_actor_id)
        started = work_orders.start(order.id, test_actor_id)

        assert work_orders.material_coverage(order.id) == Decimal("0.2")
        assert started.status is WorkOrderStatus.IN_PROGRESS

    def test_complete_requires_all_pieces(self, work_orders, open_order, test_actor_id):
        order = open_order()
        work_orders.log_production(order.id, Decimal("1"), test_actor_id)

        with pytest.raises(InvalidTransitionError, match="piece"):
            work_orders.complete(order.id, test_actor_id)

    def test_complete_without_piece_lines(self, work_orders, open_order, test_actor_id):
        order = open_order(pieces=())
        work_orders.log_production(order.id, Decimal("1"), test_actor_id)

        done = work_orders.complete(order.id, test_actor_id)

        assert done.status is WorkOrderStatus.DONE

    def test_release_twice_rejected(self, work_orders, open_order, test_actor_id):
        order = open_order()

        with pytest.raises(InvalidTransitionError):
            work_orders.release(order.id, test_actor_id)

    def test_cancel(self, work_orders, open_order, test_actor_id):
        order = open_order()

        cancelled = work_orders.cancel(order.id, test_actor_id)

        assert cancelled.status is WorkOrderStatus.CANCELLED

    def test_transition_is_logged(self, work_orders, open_order, test_actor_id, captured_logs):
        order = open_order()
        work_orders.cancel(order.id, test_actor_id)

        transitions = [r for r in captured_logs() if r["message"] == "work_order_transition"]
        assert transitions[-1]["from_state"] == "open"
        assert transitions[-1]["to_state"] == "cancelled"
        assert transitions[-1]["automatic"] is False


class TestIssueMaterials:

    def test_issue_posts_movement_and_updates_line(
        self, session, work_orders, open_order, steel, test_actor_id,
    ):
        order = open_order(planned=Decimal("4"))

        updated = work_orders.issue_materials(order.id, [IssueItem(steel.sku, Decimal("1.5"))], test_actor_id)

        assert updated.materials[0].qty_issued == Decimal("1.5")
        stock = StockSelector(session)
        assert stock.get_stock(steel.sku) == Decimal("3.5")
        movements = stock.movements_for_document(DocumentRef.work_order(order.id))
        assert [(m.kind, m.quantity, m.unit_cost) for m in movements] == [
            (MovementKind.ISSUE_TO_WORK_ORDER, Decimal("-1.5"), Decimal("50.00")),
        ]

    def test_full_coverage_starts_the_order(self, work_orders, open_order, steel, test_actor_id, captured_logs):
        order = open_order(planned=Decimal("2"))

        updated = work_orders.issue_materials(order.id, [IssueItem(steel.sku, Decimal("2"))], test_actor_id)

        assert updated.status is WorkOrderStatus.IN_PROGRESS
        automatic = [
            r for r in captured_logs()
            if r["message"] == "work_order_transition" and r["automatic"]
        ]
        assert automatic[-1]["action"] == "start"

    def test_unplanned_material_gets_a_line(self, work_orders, open_order, make_product, test_actor_id):
        order = open_order()
        extra = make_product(stock=Decimal("3"), unit_cost=Decimal("2.00"))

        updated = work_orders.issue_materials(order.id, [IssueItem(extra.sku, Decimal("1"))], test_actor_id)

        line = next(m for m in updated.materials if m.sku == extra.sku)
        assert line.qty_planned == Decimal("0")
        assert line.qty_issued == Decimal("1")
        # Unplanned material does not count towards coverage.
        assert updated.status is WorkOrderStatus.OPEN

    def test_insufficient_stock_rolls_back_everything(
        self, session, work_orders, open_order, steel, make_product, test_actor_id,
    ):
        order = open_order(planned=Decimal("2"))
        scarce = make_product(stock=Decimal("1"))

        with pytest.raises(InsufficientStockError):
            work_orders.issue_materials(
                order.id,
                [IssueItem(steel.sku, Decimal("1")), IssueItem(scarce.sku, Decimal("2"))],
                test_actor_id,
            )

        assert StockSelector(session).get_stock(steel.sku) == Decimal("5")
        assert work_orders.get_work_order(order.id).materials[0].qty_issued == Decimal("0")

    def test_issue_on_draft_rejected(self, work_orders, steel, test_actor_id):
        order = work_orders.create_work_order(
            test_actor_id, materials=[MaterialLineInput(steel.sku, Decimal("1"))],
        )

        with pytest.raises(InvalidTransitionError):
            work_orders.issue_materials(order.id, [IssueItem(steel.sku, Decimal("1"))], test_actor_id)

    def test_zero_quantity_rejected(self, work_orders, open_order, steel, test_actor_id):
        order = open_order()

        with pytest.raises(ZeroQuantityError):
            work_orders.issue_materials(order.id, [IssueItem(steel.sku, Decimal("0"))], test_actor_id)

    def test_empty_issue_rejected(self, work_orders, open_order, test_actor_id):
        order = open_order()

        with pytest.raises(ValidationError):
            work_orders.issue_materials(order.id, [], test_actor_id)


class TestProductionEvents:

    def test_logging_hours_starts_the_order(self, work_orders, open_order, test_actor_id):
        order = open_order()

        entry = work_orders.log_production(order.id, Decimal("2.5"), test_actor_id, machine="TORNO-01")

        assert entry.hours == Decimal("2.5")
        assert entry.user_id == test_actor_id
        assert work_orders.get_work_order(order.id).status is WorkOrderStatus.IN_PROGRESS
        assert [log.id for log in work_orders.list_production_logs(order.id)] == [entry.id]

    def test_non_positive_hours_rejected(self, work_orders, open_order, test_actor_id):
        order = open_order()

        with pytest.raises(ValidationError):
            work_orders.log_production(order.id, Decimal("0"), test_actor_id)

    def test_no_activity_on_cancelled_order(self, work_orders, open_order, test_actor_id):
        order = open_order()
        work_orders.cancel(order.id, test_actor_id)

        with pytest.raises(InvalidTransitionError):
            work_orders.log_production(order.id, Decimal("1"), test_actor_id)

    def test_recording_all_pieces_completes_the_order(self, work_orders, open_order, test_actor_id):
        order = open_order(pieces=(PieceLineInput("Eje", Decimal("3")),))
        piece_id = order.pieces[0].id

        partial = work_orders.record_pieces(order.id, piece_id, Decimal("2"), test_actor_id)
        assert partial.status is WorkOrderStatus.IN_PROGRESS

        done = work_orders.record_pieces(order.id, piece_id, Decimal("1"), test_actor_id)
        assert done.status is WorkOrderStatus.DONE
        assert done.piece(piece_id).is_complete

    def test_pieces_beyond_plan_rejected(self, work_orders, open_order, test_actor_id):
        order = open_order(pieces=(PieceLineInput("Eje", Decimal("3")),))

        with pytest.raises(ProductionExceedsPlanError):
            work_orders.record_pieces(order.id, order.pieces[0].id, Decimal("4"), test_actor_id)

    def test_unknown_piece_line(self, work_orders, open_order, test_actor_id):
        order = open_order()

        with pytest.raises(PieceLineNotFoundError):
            work_orders.record_pieces(order.id, uuid4(), Decimal("1"), test_actor_id)

    def test_pieces_with_sku_enter_stock(self, session, work_orders, open_order, make_product, test_actor_id):
        finished = make_product(unit_cost=Decimal("80.00"))
        order = open_order(pieces=(PieceLineInput("Eje terminado", Decimal("5"), sku=finished.sku),))

        work_orders.record_pieces(order.id, order.pieces[0].id, Decimal("2"), test_actor_id)

        stock = StockSelector(session)
        assert stock.get_stock(finished.sku) == Decimal("2")
        outputs = stock.movements_for_document(
            DocumentRef.work_order(order.id), kind=MovementKind.WORK_ORDER_OUTPUT,
        )
        assert [(m.quantity, m.unit_cost) for m in outputs] == [(Decimal("2"), Decimal("80.00"))]


class TestShortages:

    def test_shortage_accounts_for_stock_and_issues(self, work_orders, open_order, steel, test_actor_id):
        order = open_order(planned=Decimal("10"))
        work_orders.issue_materials(order.id, [IssueItem(steel.sku, Decimal("3"))], test_actor_id)

        shortages = work_orders.shortages(order.id)

        # need 7, stock 2
        assert [(s.sku, s.quantity) for s in shortages] == [(steel.sku, Decimal("5.000"))]

    def test_no_shortage_when_stock_suffices(self, work_orders, open_order):
        order = open_order(planned=Decimal("2"))

        assert work_orders.shortages(order.id) == []
