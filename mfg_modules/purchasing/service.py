"""
Purchasing Module Service (``mfg_modules.purchasing.service``).

Responsibility
--------------
Orchestrates purchase requests (SC), purchase orders (OC) and physical
receipts.  Receipts append ``PURCHASE_RECEIPT`` ledger movements
referencing the order; pending quantities are re-derived by
``PurchaseReconciliationSelector`` on every read and every receipt.

Architecture
------------
Layer: **Modules** -- thin glue over the workflows, the reconciliation
selector and ``StockPoster``.

Invariants
----------
- Each public write method owns its transaction boundary.
- Orders are only created against APPROVED requests.
- A product appears at most once per order.
- A receipt never exceeds the pending quantity of its order line.
- An order moves to RECEIVED exactly when nothing is pending, otherwise to
  PARTIALLY_RECEIVED.

Failure Modes
-------------
- ``PurchaseRequestNotFoundError`` / ``PurchaseOrderNotFoundError`` /
  ``WorkOrderNotFoundError``.
- ``InvalidTransitionError`` for an illegal action in the current status.
- ``DuplicateProductError``, ``ReceiptExceedsPendingError``,
  ``NegativeUnitCostError``, ``ValidationError`` for bad input.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mfg_config import ShopConfig, get_active_config
from mfg_engines.reconciliation import OrderReceipt, RequestCoverage
from mfg_kernel.domain.clock import Clock, SystemClock
from mfg_kernel.domain.document_ref import DocumentRef
from mfg_kernel.domain.rounding import round_money
from mfg_kernel.exceptions import (
    DuplicateProductError,
    InvalidTransitionError,
    NegativeUnitCostError,
    PurchaseOrderNotFoundError,
    PurchaseRequestNotFoundError,
    ReceiptExceedsPendingError,
    UnknownSkuError,
    ValidationError,
)
from mfg_kernel.logging_config import LogContext, get_logger
from mfg_modules._numbering import next_document_code
from mfg_modules._stock_posting import StockPoster
from mfg_modules.purchasing.models import (
    RECEIVABLE_STATUSES,
    OrderLineInput,
    PurchaseOrder,
    PurchaseOrderStatus,
    PurchaseRequest,
    PurchaseRequestStatus,
    ReceiptLineInput,
    ReceiptResult,
    RequestLineInput,
)
from mfg_modules.purchasing.orm import (
    OrderLineModel,
    PurchaseOrderModel,
    PurchaseRequestModel,
    RequestLineModel,
)
from mfg_modules.purchasing.selector import PurchaseReconciliationSelector
from mfg_modules.purchasing.workflows import PURCHASE_ORDER_WORKFLOW, PURCHASE_REQUEST_WORKFLOW
from mfg_modules.workorders.service import WorkOrderService

logger = get_logger("modules.purchasing.service")


class PurchasingService:
    """
    Purchase requests, purchase orders and receipts.

    Transaction boundary: this service commits on success, rolls back on
    failure.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ShopConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._poster = StockPoster(session, self._clock, self._config.inventory)
        self._reconciliation = PurchaseReconciliationSelector(session)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_request(self, request_id: UUID) -> PurchaseRequestModel:
        row = self._session.get(PurchaseRequestModel, request_id)
        if row is None:
            raise PurchaseRequestNotFoundError(str(request_id))
        return row

    def _get_order(self, order_id: UUID) -> PurchaseOrderModel:
        row = self._session.get(PurchaseOrderModel, order_id)
        if row is None:
            raise PurchaseOrderNotFoundError(str(order_id))
        return row

    def _require_products(self, skus) -> None:
        for sku in skus:
            if not self._poster.stock.product_exists(sku):
                raise UnknownSkuError(sku)

    @staticmethod
    def _apply(workflow, row, action: str, actor_id: UUID) -> None:
        transition = workflow.transition_for(row.status, action)
        previous = row.status
        row.status = transition.to_state
        row.updated_by_id = actor_id
        logger.info(
            "purchasing_transition",
            extra={
                "workflow": workflow.name,
                "document_id": str(row.id),
                "code": row.code,
                "action": action,
                "from_state": previous,
                "to_state": transition.to_state,
            },
        )

    # =========================================================================
    # Purchase requests
    # =========================================================================

    def create_request(
        self,
        lines: Sequence[RequestLineInput],
        actor_id: UUID,
        work_order_id: UUID | None = None,
        notes: str | None = None,
        code: str | None = None,
    ) -> PurchaseRequest:
        """Create an OPEN purchase request."""
        if not lines:
            raise ValidationError("A purchase request needs at least one line")
        for line in lines:
            if Decimal(line.quantity) <= 0:
                raise ValidationError(f"Requested quantity for {line.sku} must be positive")
            if line.estimated_unit_cost is not None and Decimal(line.estimated_unit_cost) < 0:
                raise NegativeUnitCostError(line.sku, Decimal(line.estimated_unit_cost))

        try:
            request = self._create_request(lines, actor_id, work_order_id, notes, code)
            dto = request.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "purchase_request_created",
            extra={
                "request_id": str(dto.id),
                "code": dto.code,
                "line_count": len(dto.lines),
                "work_order_id": str(work_order_id) if work_order_id else None,
            },
        )
        return dto

    def _create_request(
        self,
        lines: Sequence[RequestLineInput],
        actor_id: UUID,
        work_order_id: UUID | None,
        notes: str | None,
        code: str | None,
    ) -> PurchaseRequestModel:
        self._require_products(line.sku for line in lines)
        if work_order_id is not None:
            # Raises WorkOrderNotFoundError for an unknown id.
            WorkOrderService(self._session, self._clock, self._config).get_work_order(work_order_id)

        request = PurchaseRequestModel(
            code=code or next_document_code(
                self._session, PurchaseRequestModel.code,
                self._config.purchasing.request_code_prefix, self._clock,
            ),
            status=PURCHASE_REQUEST_WORKFLOW.initial_state,
            work_order_id=work_order_id,
            notes=notes,
            created_by_id=actor_id,
        )
        for position, line in enumerate(lines):
            request.lines.append(
                RequestLineModel(
                    position=position,
                    sku=line.sku,
                    quantity=Decimal(line.quantity),
                    estimated_unit_cost=(
                        None if line.estimated_unit_cost is None
                        else Decimal(line.estimated_unit_cost)
                    ),
                    note=line.note,
                    created_by_id=actor_id,
                )
            )
        self._session.add(request)
        self._session.flush()
        return request

    def create_request_from_shortages(
        self,
        work_order_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> PurchaseRequest:
        """
        Request whatever the work order still needs beyond current stock.

        Estimated costs are the SKUs' reference costs.

        Raises:
            ValidationError: the work order has no shortages.
        """
        work_orders = WorkOrderService(self._session, self._clock, self._config)
        shortages = work_orders.shortages(work_order_id)
        if not shortages:
            raise ValidationError("Work order has no material shortages")

        costs = self._poster.stock.get_reference_costs(s.sku for s in shortages)
        code = work_orders.get_work_order(work_order_id).code
        return self.create_request(
            [
                RequestLineInput(
                    sku=s.sku,
                    quantity=s.quantity,
                    estimated_unit_cost=costs[s.sku],
                )
                for s in shortages
            ],
            actor_id,
            work_order_id=work_order_id,
            notes=notes or f"Shortages for {code}",
        )

    def get_request(self, request_id: UUID) -> PurchaseRequest:
        return self._get_request(request_id).to_dto()

    def approve_request(self, request_id: UUID, actor_id: UUID) -> PurchaseRequest:
        return self._run_request_action(request_id, "approve", actor_id)

    def reject_request(self, request_id: UUID, actor_id: UUID) -> PurchaseRequest:
        return self._run_request_action(request_id, "reject", actor_id)

    def cancel_request(self, request_id: UUID, actor_id: UUID) -> PurchaseRequest:
        return self._run_request_action(request_id, "cancel", actor_id)

    def _run_request_action(self, request_id: UUID, action: str, actor_id: UUID) -> PurchaseRequest:
        try:
            request = self._get_request(request_id)
            self._apply(PURCHASE_REQUEST_WORKFLOW, request, action, actor_id)
            self._session.flush()
            dto = request.to_dto()
            self._session.commit()
            return dto
        except Exception:
            self._session.rollback()
            raise

    def get_request_line_coverage(self, request_id: UUID) -> RequestCoverage:
        return self._reconciliation.get_request_line_coverage(request_id)

    # =========================================================================
    # Purchase orders
    # =========================================================================

    def create_order(
        self,
        request_id: UUID,
        supplier: str,
        lines: Sequence[OrderLineInput],
        actor_id: UUID,
        notes: str | None = None,
        code: str | None = None,
    ) -> PurchaseOrder:
        """
        Create a DRAFT purchase order against an APPROVED request.

        ``total`` = sum of quantity * unit cost, rounded to 2 decimals.

        Raises:
            InvalidTransitionError: the request is not APPROVED.
            DuplicateProductError: a product appears twice.
            ValidationError: blank supplier, no lines, non-positive
                quantities, or a request line that belongs to another
                request or names another product.
        """
        if not (supplier or "").strip():
            raise ValidationError("Supplier is required")
        if not lines:
            raise ValidationError("A purchase order needs at least one line")

        seen: set[str] = set()
        for line in lines:
            if line.sku in seen:
                raise DuplicateProductError(line.sku, "purchase order")
            seen.add(line.sku)
            if Decimal(line.quantity) <= 0:
                raise ValidationError(f"Ordered quantity for {line.sku} must be positive")
            if Decimal(line.unit_cost) < 0:
                raise NegativeUnitCostError(line.sku, Decimal(line.unit_cost))

        try:
            request = self._get_request(request_id)
            if request.status != PurchaseRequestStatus.APPROVED.value:
                raise InvalidTransitionError(
                    PURCHASE_REQUEST_WORKFLOW.name, request.status, "create_order",
                    reason="purchase orders need an approved request",
                )
            self._require_products(line.sku for line in lines)

            request_lines = {line.id: line for line in request.lines}
            for line in lines:
                if line.request_line_id is None:
                    continue
                request_line = request_lines.get(line.request_line_id)
                if request_line is None:
                    raise ValidationError(
                        f"Request line {line.request_line_id} does not belong to {request.code}"
                    )
                if request_line.sku != line.sku:
                    raise ValidationError(
                        f"Request line {line.request_line_id} is for {request_line.sku}, not {line.sku}"
                    )

            order = PurchaseOrderModel(
                code=code or next_document_code(
                    self._session, PurchaseOrderModel.code,
                    self._config.purchasing.order_code_prefix, self._clock,
                ),
                request_id=request.id,
                supplier=supplier.strip(),
                status=PURCHASE_ORDER_WORKFLOW.initial_state,
                total=round_money(
                    sum((Decimal(line.quantity) * Decimal(line.unit_cost) for line in lines), Decimal("0"))
                ),
                notes=notes,
                created_by_id=actor_id,
            )
            for position, line in enumerate(lines):
                order.lines.append(
                    OrderLineModel(
                        position=position,
                        sku=line.sku,
                        quantity=Decimal(line.quantity),
                        unit_cost=Decimal(line.unit_cost),
                        request_line_id=line.request_line_id,
                        created_by_id=actor_id,
                    )
                )
            self._session.add(order)
            self._session.flush()
            dto = order.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "purchase_order_created",
            extra={
                "order_id": str(dto.id),
                "code": dto.code,
                "request_id": str(request_id),
                "supplier": dto.supplier,
                "total": str(dto.total),
            },
        )
        return dto

    def get_order(self, order_id: UUID) -> PurchaseOrder:
        return self._get_order(order_id).to_dto()

    def list_orders_for_request(self, request_id: UUID) -> list[PurchaseOrder]:
        return self._reconciliation.orders_for_request(request_id)

    def issue_order(self, order_id: UUID, actor_id: UUID) -> PurchaseOrder:
        return self._run_order_action(order_id, "issue", actor_id)

    def cancel_order(self, order_id: UUID, actor_id: UUID) -> PurchaseOrder:
        return self._run_order_action(order_id, "cancel", actor_id)

    def _run_order_action(self, order_id: UUID, action: str, actor_id: UUID) -> PurchaseOrder:
        try:
            order = self._get_order(order_id)
            self._apply(PURCHASE_ORDER_WORKFLOW, order, action, actor_id)
            self._session.flush()
            dto = order.to_dto()
            self._session.commit()
            return dto
        except Exception:
            self._session.rollback()
            raise

    def get_order_line_receipt(self, order_id: UUID) -> OrderReceipt:
        return self._reconciliation.get_order_line_receipt(order_id)

    # =========================================================================
    # Receipts
    # =========================================================================

    def receive_order(
        self,
        order_id: UUID,
        actor_id: UUID,
        lines: Sequence[ReceiptLineInput] | None = None,
    ) -> ReceiptResult:
        """
        Receive goods against an ISSUED or PARTIALLY_RECEIVED order.

        Without ``lines`` every pending quantity is received.  Each receipt
        is a ``PURCHASE_RECEIPT`` movement at the order line's unit cost,
        after which the product's reference cost is refreshed to its
        weighted average.

        Raises:
            InvalidTransitionError: the order cannot take receipts.
            ValidationError: a product not on the order, a non-positive
                quantity, or nothing pending.
            ReceiptExceedsPendingError: more than the pending quantity.
        """
        try:
            order = self._get_order(order_id)
            if PurchaseOrderStatus(order.status) not in RECEIVABLE_STATUSES:
                raise InvalidTransitionError(
                    PURCHASE_ORDER_WORKFLOW.name, order.status, "receive",
                    reason="order must be issued or partially received",
                )

            before = self._reconciliation.get_order_line_receipt(order.id)
            if lines is None:
                wanted = [
                    ReceiptLineInput(sku=line.sku, quantity=line.pending)
                    for line in before.lines
                    if line.pending > 0
                ]
                if not wanted:
                    raise ValidationError(f"Nothing is pending on {order.code}")
            else:
                if not lines:
                    raise ValidationError("No receipt lines given")
                wanted = list(lines)

            requested: dict[str, Decimal] = defaultdict(Decimal)
            for item in wanted:
                quantity = Decimal(item.quantity)
                if quantity <= 0:
                    raise ValidationError(f"Received quantity for {item.sku} must be positive")
                try:
                    pending = before.line_for(item.sku).pending
                except KeyError:
                    raise ValidationError(f"{item.sku} is not on {order.code}") from None
                requested[item.sku] += quantity
                if requested[item.sku] > pending:
                    raise ReceiptExceedsPendingError(order.code, item.sku, requested[item.sku], pending)

            unit_costs = {line.sku: line.unit_cost for line in order.lines}
            ref = DocumentRef.purchase_order(order.id)
            movements = []
            with LogContext.bind(document_ref=ref):
                for item in wanted:
                    movements.append(
                        self._poster.post_receipt(
                            item.sku, Decimal(item.quantity), unit_costs[item.sku], actor_id,
                            ref=ref, note=f"Receipt on {order.code}",
                        )
                    )

            after = self._reconciliation.get_order_line_receipt(order.id)
            action = "receive_all" if after.is_fully_received else "receive_partial"
            self._apply(PURCHASE_ORDER_WORKFLOW, order, action, actor_id)
            self._session.flush()
            dto = order.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "purchase_order_received",
            extra={
                "order_id": str(dto.id),
                "code": dto.code,
                "movement_count": len(movements),
                "pending_total": str(after.pending_total),
                "status": dto.status.value,
            },
        )
        return ReceiptResult(order=dto, movements=tuple(movements), receipt=after)
