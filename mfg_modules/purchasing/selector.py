"""
Module: mfg_modules.purchasing.selector
Responsibility: Read-side reconciliation of purchasing documents: how much
    of each request line is already on purchase orders, and how much of each
    order line has physically arrived.
Architecture position: Modules > Purchasing > Selectors.  Aggregates rows
    (order lines, ledger receipts) and hands them to
    mfg_engines.reconciliation; returns engine DTOs.  Never writes.

Invariants enforced:
    - Nothing computed here is stored; every call re-derives from source rows.
    - Order lines on CANCELLED orders do not cover request lines.
    - Pending quantities clamp at zero (engine).

Failure modes:
    - PurchaseRequestNotFoundError / PurchaseOrderNotFoundError.
    - InconsistentStateError (logged at ERROR first) when an order line
      references a request line of another request, or an order's net
      received quantity for a product is negative.
"""

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mfg_engines.reconciliation import (
    OrderedLine,
    OrderReceipt,
    RequestCoverage,
    RequestedLine,
    compute_order_receipt,
    compute_request_coverage,
)
from mfg_kernel.exceptions import (
    InconsistentStateError,
    PurchaseOrderNotFoundError,
    PurchaseRequestNotFoundError,
)
from mfg_kernel.logging_config import get_logger
from mfg_kernel.selectors.base import BaseSelector
from mfg_kernel.selectors.stock_selector import StockSelector
from mfg_modules.purchasing.models import PurchaseOrder, PurchaseOrderStatus
from mfg_modules.purchasing.orm import (
    OrderLineModel,
    PurchaseOrderModel,
    PurchaseRequestModel,
)

logger = get_logger("modules.purchasing.selector")


def _inconsistent(entity_type: str, entity_id, reason: str) -> InconsistentStateError:
    logger.error(
        "inconsistent_state_detected",
        extra={"entity_type": entity_type, "entity_id": str(entity_id), "reason": reason},
    )
    return InconsistentStateError(entity_type, str(entity_id), reason)


class PurchaseReconciliationSelector(BaseSelector[PurchaseOrderModel]):
    """Pending-quantity queries for purchase requests and orders."""

    def __init__(self, session: Session):
        super().__init__(session)
        self._stock = StockSelector(session)

    def get_request_line_coverage(self, request_id: UUID) -> RequestCoverage:
        """Requested, covered and pending quantity per request line."""
        request = self.session.get(PurchaseRequestModel, request_id)
        if request is None:
            raise PurchaseRequestNotFoundError(str(request_id))

        line_ids = [line.id for line in request.lines]
        covered: dict[UUID, Decimal] = defaultdict(Decimal)
        if line_ids:
            rows = self.session.execute(
                select(
                    OrderLineModel.id,
                    OrderLineModel.request_line_id,
                    OrderLineModel.quantity,
                    PurchaseOrderModel.request_id,
                    PurchaseOrderModel.status,
                )
                .join(PurchaseOrderModel, OrderLineModel.order_id == PurchaseOrderModel.id)
                .where(OrderLineModel.request_line_id.in_(line_ids))
            ).all()
            for order_line_id, request_line_id, quantity, order_request_id, status in rows:
                if order_request_id != request.id:
                    raise _inconsistent(
                        "OrderLine", order_line_id,
                        f"references request line {request_line_id} of request "
                        f"{request.code} but belongs to an order for another request",
                    )
                if status == PurchaseOrderStatus.CANCELLED.value:
                    continue
                covered[request_line_id] += quantity

        return compute_request_coverage(
            request_id=request.id,
            lines=[
                RequestedLine(line_id=line.id, sku=line.sku, requested=line.quantity)
                for line in request.lines
            ],
            covered_by_line=dict(covered),
        )

    def get_order_line_receipt(self, order_id: UUID) -> OrderReceipt:
        """Ordered, received and pending quantity and amount per order line."""
        order = self.session.get(PurchaseOrderModel, order_id)
        if order is None:
            raise PurchaseOrderNotFoundError(str(order_id))

        received = self._stock.received_by_product(order.id)
        for sku, quantity in received.items():
            if quantity < 0:
                raise _inconsistent(
                    "PurchaseOrder", order.id,
                    f"net received quantity for {sku} is negative ({quantity})",
                )

        return compute_order_receipt(
            order_id=order.id,
            lines=[
                OrderedLine(
                    line_id=line.id,
                    sku=line.sku,
                    ordered=line.quantity,
                    unit_cost=line.unit_cost,
                )
                for line in order.lines
            ],
            received_by_sku=received,
        )

    def orders_for_request(self, request_id: UUID) -> list[PurchaseOrder]:
        rows = self.session.execute(
            select(PurchaseOrderModel)
            .where(PurchaseOrderModel.request_id == request_id)
            .order_by(PurchaseOrderModel.code)
        ).scalars().all()
        return [row.to_dto() for row in rows]
