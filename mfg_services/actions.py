"""
mfg_services.actions -- UI boundary adapter.

Responsibility:
    Wraps the module services so that every operation returns an
    ``ActionResult`` (``ok``, ``message``, optional ``code`` and ``value``)
    instead of raising for expected business failures.

Architecture position:
    Services -- the outermost layer.  May import mfg_modules, mfg_engines,
    mfg_kernel and mfg_config; nothing imports this package.

Invariants enforced:
    - ``ValidationError`` and ``NotFoundError`` (and their subclasses)
      become ``ok=False`` results carrying the exception's ``code``.
    - Every other exception -- ``InconsistentStateError``,
      ``ImmutabilityViolationError``, database errors -- propagates.
    - Each call runs with ``operation`` and ``actor_id`` bound in the log
      context.

Audit relevance:
    Rejected actions are logged as ``action_rejected`` with the error code,
    so refused user input is visible next to the accepted operations.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from mfg_config import ShopConfig, get_active_config
from mfg_kernel.domain.clock import Clock, SystemClock
from mfg_kernel.exceptions import NotFoundError, ValidationError
from mfg_kernel.logging_config import LogContext, get_logger
from mfg_modules.costing import CostingService
from mfg_modules.inventory import InventoryService
from mfg_modules.purchasing import (
    OrderLineInput,
    PurchasingService,
    ReceiptLineInput,
    RequestLineInput,
)
from mfg_modules.workorders import (
    IssueItem,
    MaterialLineInput,
    PieceLineInput,
    Priority,
    WorkOrderService,
)

logger = get_logger("services.actions")


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    message: str
    code: str | None = None
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ok": self.ok, "message": self.message}
        if self.code is not None:
            result["code"] = self.code
        return result


def run_action(
    operation: str,
    fn: Callable[..., Any],
    *args: Any,
    success_message: str = "OK",
    actor_id: UUID | None = None,
    **kwargs: Any,
) -> ActionResult:
    """Call ``fn`` and translate expected failures into an ``ActionResult``."""
    with LogContext.bind(operation=operation, actor_id=actor_id):
        try:
            value = fn(*args, **kwargs)
        except (ValidationError, NotFoundError) as exc:
            logger.warning(
                "action_rejected",
                extra={"operation": operation, "error_code": exc.code, "error": str(exc)},
            )
            return ActionResult(ok=False, message=str(exc), code=exc.code)

        logger.debug("action_succeeded", extra={"operation": operation})
        return ActionResult(ok=True, message=success_message, value=value)


class ShopActions:
    """
    One entry point per user-facing operation.

    Every method returns an ``ActionResult``; ``value`` holds the service's
    return value on success.
    """

    def __init__(
        self,
        session: Session,
        actor_id: UUID,
        clock: Clock | None = None,
        config: ShopConfig | None = None,
    ):
        clock = clock or SystemClock()
        config = config or get_active_config()
        self._actor_id = actor_id
        self.inventory = InventoryService(session, clock, config)
        self.costing = CostingService(session, clock, config)
        self.work_orders = WorkOrderService(session, clock, config)
        self.purchasing = PurchasingService(session, clock, config)

    def _run(self, operation: str, fn: Callable[..., Any], *args: Any,
             success_message: str = "OK", **kwargs: Any) -> ActionResult:
        return run_action(
            operation, fn, *args,
            success_message=success_message, actor_id=self._actor_id, **kwargs,
        )

    # -- inventory -----------------------------------------------------------

    def register_product(self, sku: str, name: str, **kwargs: Any) -> ActionResult:
        return self._run(
            "register_product", self.inventory.register_product, sku, name, self._actor_id,
            success_message=f"Product {sku} registered", **kwargs,
        )

    def adjust_stock(self, sku: str, quantity: Decimal, unit_cost: Decimal | None = None,
                     note: str | None = None) -> ActionResult:
        return self._run(
            "adjust_stock", self.inventory.adjust_stock, sku, quantity, self._actor_id,
            unit_cost=unit_cost, note=note, success_message=f"Stock of {sku} adjusted",
        )

    def stock_positions(self, category: str | None = None) -> ActionResult:
        return self._run("stock_positions", self.inventory.list_stock_positions, category)

    def kardex(self, sku: str, limit: int | None = None) -> ActionResult:
        return self._run("kardex", self.inventory.kardex, sku, limit)

    def rebaseline_costs(self, sample_size: int | None = None) -> ActionResult:
        return self._run(
            "rebaseline_costs", self.inventory.rebaseline_reference_costs, self._actor_id,
            sample_size, success_message="Reference costs re-baselined",
        )

    # -- costing -------------------------------------------------------------

    def set_param(self, key: str, value: Any) -> ActionResult:
        return self._run(
            "set_param", self.costing.set_param, key, value, self._actor_id,
            success_message=f"Parameter {key} saved",
        )

    def upsert_category(self, name: str, **rates: Any) -> ActionResult:
        return self._run(
            "upsert_category", self.costing.upsert_category, name, self._actor_id,
            success_message=f"Category {name} saved", **rates,
        )

    def convert_currency(self, from_currency: str, to_currency: str, rate: Decimal) -> ActionResult:
        return self._run(
            "convert_currency", self.costing.convert_currency,
            from_currency, to_currency, rate, self._actor_id,
            success_message=f"Costs converted from {from_currency} to {to_currency}",
        )

    # -- work orders ---------------------------------------------------------

    def create_work_order(
        self,
        materials: Sequence[MaterialLineInput] = (),
        pieces: Sequence[PieceLineInput] = (),
        priority: Priority = Priority.MEDIUM,
        machine_category: str | None = None,
        notes: str | None = None,
    ) -> ActionResult:
        return self._run(
            "create_work_order", self.work_orders.create_work_order, self._actor_id,
            materials=materials, pieces=pieces, priority=priority,
            machine_category=machine_category, notes=notes,
            success_message="Work order created",
        )

    def release_work_order(self, work_order_id: UUID) -> ActionResult:
        return self._run("release_work_order", self.work_orders.release, work_order_id,
                         self._actor_id, success_message="Work order released")

    def start_work_order(self, work_order_id: UUID) -> ActionResult:
        return self._run("start_work_order", self.work_orders.start, work_order_id,
                         self._actor_id, success_message="Work order started")

    def complete_work_order(self, work_order_id: UUID) -> ActionResult:
        return self._run("complete_work_order", self.work_orders.complete, work_order_id,
                         self._actor_id, success_message="Work order completed")

    def cancel_work_order(self, work_order_id: UUID) -> ActionResult:
        return self._run("cancel_work_order", self.work_orders.cancel, work_order_id,
                         self._actor_id, success_message="Work order cancelled")

    def issue_materials(self, work_order_id: UUID, items: Sequence[IssueItem]) -> ActionResult:
        return self._run(
            "issue_materials", self.work_orders.issue_materials, work_order_id, items,
            self._actor_id, success_message="Materials issued",
        )

    def log_production(self, work_order_id: UUID, hours: Decimal,
                       machine: str | None = None, note: str | None = None) -> ActionResult:
        return self._run(
            "log_production", self.work_orders.log_production, work_order_id, hours,
            self._actor_id, machine=machine, note=note, success_message="Hours logged",
        )

    def record_pieces(self, work_order_id: UUID, piece_line_id: UUID,
                      quantity: Decimal) -> ActionResult:
        return self._run(
            "record_pieces", self.work_orders.record_pieces, work_order_id, piece_line_id,
            quantity, self._actor_id, success_message="Pieces recorded",
        )

    def recompute_costs(self, work_order_id: UUID) -> ActionResult:
        return self._run(
            "recompute_costs", self.work_orders.recompute_costs, work_order_id,
            self._actor_id, success_message="Costs recomputed",
        )

    # -- purchasing ----------------------------------------------------------

    def create_request(self, lines: Sequence[RequestLineInput],
                       work_order_id: UUID | None = None, notes: str | None = None) -> ActionResult:
        return self._run(
            "create_request", self.purchasing.create_request, lines, self._actor_id,
            work_order_id=work_order_id, notes=notes,
            success_message="Purchase request created",
        )

    def request_shortages(self, work_order_id: UUID) -> ActionResult:
        return self._run(
            "request_shortages", self.purchasing.create_request_from_shortages,
            work_order_id, self._actor_id, success_message="Purchase request created",
        )

    def approve_request(self, request_id: UUID) -> ActionResult:
        return self._run("approve_request", self.purchasing.approve_request, request_id,
                         self._actor_id, success_message="Purchase request approved")

    def reject_request(self, request_id: UUID) -> ActionResult:
        return self._run("reject_request", self.purchasing.reject_request, request_id,
                         self._actor_id, success_message="Purchase request rejected")

    def cancel_request(self, request_id: UUID) -> ActionResult:
        return self._run("cancel_request", self.purchasing.cancel_request, request_id,
                         self._actor_id, success_message="Purchase request cancelled")

    def create_order(self, request_id: UUID, supplier: str,
                     lines: Sequence[OrderLineInput], notes: str | None = None) -> ActionResult:
        return self._run(
            "create_order", self.purchasing.create_order, request_id, supplier, lines,
            self._actor_id, notes=notes, success_message="Purchase order created",
        )

    def issue_order(self, order_id: UUID) -> ActionResult:
        return self._run("issue_order", self.purchasing.issue_order, order_id,
                         self._actor_id, success_message="Purchase order issued")

    def cancel_order(self, order_id: UUID) -> ActionResult:
        return self._run("cancel_order", self.purchasing.cancel_order, order_id,
                         self._actor_id, success_message="Purchase order cancelled")

    def receive_order(self, order_id: UUID,
                      lines: Sequence[ReceiptLineInput] | None = None) -> ActionResult:
        return self._run(
            "receive_order", self.purchasing.receive_order, order_id, self._actor_id,
            lines=lines, success_message="Goods received",
        )

    def request_coverage(self, request_id: UUID) -> ActionResult:
        return self._run("request_coverage", self.purchasing.get_request_line_coverage, request_id)

    def order_receipt(self, order_id: UUID) -> ActionResult:
        return self._run("order_receipt", self.purchasing.get_order_line_receipt, order_id)
