"""
Work-Order Module Service (``mfg_modules.workorders.service``).

Responsibility
--------------
Orchestrates the work-order (OT) lifecycle: creation, manual transitions,
material issue from stock, production hours, piece completion, and the cost
rollup that writes the materials / labor / overhead / total snapshot.

Architecture
------------
Layer: **Modules** -- thin glue.

1. ``WORK_ORDER_WORKFLOW`` decides which transitions exist; this service
   checks their guards.
2. ``StockPoster`` appends ledger movements referencing the work order.
3. ``mfg_engines.progress`` computes coverage and completion.
4. ``CostingService.resolve_rates`` + ``mfg_engines.rollup`` produce the
   snapshot.

Invariants
----------
- Each public write method owns its transaction boundary: commit on
  success, rollback and re-raise on any exception.
- Every write that changes what the rollup reads recomputes the snapshot
  inside the same transaction, so a committed work order never carries a
  stale cost.
- ``recompute_costs`` is non-incremental: it re-reads the ledger, the
  production log and the rates every time.
- Automatic start (full coverage, hours logged, pieces recorded) does not
  apply the manual minimum-coverage guard.

Failure Modes
-------------
- ``WorkOrderNotFoundError`` / ``PieceLineNotFoundError``.
- ``InvalidTransitionError`` for an illegal action or a failed guard.
- ``InsufficientStockError`` when an issue exceeds stock.
- ``ProductionExceedsPlanError`` when pieces exceed the plan.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mfg_config import ShopConfig, get_active_config
from mfg_engines.progress import (
    MaterialProgress,
    PieceProgress,
    Shortage,
    all_pieces_complete,
    compute_shortages,
    material_coverage,
)
from mfg_engines.rollup import CostedMovement, CostSnapshot, RollupInputs, compute_cost_snapshot
from mfg_kernel.domain.clock import Clock, SystemClock
from mfg_kernel.domain.document_ref import DocumentRef
from mfg_kernel.domain.movements import MovementKind
from mfg_kernel.exceptions import (
    DuplicateProductError,
    InvalidTransitionError,
    PieceLineNotFoundError,
    ProductionExceedsPlanError,
    UnknownSkuError,
    ValidationError,
    WorkOrderNotFoundError,
    ZeroQuantityError,
)
from mfg_kernel.logging_config import LogContext, get_logger
from mfg_modules._numbering import next_document_code
from mfg_modules._stock_posting import StockPoster
from mfg_modules.costing.service import CostingService
from mfg_modules.workorders.models import (
    ACTIVE_STATUSES,
    IssueItem,
    MaterialLineInput,
    PieceLineInput,
    Priority,
    ProductionLogEntry,
    WorkOrder,
    WorkOrderStatus,
)
from mfg_modules.workorders.orm import (
    MaterialLineModel,
    PieceLineModel,
    ProductionLogModel,
    WorkOrderModel,
)
from mfg_modules.workorders.workflows import WORK_ORDER_WORKFLOW

logger = get_logger("modules.workorders.service")

_ZERO = Decimal("0")


class WorkOrderService:
    """
    Work-order lifecycle, production events and cost rollup.

    Transaction boundary: this service commits on success, rolls back on
    failure.  Stock and costing collaborators are flush-only or read-only
    and share the session.
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
        self._costing = CostingService(session, self._clock, self._config)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_row(self, work_order_id: UUID) -> WorkOrderModel:
        row = self._session.get(WorkOrderModel, work_order_id)
        if row is None:
            raise WorkOrderNotFoundError(str(work_order_id))
        return row

    def _transition(
        self,
        row: WorkOrderModel,
        action: str,
        actor_id: UUID | None,
        automatic: bool = False,
    ) -> None:
        transition = WORK_ORDER_WORKFLOW.transition_for(row.status, action)
        previous = row.status
        row.status = transition.to_state
        row.updated_by_id = actor_id
        logger.info(
            "work_order_transition",
            extra={
                "work_order_id": str(row.id),
                "code": row.code,
                "action": action,
                "from_state": previous,
                "to_state": transition.to_state,
                "automatic": automatic,
            },
        )

    def _require_active(self, row: WorkOrderModel, action: str) -> None:
        if WorkOrderStatus(row.status) not in ACTIVE_STATUSES:
            raise InvalidTransitionError(
                WORK_ORDER_WORKFLOW.name, row.status, action,
                reason="work order must be open or in progress",
            )

    @staticmethod
    def _material_progress(row: WorkOrderModel) -> list[MaterialProgress]:
        return [
            MaterialProgress(sku=line.sku, planned=line.qty_planned, issued=line.qty_issued)
            for line in row.materials
        ]

    @staticmethod
    def _piece_progress(row: WorkOrderModel) -> list[PieceProgress]:
        return [PieceProgress(planned=p.qty_planned, done=p.qty_done) for p in row.pieces]

    def _auto_start(self, row: WorkOrderModel, actor_id: UUID) -> None:
        if row.status == WorkOrderStatus.OPEN.value:
            self._transition(row, "start", actor_id, automatic=True)

    # =========================================================================
    # Creation and reads
    # =========================================================================

    def create_work_order(
        self,
        actor_id: UUID,
        materials: Sequence[MaterialLineInput] = (),
        pieces: Sequence[PieceLineInput] = (),
        priority: Priority = Priority.MEDIUM,
        machine_category: str | None = None,
        code: str | None = None,
        notes: str | None = None,
    ) -> WorkOrder:
        """
        Create a work order in DRAFT with its planned lines.

        Codes default to ``<prefix>-YYYYMM-NNNN``.

        Raises:
            ValidationError: non-positive planned quantities, blank piece
                descriptions or a code already in use.
            DuplicateProductError: the same SKU planned twice.
            UnknownSkuError: a line names a product that does not exist.
        """
        seen: set[str] = set()
        for line in materials:
            if line.sku in seen:
                raise DuplicateProductError(line.sku, "work order")
            seen.add(line.sku)
            if Decimal(line.qty_planned) <= 0:
                raise ValidationError(f"Planned quantity for {line.sku} must be positive")
        for piece in pieces:
            if not (piece.description or "").strip():
                raise ValidationError("Piece description is required")
            if Decimal(piece.qty_planned) <= 0:
                raise ValidationError(f"Planned pieces for {piece.description!r} must be positive")

        try:
            stock = self._poster.stock
            for sku in [m.sku for m in materials] + [p.sku for p in pieces if p.sku]:
                if not stock.product_exists(sku):
                    raise UnknownSkuError(sku)

            if code is None:
                code = next_document_code(
                    self._session, WorkOrderModel.code,
                    self._config.work_orders.code_prefix, self._clock,
                )
            elif self._session.execute(
                select(WorkOrderModel.id).where(WorkOrderModel.code == code)
            ).first() is not None:
                raise ValidationError(f"Work order code {code} already exists")

            row = WorkOrderModel(
                code=code,
                status=WORK_ORDER_WORKFLOW.initial_state,
                priority=Priority(priority).value,
                machine_category=machine_category,
                notes=notes,
                created_by_id=actor_id,
            )
            for line in materials:
                row.materials.append(
                    MaterialLineModel(
                        sku=line.sku,
                        qty_planned=Decimal(line.qty_planned),
                        qty_issued=_ZERO,
                        created_by_id=actor_id,
                    )
                )
            for position, piece in enumerate(pieces):
                row.pieces.append(
                    PieceLineModel(
                        position=position,
                        description=piece.description.strip(),
                        sku=piece.sku,
                        qty_planned=Decimal(piece.qty_planned),
                        qty_done=_ZERO,
                        created_by_id=actor_id,
                    )
                )
            self._session.add(row)
            self._session.flush()
            dto = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "work_order_created",
            extra={
                "work_order_id": str(dto.id),
                "code": dto.code,
                "material_lines": len(dto.materials),
                "piece_lines": len(dto.pieces),
            },
        )
        return dto

    def get_work_order(self, work_order_id: UUID) -> WorkOrder:
        return self._get_row(work_order_id).to_dto()

    def list_production_logs(self, work_order_id: UUID) -> list[ProductionLogEntry]:
        return [log.to_dto() for log in self._get_row(work_order_id).logs]

    def material_coverage(self, work_order_id: UUID) -> Decimal:
        """Share of planned material already issued, between 0 and 1."""
        return material_coverage(self._material_progress(self._get_row(work_order_id)))

    def shortages(self, work_order_id: UUID) -> list[Shortage]:
        """Still-needed material not covered by current stock."""
        row = self._get_row(work_order_id)
        lines = self._material_progress(row)
        stock = self._poster.stock.get_stock_many(line.sku for line in lines)
        return compute_shortages(lines, stock)

    # =========================================================================
    # Manual transitions
    # =========================================================================

    def release(self, work_order_id: UUID, actor_id: UUID) -> WorkOrder:
        return self._run_transition(work_order_id, "release", actor_id)

    def start(self, work_order_id: UUID, actor_id: UUID) -> WorkOrder:
        """Manual start; requires the configured minimum material coverage."""
        return self._run_transition(work_order_id, "start", actor_id)

    def complete(self, work_order_id: UUID, actor_id: UUID) -> WorkOrder:
        return self._run_transition(work_order_id, "complete", actor_id)

    def cancel(self, work_order_id: UUID, actor_id: UUID) -> WorkOrder:
        return self._run_transition(work_order_id, "cancel", actor_id)

    def _run_transition(self, work_order_id: UUID, action: str, actor_id: UUID) -> WorkOrder:
        try:
            row = self._get_row(work_order_id)
            transition = WORK_ORDER_WORKFLOW.transition_for(row.status, action)

            if transition.guard is not None:
                self._check_guard(row, action, transition.guard.name)

            self._transition(row, action, actor_id)
            self._recompute(row, actor_id)
            self._session.flush()
            dto = row.to_dto()
            self._session.commit()
            return dto
        except Exception:
            self._session.rollback()
            raise

    def _check_guard(self, row: WorkOrderModel, action: str, guard_name: str) -> None:
        if guard_name == "min_material_coverage":
            minimum = self._config.work_orders.manual_start_min_coverage
            coverage = material_coverage(self._material_progress(row))
            if coverage < minimum:
                raise InvalidTransitionError(
                    WORK_ORDER_WORKFLOW.name, row.status, action,
                    reason=f"material coverage {coverage:.2f} below minimum {minimum}",
                )
        elif guard_name == "all_pieces_complete":
            if not all(p.qty_done >= p.qty_planned for p in row.pieces):
                raise InvalidTransitionError(
                    WORK_ORDER_WORKFLOW.name, row.status, action,
                    reason="not every piece line is complete",
                )

    # =========================================================================
    # Production events
    # =========================================================================

    def issue_materials(
        self,
        work_order_id: UUID,
        items: Sequence[IssueItem],
        actor_id: UUID,
    ) -> WorkOrder:
        """
        Issue stock to the work order.

        Each item appends an ``ISSUE_TO_WORK_ORDER`` movement of
        ``-abs(quantity)`` at the SKU's reference cost and increments the
        material line (created unplanned if missing).  An OPEN order whose
        material is fully covered afterwards moves to IN_PROGRESS.
        """
        if not items:
            raise ValidationError("No items to issue")
        for item in items:
            if Decimal(item.quantity) == 0:
                raise ZeroQuantityError(item.sku)

        try:
            row = self._get_row(work_order_id)
            self._require_active(row, "issue_materials")
            ref = DocumentRef.work_order(row.id)

            with LogContext.bind(work_order_id=row.id, document_ref=ref):
                lines = {line.sku: line for line in row.materials}
                for item in items:
                    quantity = abs(Decimal(item.quantity))
                    self._poster.post(
                        item.sku, MovementKind.ISSUE_TO_WORK_ORDER, quantity, actor_id,
                        ref=ref, note=f"Issue to {row.code}",
                    )
                    line = lines.get(item.sku)
                    if line is None:
                        line = MaterialLineModel(
                            sku=item.sku,
                            qty_planned=_ZERO,
                            qty_issued=_ZERO,
                            created_by_id=actor_id,
                        )
                        row.materials.append(line)
                        lines[item.sku] = line
                    line.qty_issued = line.qty_issued + quantity
                    line.updated_by_id = actor_id

                self._session.flush()
                if material_coverage(self._material_progress(row)) >= 1:
                    self._auto_start(row, actor_id)

                self._recompute(row, actor_id)
                self._session.flush()
                dto = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "materials_issued",
            extra={"work_order_id": str(dto.id), "item_count": len(items), "status": dto.status.value},
        )
        return dto

    def log_production(
        self,
        work_order_id: UUID,
        hours: Decimal,
        actor_id: UUID,
        machine: str | None = None,
        note: str | None = None,
        user_id: UUID | None = None,
    ) -> ProductionLogEntry:
        """Record hours worked; an OPEN order moves to IN_PROGRESS."""
        hours = Decimal(hours)
        if hours <= 0:
            raise ValidationError("Logged hours must be positive")

        try:
            row = self._get_row(work_order_id)
            self._require_active(row, "log_production")
            log = ProductionLogModel(
                hours=hours,
                user_id=user_id or actor_id,
                machine=machine,
                logged_at=self._clock.now(),
                note=note,
                created_by_id=actor_id,
            )
            row.logs.append(log)
            self._auto_start(row, actor_id)
            self._session.flush()
            self._recompute(row, actor_id)
            self._session.flush()
            dto = log.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "production_logged",
            extra={"work_order_id": str(work_order_id), "hours": str(hours), "machine": machine},
        )
        return dto

    def record_pieces(
        self,
        work_order_id: UUID,
        piece_line_id: UUID,
        quantity: Decimal,
        actor_id: UUID,
    ) -> WorkOrder:
        """
        Add completed pieces to a piece line.

        Pieces linked to a SKU enter stock as ``WORK_ORDER_OUTPUT`` at that
        SKU's reference cost.  An OPEN order moves to IN_PROGRESS, and an
        IN_PROGRESS order whose piece lines are all complete moves to DONE.
        """
        quantity = Decimal(quantity)
        if quantity <= 0:
            raise ValidationError("Completed piece quantity must be positive")

        try:
            row = self._get_row(work_order_id)
            self._require_active(row, "record_pieces")
            piece = next((p for p in row.pieces if p.id == piece_line_id), None)
            if piece is None:
                raise PieceLineNotFoundError(str(work_order_id), str(piece_line_id))
            if piece.qty_done + quantity > piece.qty_planned:
                raise ProductionExceedsPlanError(
                    str(piece_line_id), piece.qty_planned, piece.qty_done, quantity,
                )

            piece.qty_done = piece.qty_done + quantity
            piece.updated_by_id = actor_id
            if piece.sku:
                self._poster.post(
                    piece.sku, MovementKind.WORK_ORDER_OUTPUT, quantity, actor_id,
                    ref=DocumentRef.work_order(row.id), note=f"Output of {row.code}",
                )

            self._auto_start(row, actor_id)
            if (
                row.status == WorkOrderStatus.IN_PROGRESS.value
                and all_pieces_complete(self._piece_progress(row))
            ):
                self._transition(row, "complete", actor_id, automatic=True)

            self._session.flush()
            self._recompute(row, actor_id)
            self._session.flush()
            dto = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "pieces_recorded",
            extra={
                "work_order_id": str(work_order_id),
                "piece_line_id": str(piece_line_id),
                "quantity": str(quantity),
                "status": dto.status.value,
            },
        )
        return dto

    # =========================================================================
    # Cost rollup
    # =========================================================================

    def recompute_costs(self, work_order_id: UUID, actor_id: UUID | None = None) -> CostSnapshot:
        """
        Recompute and persist the cost snapshot of one work order.

        Idempotent: unchanged inputs give the identical snapshot.

        Raises:
            WorkOrderNotFoundError: no such work order.
        """
        try:
            row = self._get_row(work_order_id)
            snapshot = self._recompute(row, actor_id)
            self._session.commit()
            return snapshot
        except Exception:
            self._session.rollback()
            raise

    def _recompute(self, row: WorkOrderModel, actor_id: UUID | None) -> CostSnapshot:
        ref = DocumentRef.work_order(row.id)
        movements = self._poster.stock.movements_for_document(ref)
        hours = self._session.execute(
            select(ProductionLogModel.hours).where(ProductionLogModel.work_order_id == row.id)
        ).scalars().all()
        inputs = RollupInputs(
            movements=tuple(CostedMovement(m.quantity, m.unit_cost) for m in movements),
            hours=tuple(hours),
            pieces_completed=sum((p.qty_done for p in row.pieces), _ZERO),
        )
        rates = self._costing.resolve_rates(row.machine_category)
        snapshot = compute_cost_snapshot(inputs=inputs, rates=rates)

        row.cost_materials = snapshot.materials
        row.cost_labor = snapshot.labor
        row.cost_overhead = snapshot.overhead
        row.cost_total = snapshot.total
        row.costed_at = self._clock.now()
        if actor_id is not None:
            row.updated_by_id = actor_id
        self._session.flush()

        logger.info(
            "cost_snapshot_written",
            extra={
                "work_order_id": str(row.id),
                "code": row.code,
                "materials": str(snapshot.materials),
                "labor": str(snapshot.labor),
                "overhead": str(snapshot.overhead),
                "total": str(snapshot.total),
                "hours_total": str(snapshot.hours_total),
                "pieces_completed": str(snapshot.pieces_completed),
                "rate_sources": rates.as_dict(),
            },
        )
        return snapshot
