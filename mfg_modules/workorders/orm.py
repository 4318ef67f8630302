"""
SQLAlchemy ORM persistence models for the Work-Order module.

Responsibility
--------------
Persist work orders, their planned material and piece lines, and the
production log.  Issued material cost is NOT stored on lines: it is read
from the ledger movements that reference the work order.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``WorkOrderService``.  Inherits
from ``TrackedBase`` (kernel db layer).  Line SKUs reference
``products.sku``.

Invariants enforced
-------------------
* Quantities, hours and cost snapshot use ``Decimal`` (Numeric(38,9)).
* Status and priority stored as String(50) / String(20).
* One material line per (work order, SKU).
* Lines and log entries belong to exactly one work order and are removed
  with it.

Audit relevance
---------------
* ``cost_*`` and ``costed_at`` are a cache with a single writer
  (``WorkOrderService.recompute_costs``) and can always be rebuilt from the
  ledger, the production log and the costing parameters.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mfg_kernel.db.base import TrackedBase

# ---------------------------------------------------------------------------
# WorkOrderModel
# ---------------------------------------------------------------------------


class WorkOrderModel(TrackedBase):
    """
    A work order (OT).

    Maps to the ``WorkOrder`` DTO in ``mfg_modules.workorders.models``.
    """

    __tablename__ = "work_orders"

    __table_args__ = (
        UniqueConstraint("code", name="uq_work_order_code"),
        Index("idx_work_order_status", "status"),
    )

    code: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    machine_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Cost snapshot
    cost_materials: Mapped[Decimal | None] = mapped_column(nullable=True)
    cost_labor: Mapped[Decimal | None] = mapped_column(nullable=True)
    cost_overhead: Mapped[Decimal | None] = mapped_column(nullable=True)
    cost_total: Mapped[Decimal | None] = mapped_column(nullable=True)
    costed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    materials: Mapped[list["MaterialLineModel"]] = relationship(
        "MaterialLineModel",
        back_populates="work_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MaterialLineModel.sku",
    )
    pieces: Mapped[list["PieceLineModel"]] = relationship(
        "PieceLineModel",
        back_populates="work_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PieceLineModel.position",
    )
    logs: Mapped[list["ProductionLogModel"]] = relationship(
        "ProductionLogModel",
        back_populates="work_order",
        cascade="all, delete-orphan",
        order_by="ProductionLogModel.logged_at",
    )

    def to_dto(self):
        from mfg_modules.workorders.models import Priority, WorkOrder, WorkOrderStatus

        return WorkOrder(
            id=self.id,
            code=self.code,
            status=WorkOrderStatus(self.status),
            priority=Priority(self.priority),
            machine_category=self.machine_category,
            notes=self.notes,
            materials=tuple(line.to_dto() for line in self.materials),
            pieces=tuple(line.to_dto() for line in self.pieces),
            cost_materials=self.cost_materials,
            cost_labor=self.cost_labor,
            cost_overhead=self.cost_overhead,
            cost_total=self.cost_total,
            costed_at=self.costed_at,
        )

    def __repr__(self) -> str:
        return f"<WorkOrderModel {self.code} [{self.status}]>"


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


class MaterialLineModel(TrackedBase):
    """Planned material for a work order with its running issued counter."""

    __tablename__ = "work_order_materials"

    __table_args__ = (
        UniqueConstraint("work_order_id", "sku", name="uq_work_order_material_sku"),
        Index("idx_wo_material_work_order", "work_order_id"),
    )

    work_order_id: Mapped[UUID] = mapped_column(ForeignKey("work_orders.id"), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), ForeignKey("products.sku"), nullable=False)
    qty_planned: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    qty_issued: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    work_order: Mapped["WorkOrderModel"] = relationship(
        "WorkOrderModel",
        back_populates="materials",
    )

    def to_dto(self):
        from mfg_modules.workorders.models import MaterialLine

        return MaterialLine(
            id=self.id,
            sku=self.sku,
            qty_planned=self.qty_planned,
            qty_issued=self.qty_issued,
        )


class PieceLineModel(TrackedBase):
    """A piece to produce; ``sku`` set when finished pieces enter stock."""

    __tablename__ = "work_order_pieces"

    __table_args__ = (
        Index("idx_wo_piece_work_order", "work_order_id"),
    )

    work_order_id: Mapped[UUID] = mapped_column(ForeignKey("work_orders.id"), nullable=False)
    position: Mapped[int] = mapped_column(default=0)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    sku: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("products.sku"), nullable=True,
    )
    qty_planned: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    qty_done: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    work_order: Mapped["WorkOrderModel"] = relationship(
        "WorkOrderModel",
        back_populates="pieces",
    )

    def to_dto(self):
        from mfg_modules.workorders.models import PieceLine

        return PieceLine(
            id=self.id,
            description=self.description,
            sku=self.sku,
            qty_planned=self.qty_planned,
            qty_done=self.qty_done,
        )


# ---------------------------------------------------------------------------
# ProductionLogModel
# ---------------------------------------------------------------------------


class ProductionLogModel(TrackedBase):
    """Hours worked on a work order by one operator."""

    __tablename__ = "production_logs"

    __table_args__ = (
        Index("idx_production_log_work_order", "work_order_id"),
    )

    work_order_id: Mapped[UUID] = mapped_column(ForeignKey("work_orders.id"), nullable=False)
    hours: Mapped[Decimal] = mapped_column(nullable=False)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    machine: Mapped[str | None] = mapped_column(String(100), nullable=True)
    logged_at: Mapped[datetime] = mapped_column(nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    work_order: Mapped["WorkOrderModel"] = relationship(
        "WorkOrderModel",
        back_populates="logs",
    )

    def to_dto(self):
        from mfg_modules.workorders.models import ProductionLogEntry

        return ProductionLogEntry(
            id=self.id,
            work_order_id=self.work_order_id,
            hours=self.hours,
            user_id=self.user_id,
            machine=self.machine,
            logged_at=self.logged_at,
            note=self.note,
        )
