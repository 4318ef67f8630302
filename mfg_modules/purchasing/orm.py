"""
SQLAlchemy ORM persistence models for the Purchasing module.

Responsibility
--------------
Persist purchase requests (SC) with their lines and purchase orders (OC)
with their lines.  Received quantities are NOT stored: they are the sum of
``PURCHASE_RECEIPT`` ledger movements referencing the order.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``PurchasingService`` and
``PurchaseReconciliationSelector``.  Inherits from ``TrackedBase``.

Invariants enforced
-------------------
* Quantities, costs and totals use ``Decimal`` (Numeric(38,9)).
* Status stored as String(50).
* A product appears at most once per purchase order.
* Every purchase order belongs to exactly one purchase request.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mfg_kernel.db.base import TrackedBase

# ---------------------------------------------------------------------------
# Purchase requests
# ---------------------------------------------------------------------------


class PurchaseRequestModel(TrackedBase):
    """A purchase request (SC), optionally raised for a work order."""

    __tablename__ = "purchase_requests"

    __table_args__ = (
        UniqueConstraint("code", name="uq_purchase_request_code"),
        Index("idx_purchase_request_status", "status"),
        Index("idx_purchase_request_work_order", "work_order_id"),
    )

    code: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="open")
    work_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("work_orders.id"), nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["RequestLineModel"]] = relationship(
        "RequestLineModel",
        back_populates="request",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RequestLineModel.position",
    )

    def to_dto(self):
        from mfg_modules.purchasing.models import PurchaseRequest, PurchaseRequestStatus

        return PurchaseRequest(
            id=self.id,
            code=self.code,
            status=PurchaseRequestStatus(self.status),
            work_order_id=self.work_order_id,
            notes=self.notes,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<PurchaseRequestModel {self.code} [{self.status}]>"


class RequestLineModel(TrackedBase):
    """A requested product and quantity."""

    __tablename__ = "purchase_request_lines"

    __table_args__ = (
        Index("idx_request_line_request", "request_id"),
    )

    request_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_requests.id"), nullable=False)
    position: Mapped[int] = mapped_column(default=0)
    sku: Mapped[str] = mapped_column(String(64), ForeignKey("products.sku"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    estimated_unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    request: Mapped["PurchaseRequestModel"] = relationship(
        "PurchaseRequestModel",
        back_populates="lines",
    )

    def to_dto(self):
        from mfg_modules.purchasing.models import RequestLine

        return RequestLine(
            id=self.id,
            sku=self.sku,
            quantity=self.quantity,
            estimated_unit_cost=self.estimated_unit_cost,
            note=self.note,
        )


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------


class PurchaseOrderModel(TrackedBase):
    """A purchase order (OC) placed with a supplier against a request."""

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("code", name="uq_purchase_order_code"),
        Index("idx_purchase_order_status", "status"),
        Index("idx_purchase_order_request", "request_id"),
    )

    code: Mapped[str] = mapped_column(String(30), nullable=False)
    request_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_requests.id"), nullable=False)
    supplier: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    total: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["OrderLineModel"]] = relationship(
        "OrderLineModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderLineModel.position",
    )

    def to_dto(self):
        from mfg_modules.purchasing.models import PurchaseOrder, PurchaseOrderStatus

        return PurchaseOrder(
            id=self.id,
            code=self.code,
            request_id=self.request_id,
            supplier=self.supplier,
            status=PurchaseOrderStatus(self.status),
            total=self.total,
            notes=self.notes,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.code} [{self.status}]>"


class OrderLineModel(TrackedBase):
    """An ordered product, quantity and agreed unit cost."""

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        UniqueConstraint("order_id", "sku", name="uq_purchase_order_line_sku"),
        Index("idx_order_line_request_line", "request_line_id"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_orders.id"), nullable=False)
    position: Mapped[int] = mapped_column(default=0)
    sku: Mapped[str] = mapped_column(String(64), ForeignKey("products.sku"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    request_line_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_request_lines.id"), nullable=True,
    )

    order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel",
        back_populates="lines",
    )

    def to_dto(self):
        from mfg_modules.purchasing.models import OrderLine

        return OrderLine(
            id=self.id,
            sku=self.sku,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            request_line_id=self.request_line_id,
        )
