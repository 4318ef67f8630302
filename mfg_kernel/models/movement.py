"""
Stock movement ledger model.

Every change to stock on hand is one row here.  Rows are immutable from
creation (db/immutability.py, db/triggers.py); corrections are offsetting
rows.  There is no stored stock column anywhere: stock is always
``SUM(quantity)`` for a SKU.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mfg_kernel.db.base import TrackedBase
from mfg_kernel.domain.document_ref import DocumentKind, DocumentRef, from_columns, to_columns
from mfg_kernel.domain.movements import MovementKind, MovementRecord

_KIND_VALUES = ", ".join(f"'{k.value}'" for k in DocumentKind)


class StockMovement(TrackedBase):
    """One immutable, signed quantity-and-cost record of inventory change."""

    __tablename__ = "stock_movements"

    __table_args__ = (
        Index("idx_movement_sku_time", "sku", "occurred_at", "seq"),
        UniqueConstraint("sku", "seq", name="uq_movement_sku_seq"),
        Index("idx_movement_ref", "ref_kind", "ref_id"),
        Index("idx_movement_kind", "kind"),
        CheckConstraint("quantity <> 0", name="ck_movement_nonzero_quantity"),
        CheckConstraint("unit_cost >= 0", name="ck_movement_unit_cost"),
        CheckConstraint(
            "(ref_kind IS NULL AND ref_id IS NULL) OR "
            f"(ref_kind IN ({_KIND_VALUES}) AND ref_id IS NOT NULL)",
            name="ck_movement_document_ref",
        ),
    )

    sku: Mapped[str] = mapped_column(
        String(64), ForeignKey("products.sku"), nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    # Per-SKU insert order; breaks ties between movements with equal occurred_at.
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    ref_kind: Mapped[str | None] = mapped_column(String(30), nullable=True)
    ref_id: Mapped[UUID | None] = mapped_column(nullable=True)

    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def document_ref(self) -> DocumentRef | None:
        return from_columns(self.ref_kind, self.ref_id, movement_id=self.id)

    @document_ref.setter
    def document_ref(self, ref: DocumentRef | None) -> None:
        self.ref_kind, self.ref_id = to_columns(ref)

    def to_record(self) -> MovementRecord:
        return MovementRecord(
            id=self.id,
            sku=self.sku,
            kind=MovementKind(self.kind),
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            occurred_at=self.occurred_at,
            ref=self.document_ref,
            note=self.note,
        )

    def __repr__(self) -> str:
        return f"<StockMovement {self.kind} {self.sku} {self.quantity} @ {self.unit_cost}>"
