"""
Module: mfg_kernel.selectors.stock_selector
Responsibility: Read-only derivation of stock on hand, reference cost, recent
    receipt samples, per-document movements and stock positions from the
    movement ledger.
Architecture position: Kernel > Selectors.  Reads models/ only.

Invariants enforced:
    - Stock for a SKU is SUM(quantity) over its movements, computed on every
      read.  The multi-SKU variant is one grouped aggregation and returns
      exactly the same figure per SKU.
    - Unknown SKUs read as zero stock and zero reference cost; reads never
      fail on existence.

Failure modes:
    - InconsistentStateError if a movement row carries a half-populated
      document reference (see domain/document_ref.py).
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mfg_kernel.domain.document_ref import DocumentKind, DocumentRef
from mfg_kernel.domain.movements import (
    REFERENCE_COST_KINDS,
    KardexLine,
    MovementKind,
    MovementRecord,
    StockPosition,
)
from mfg_kernel.domain.rounding import round_money
from mfg_kernel.models.movement import StockMovement
from mfg_kernel.models.product import Product
from mfg_kernel.selectors.base import BaseSelector

_ZERO = Decimal("0")


def _as_decimal(value) -> Decimal:
    if value is None:
        return _ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


class StockSelector(BaseSelector[StockMovement]):
    """Stock and valuation queries over the movement ledger."""

    def __init__(self, session: Session):
        super().__init__(session)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def get_stock(self, sku: str) -> Decimal:
        """Sum of signed quantities for ``sku``; 0 when it has no movements."""
        total = self.session.execute(
            select(func.sum(StockMovement.quantity)).where(StockMovement.sku == sku)
        ).scalar()
        return _as_decimal(total)

    def get_stock_many(self, skus: Iterable[str]) -> dict[str, Decimal]:
        """
        Stock for several SKUs using a single grouped aggregation.

        Every requested SKU is present in the result; SKUs without
        movements map to 0.
        """
        wanted = list(dict.fromkeys(skus))
        if not wanted:
            return {}
        rows = self.session.execute(
            select(StockMovement.sku, func.sum(StockMovement.quantity))
            .where(StockMovement.sku.in_(wanted))
            .group_by(StockMovement.sku)
        ).all()
        totals = {sku: _as_decimal(total) for sku, total in rows}
        return {sku: totals.get(sku, _ZERO) for sku in wanted}

    def get_all_stock(self) -> dict[str, Decimal]:
        """Stock for every SKU that has at least one movement."""
        rows = self.session.execute(
            select(StockMovement.sku, func.sum(StockMovement.quantity))
            .group_by(StockMovement.sku)
        ).all()
        return {sku: _as_decimal(total) for sku, total in rows}

    # ------------------------------------------------------------------
    # Cost
    # ------------------------------------------------------------------

    def get_reference_cost(self, sku: str) -> Decimal:
        """
        Most recent unit cost among purchase receipts and inbound adjustments.

        Falls back to the product's stored reference cost, then to 0 for an
        unknown SKU.
        """
        latest = self.session.execute(
            select(StockMovement.unit_cost)
            .where(
                StockMovement.sku == sku,
                StockMovement.kind.in_([k.value for k in REFERENCE_COST_KINDS]),
            )
            .order_by(StockMovement.occurred_at.desc(), StockMovement.seq.desc())
            .limit(1)
        ).scalar()
        if latest is not None:
            return _as_decimal(latest)

        stored = self.session.execute(
            select(Product.reference_cost).where(Product.sku == sku)
        ).scalar()
        return _as_decimal(stored)

    def get_reference_costs(self, skus: Iterable[str]) -> dict[str, Decimal]:
        return {sku: self.get_reference_cost(sku) for sku in dict.fromkeys(skus)}

    def recent_receipts(self, sku: str, limit: int) -> list[MovementRecord]:
        """The ``limit`` most recent purchase receipts with positive quantity."""
        rows = self.session.execute(
            select(StockMovement)
            .where(
                StockMovement.sku == sku,
                StockMovement.kind == MovementKind.PURCHASE_RECEIPT.value,
                StockMovement.quantity > 0,
            )
            .order_by(StockMovement.occurred_at.desc(), StockMovement.seq.desc())
            .limit(limit)
        ).scalars().all()
        return [row.to_record() for row in rows]

    def skus_with_receipts(self) -> list[str]:
        return list(
            self.session.execute(
                select(StockMovement.sku)
                .where(StockMovement.kind == MovementKind.PURCHASE_RECEIPT.value)
                .distinct()
                .order_by(StockMovement.sku)
            ).scalars().all()
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def movements_for_document(
        self,
        ref: DocumentRef,
        kind: MovementKind | None = None,
    ) -> list[MovementRecord]:
        """All movements referencing ``ref`` in chronological order."""
        stmt = select(StockMovement).where(
            StockMovement.ref_kind == ref.kind.value,
            StockMovement.ref_id == ref.document_id,
        )
        if kind is not None:
            stmt = stmt.where(StockMovement.kind == kind.value)
        rows = self.session.execute(
            stmt.order_by(StockMovement.occurred_at, StockMovement.seq)
        ).scalars().all()
        return [row.to_record() for row in rows]

    def received_by_product(self, order_id: UUID) -> dict[str, Decimal]:
        """Net purchase-receipt quantity per SKU for one purchase order."""
        rows = self.session.execute(
            select(StockMovement.sku, func.sum(StockMovement.quantity))
            .where(
                StockMovement.kind == MovementKind.PURCHASE_RECEIPT.value,
                StockMovement.ref_kind == DocumentKind.PURCHASE_ORDER.value,
                StockMovement.ref_id == order_id,
            )
            .group_by(StockMovement.sku)
        ).all()
        return {sku: _as_decimal(total) for sku, total in rows}

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def kardex(self, sku: str, limit: int | None = None) -> list[KardexLine]:
        """
        Chronological movement history with running balance.

        When ``limit`` is given only the latest ``limit`` lines are returned;
        balances still reflect the full history.
        """
        rows = self.session.execute(
            select(StockMovement)
            .where(StockMovement.sku == sku)
            .order_by(StockMovement.occurred_at, StockMovement.seq)
        ).scalars().all()

        lines: list[KardexLine] = []
        balance = _ZERO
        for row in rows:
            balance += row.quantity
            lines.append(KardexLine(movement=row.to_record(), balance=balance))
        if limit is not None:
            return lines[-limit:] if limit > 0 else []
        return lines

    def list_stock_positions(self, category: str | None = None) -> list[StockPosition]:
        """Stock on hand per product valued at its reference cost."""
        stmt = select(Product).order_by(Product.sku)
        if category is not None:
            stmt = stmt.where(Product.category == category)
        products = self.session.execute(stmt).scalars().all()
        if not products:
            return []

        stock = self.get_stock_many(p.sku for p in products)
        positions = []
        for product in products:
            qty = stock[product.sku]
            cost = self.get_reference_cost(product.sku)
            positions.append(
                StockPosition(
                    sku=product.sku,
                    name=product.name,
                    category=product.category,
                    unit=product.unit,
                    stock=qty,
                    reference_cost=cost,
                    stock_value=round_money(qty * cost),
                    min_stock=product.min_stock,
                )
            )
        return positions

    def product_exists(self, sku: str) -> bool:
        return self.session.execute(
            select(Product.id).where(Product.sku == sku)
        ).first() is not None
