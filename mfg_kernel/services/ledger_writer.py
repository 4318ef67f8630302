"""
Module: mfg_kernel.services.ledger_writer
Responsibility: The single write path into the stock movement ledger.
Architecture position: Kernel > Services.  Flush-only: the writer joins the
    caller's transaction and never commits, so a work-order issue or a
    purchase receipt lands atomically with the document changes around it.

Invariants enforced:
    - The SKU must exist (UnknownSkuError).
    - Quantity must be non-zero (ZeroQuantityError); any sign is accepted.
      Sign conventions per movement kind are the writers' business
      (see domain/movements.MOVEMENT_SIGN).
    - Unit cost must be >= 0 (NegativeUnitCostError).
    - Rows are inserted, never updated or deleted.
    - Each row gets the next per-SKU ``seq``; (sku, seq) is unique, so two
      writers racing on one SKU cannot both commit the same position.

Failure modes:
    - The ValidationError subclasses above, raised before anything is added
      to the session.

Audit relevance:
    Every append is logged as ``movement_appended`` with SKU, kind, signed
    quantity, unit cost and document reference.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mfg_kernel.domain.clock import Clock, SystemClock
from mfg_kernel.domain.document_ref import DocumentRef, to_columns
from mfg_kernel.domain.movements import MovementKind, MovementRecord
from mfg_kernel.exceptions import NegativeUnitCostError, UnknownSkuError, ZeroQuantityError
from mfg_kernel.logging_config import get_logger
from mfg_kernel.models.movement import StockMovement
from mfg_kernel.selectors.stock_selector import StockSelector

logger = get_logger("services.ledger_writer")


class LedgerWriter:
    """
    Appends immutable movement rows.

    Contract:
        ``append`` validates, adds and flushes one row inside the caller's
        transaction and returns its frozen record.  Callers commit.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._stock = StockSelector(session)

    def append(
        self,
        sku: str,
        kind: MovementKind,
        quantity: Decimal,
        unit_cost: Decimal,
        actor_id: UUID,
        ref: DocumentRef | None = None,
        note: str | None = None,
        occurred_at: datetime | None = None,
    ) -> MovementRecord:
        """
        Insert one movement.

        Preconditions:
            - ``sku`` names an existing product.
            - ``quantity`` != 0; ``unit_cost`` >= 0.
        Postconditions:
            - One new row is flushed; stock for ``sku`` changes by
              ``quantity`` on the next read.
        Raises:
            UnknownSkuError, ZeroQuantityError, NegativeUnitCostError.
        """
        kind = MovementKind(kind)
        quantity = Decimal(quantity)
        unit_cost = Decimal(unit_cost)

        if quantity == 0:
            raise ZeroQuantityError(sku)
        if unit_cost < 0:
            raise NegativeUnitCostError(sku, unit_cost)
        if not self._stock.product_exists(sku):
            raise UnknownSkuError(sku)

        ref_kind, ref_id = to_columns(ref)
        movement = StockMovement(
            sku=sku,
            kind=kind.value,
            quantity=quantity,
            unit_cost=unit_cost,
            occurred_at=occurred_at or self._clock.now(),
            seq=self._next_seq(sku),
            ref_kind=ref_kind,
            ref_id=ref_id,
            note=note,
            created_by_id=actor_id,
        )
        self._session.add(movement)
        self._session.flush()

        logger.info(
            "movement_appended",
            extra={
                "movement_id": str(movement.id),
                "sku": sku,
                "kind": kind.value,
                "quantity": str(quantity),
                "unit_cost": str(unit_cost),
                "document_ref": str(ref) if ref else None,
            },
        )
        return movement.to_record()

    def _next_seq(self, sku: str) -> int:
        current = self._session.execute(
            select(func.max(StockMovement.seq)).where(StockMovement.sku == sku)
        ).scalar()
        return (current or 0) + 1
