"""
Shared stock posting used by the inventory, work-order and purchasing services.

Responsibility:
    Applies the sign convention of each movement kind, checks availability
    for outgoing movements, and keeps a product's stored reference cost in
    step with its purchase history.  Writes go through the kernel
    ``LedgerWriter``.

Architecture: Modules layer.  Flush-only, like the kernel writer: the
    calling service owns the transaction and commits once its document
    changes are also in the session.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mfg_config import InventorySettings
from mfg_engines.valuation import ReceiptSample, weighted_average_cost
from mfg_kernel.domain.clock import Clock
from mfg_kernel.domain.document_ref import DocumentRef
from mfg_kernel.domain.movements import MOVEMENT_SIGN, MovementKind, MovementRecord, signed_quantity
from mfg_kernel.exceptions import InsufficientStockError, ProductNotFoundError
from mfg_kernel.logging_config import get_logger
from mfg_kernel.models.product import Product
from mfg_kernel.selectors.stock_selector import StockSelector
from mfg_kernel.services.ledger_writer import LedgerWriter

logger = get_logger("modules.stock_posting")


class StockPoster:
    """Posts signed movements on behalf of a document service."""

    def __init__(self, session: Session, clock: Clock, settings: InventorySettings):
        self._session = session
        self._settings = settings
        self._writer = LedgerWriter(session, clock)
        self._stock = StockSelector(session)

    @property
    def stock(self) -> StockSelector:
        return self._stock

    def post(
        self,
        sku: str,
        kind: MovementKind,
        quantity: Decimal,
        actor_id: UUID,
        unit_cost: Decimal | None = None,
        ref: DocumentRef | None = None,
        note: str | None = None,
    ) -> MovementRecord:
        """
        Append one movement of ``kind`` for ``abs(quantity)`` units.

        The sign comes from the kind.  Without ``unit_cost`` the SKU's
        current reference cost is used.  Outgoing movements may not take
        stock below zero unless the inventory settings allow it.
        """
        kind = MovementKind(kind)
        delta = signed_quantity(kind, Decimal(quantity))
        if unit_cost is None:
            unit_cost = self._stock.get_reference_cost(sku)

        if MOVEMENT_SIGN[kind] < 0 and not self._settings.allow_negative_stock:
            available = self._stock.get_stock(sku)
            if available + delta < 0:
                raise InsufficientStockError(sku, abs(delta), available)

        return self._writer.append(
            sku=sku,
            kind=kind,
            quantity=delta,
            unit_cost=unit_cost,
            actor_id=actor_id,
            ref=ref,
            note=note,
        )

    def post_receipt(
        self,
        sku: str,
        quantity: Decimal,
        unit_cost: Decimal,
        actor_id: UUID,
        ref: DocumentRef | None = None,
        note: str | None = None,
    ) -> MovementRecord:
        """Purchase receipt followed by a reference-cost refresh for the SKU."""
        record = self.post(
            sku, MovementKind.PURCHASE_RECEIPT, quantity, actor_id,
            unit_cost=unit_cost, ref=ref, note=note,
        )
        self.refresh_reference_cost(sku, actor_id)
        return record

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    def weighted_average(self, sku: str, sample_size: int | None = None) -> Decimal | None:
        window = sample_size or self._settings.weighted_average_window
        receipts = self._stock.recent_receipts(sku, window)
        return weighted_average_cost(
            samples=[ReceiptSample(r.quantity, r.unit_cost) for r in receipts],
        )

    def refresh_reference_cost(
        self,
        sku: str,
        actor_id: UUID,
        sample_size: int | None = None,
    ) -> Decimal | None:
        """
        Store the weighted average as the product's reference cost.

        Returns the new cost, or None (product untouched) when the SKU has
        no purchase history.
        """
        average = self.weighted_average(sku, sample_size)
        if average is None:
            return None

        product = self.get_product(sku)
        if product.reference_cost != average:
            product.reference_cost = average
            product.updated_by_id = actor_id
            self._session.flush()
        return average

    def get_product(self, sku: str) -> Product:
        product = self._session.execute(
            select(Product).where(Product.sku == sku)
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(sku)
        return product
