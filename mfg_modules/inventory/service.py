"""
Inventory Module Service (``mfg_modules.inventory.service``).

Responsibility
--------------
Orchestrates inventory operations over the kernel ledger: product
registration, manual adjustments, direct receipts, stock/cost reads, the
weighted-average valuation and its bulk re-baseline, stock positions and
kardex.  Contains no arithmetic of its own: averages come from
``mfg_engines.valuation``, sums from ``StockSelector``.

Architecture
------------
Layer: **Modules**.

1. ``StockPoster`` (flush-only) applies the movement sign convention and
   the availability check, and appends through ``LedgerWriter``.
2. ``StockSelector`` derives stock and reference cost on every read.

Invariants
----------
- Each public write method owns its transaction boundary: commit on
  success, rollback and re-raise on any exception.
- No stock figure is stored anywhere; reads always aggregate the ledger.
- An outgoing movement never takes stock below zero unless
  ``inventory.allow_negative_stock`` is set.

Failure Modes
-------------
- ``UnknownSkuError`` / ``ZeroQuantityError`` / ``NegativeUnitCostError``
  from the ledger writer.
- ``InsufficientStockError`` for an outgoing movement larger than stock.
- ``ProductNotFoundError`` when a catalog write names an unknown SKU.

Usage::

    service = InventoryService(session, clock=clock)
    service.register_product("BAR-1020", "Round bar 1020", actor_id)
    service.adjust_stock("BAR-1020", Decimal("12"), actor_id, unit_cost=Decimal("8.40"))
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mfg_config import ShopConfig, get_active_config
from mfg_kernel.domain.clock import Clock, SystemClock
from mfg_kernel.domain.document_ref import DocumentRef
from mfg_kernel.domain.movements import KardexLine, MovementKind, MovementRecord, StockPosition
from mfg_kernel.exceptions import NegativeUnitCostError, ValidationError, ZeroQuantityError
from mfg_kernel.logging_config import get_logger
from mfg_kernel.models.product import Product
from mfg_kernel.selectors.stock_selector import StockSelector
from mfg_kernel.services.ledger_writer import LedgerWriter
from mfg_modules._stock_posting import StockPoster
from mfg_modules.inventory.models import ProductInfo, RebaselineSummary

logger = get_logger("modules.inventory.service")


def _to_info(product: Product) -> ProductInfo:
    return ProductInfo(
        id=product.id,
        sku=product.sku,
        name=product.name,
        category=product.category,
        unit=product.unit,
        reference_cost=product.reference_cost,
        min_stock=product.min_stock,
    )


class InventoryService:
    """
    Inventory operations over the movement ledger.

    Transaction boundary: this service commits on success, rolls back on
    failure.  Reads never write.
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
        self._stock = StockSelector(session)
        self._writer = LedgerWriter(session, self._clock)
        self._poster = StockPoster(session, self._clock, self._config.inventory)

    # =========================================================================
    # Catalog
    # =========================================================================

    def register_product(
        self,
        sku: str,
        name: str,
        actor_id: UUID,
        category: str | None = None,
        unit: str = "UND",
        reference_cost: Decimal = Decimal("0"),
        min_stock: Decimal | None = None,
    ) -> ProductInfo:
        """
        Add a product to the catalog.

        Raises:
            ValidationError: blank SKU/name or an SKU already registered.
            NegativeUnitCostError: ``reference_cost`` < 0.
        """
        sku = (sku or "").strip()
        if not sku or not (name or "").strip():
            raise ValidationError("Product SKU and name are required")
        reference_cost = Decimal(reference_cost)
        if reference_cost < 0:
            raise NegativeUnitCostError(sku, reference_cost)

        try:
            if self._stock.product_exists(sku):
                raise ValidationError(f"Product {sku} already exists")
            product = Product(
                sku=sku,
                name=name.strip(),
                category=category,
                unit=unit,
                reference_cost=reference_cost,
                min_stock=min_stock,
                created_by_id=actor_id,
            )
            self._session.add(product)
            self._session.flush()
            info = _to_info(product)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("product_registered", extra={"sku": sku, "category": category})
        return info

    def set_reference_cost(self, sku: str, unit_cost: Decimal, actor_id: UUID) -> ProductInfo:
        """Manual override of a product's stored reference cost."""
        unit_cost = Decimal(unit_cost)
        if unit_cost < 0:
            raise NegativeUnitCostError(sku, unit_cost)
        try:
            product = self._poster.get_product(sku)
            previous = product.reference_cost
            product.reference_cost = unit_cost
            product.updated_by_id = actor_id
            self._session.flush()
            info = _to_info(product)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "reference_cost_overridden",
            extra={"sku": sku, "previous": str(previous), "reference_cost": str(unit_cost)},
        )
        return info

    def get_product(self, sku: str) -> ProductInfo:
        return _to_info(self._poster.get_product(sku))

    # =========================================================================
    # Movements
    # =========================================================================

    def append_movement(
        self,
        sku: str,
        kind: MovementKind,
        quantity: Decimal,
        unit_cost: Decimal,
        actor_id: UUID,
        ref: DocumentRef | None = None,
        note: str | None = None,
    ) -> MovementRecord:
        """
        Append one raw, already-signed movement in its own transaction.

        No sign convention and no availability check are applied here;
        document operations use the typed methods instead.
        """
        try:
            record = self._writer.append(
                sku=sku,
                kind=kind,
                quantity=quantity,
                unit_cost=unit_cost,
                actor_id=actor_id,
                ref=ref,
                note=note,
            )
            self._session.commit()
            return record
        except Exception:
            self._session.rollback()
            raise

    def receive_stock(
        self,
        sku: str,
        quantity: Decimal,
        unit_cost: Decimal,
        actor_id: UUID,
        note: str | None = None,
    ) -> MovementRecord:
        """Purchase receipt without a purchase order; refreshes the reference cost."""
        quantity = Decimal(quantity)
        if quantity == 0:
            raise ZeroQuantityError(sku)
        if quantity < 0:
            raise ValidationError(f"Receipt quantity for {sku} must be positive")
        try:
            record = self._poster.post_receipt(sku, quantity, unit_cost, actor_id, note=note)
            self._session.commit()
            return record
        except Exception:
            self._session.rollback()
            raise

    def adjust_stock(
        self,
        sku: str,
        quantity: Decimal,
        actor_id: UUID,
        unit_cost: Decimal | None = None,
        note: str | None = None,
    ) -> MovementRecord:
        """
        Manual adjustment by a signed quantity.

        Positive quantities post ``MANUAL_ADJUSTMENT_IN``, negative ones
        ``MANUAL_ADJUSTMENT_OUT``.  ``unit_cost`` defaults to the SKU's
        reference cost.
        """
        quantity = Decimal(quantity)
        if quantity == 0:
            raise ZeroQuantityError(sku)
        kind = (
            MovementKind.MANUAL_ADJUSTMENT_IN if quantity > 0
            else MovementKind.MANUAL_ADJUSTMENT_OUT
        )
        try:
            record = self._poster.post(
                sku, kind, quantity, actor_id, unit_cost=unit_cost, note=note,
            )
            self._session.commit()
            return record
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Reads
    # =========================================================================

    def get_stock(self, sku: str) -> Decimal:
        return self._stock.get_stock(sku)

    def get_stock_many(self, skus: list[str]) -> dict[str, Decimal]:
        return self._stock.get_stock_many(skus)

    def get_reference_cost(self, sku: str) -> Decimal:
        return self._stock.get_reference_cost(sku)

    def compute_weighted_average_cost(
        self,
        sku: str,
        sample_size: int | None = None,
    ) -> Decimal | None:
        """
        Weighted average over the most recent purchase receipts.

        ``sample_size`` defaults to ``inventory.weighted_average_window``.
        Returns None when the SKU has no receipt history.
        """
        if sample_size is not None and sample_size < 1:
            raise ValidationError("sample_size must be >= 1")
        return self._poster.weighted_average(sku, sample_size)

    def list_stock_positions(self, category: str | None = None) -> list[StockPosition]:
        return self._stock.list_stock_positions(category)

    def kardex(self, sku: str, limit: int | None = None) -> list[KardexLine]:
        return self._stock.kardex(sku, limit)

    # =========================================================================
    # Maintenance
    # =========================================================================

    def rebaseline_reference_costs(
        self,
        actor_id: UUID,
        sample_size: int | None = None,
    ) -> RebaselineSummary:
        """
        Reset every product's reference cost to its weighted average.

        Products without purchase history keep their stored cost and are
        counted as skipped.  One transaction for the whole catalog.
        """
        if sample_size is not None and sample_size < 1:
            raise ValidationError("sample_size must be >= 1")
        window = sample_size or self._config.inventory.weighted_average_window

        updated: dict[str, Decimal] = {}
        skipped = 0
        try:
            skus = self._session.execute(
                select(Product.sku).order_by(Product.sku)
            ).scalars().all()
            for sku in skus:
                cost = self._poster.refresh_reference_cost(sku, actor_id, window)
                if cost is None:
                    skipped += 1
                else:
                    updated[sku] = cost
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "reference_costs_rebaselined",
            extra={"sample_size": window, "updated": len(updated), "skipped": skipped},
        )
        return RebaselineSummary(
            sample_size=window,
            updated=len(updated),
            skipped=skipped,
            costs=updated,
        )
