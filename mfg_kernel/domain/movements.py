"""
Stock movement vocabulary and read-side DTOs.

Responsibility:
    Defines the closed set of movement kinds, the sign each writer must use
    for a kind, and the frozen records selectors hand back to callers.

Architecture position:
    Kernel > Domain -- pure data, no ORM imports.

Invariants enforced:
    - The ledger accepts any non-zero signed quantity; ``MOVEMENT_SIGN`` is
      the convention the module writers apply before appending.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from mfg_kernel.domain.document_ref import DocumentRef


class MovementKind(str, Enum):
    """Why stock moved."""

    PURCHASE_RECEIPT = "purchase_receipt"
    MANUAL_ADJUSTMENT_IN = "manual_adjustment_in"
    MANUAL_ADJUSTMENT_OUT = "manual_adjustment_out"
    ISSUE_TO_WORK_ORDER = "issue_to_work_order"
    WORK_ORDER_OUTPUT = "work_order_output"


MOVEMENT_SIGN: dict[MovementKind, int] = {
    MovementKind.PURCHASE_RECEIPT: 1,
    MovementKind.MANUAL_ADJUSTMENT_IN: 1,
    MovementKind.MANUAL_ADJUSTMENT_OUT: -1,
    MovementKind.ISSUE_TO_WORK_ORDER: -1,
    MovementKind.WORK_ORDER_OUTPUT: 1,
}

# Kinds whose unit cost counts as a "last known" reference cost.
REFERENCE_COST_KINDS: tuple[MovementKind, ...] = (
    MovementKind.PURCHASE_RECEIPT,
    MovementKind.MANUAL_ADJUSTMENT_IN,
)


def signed_quantity(kind: MovementKind, quantity: Decimal) -> Decimal:
    """Apply the sign convention of ``kind`` to an unsigned quantity."""
    return abs(quantity) * MOVEMENT_SIGN[kind]


@dataclass(frozen=True)
class MovementRecord:
    """One ledger row as seen by readers."""

    id: UUID
    sku: str
    kind: MovementKind
    quantity: Decimal
    unit_cost: Decimal
    occurred_at: datetime
    ref: DocumentRef | None = None
    note: str | None = None

    @property
    def is_outgoing(self) -> bool:
        return self.quantity < 0

    @property
    def extended_cost(self) -> Decimal:
        return abs(self.quantity) * self.unit_cost


@dataclass(frozen=True)
class StockPosition:
    """Stock on hand for one product, valued at its reference cost."""

    sku: str
    name: str
    category: str | None
    unit: str
    stock: Decimal
    reference_cost: Decimal
    stock_value: Decimal
    min_stock: Decimal | None = None

    @property
    def below_minimum(self) -> bool:
        return self.min_stock is not None and self.stock < self.min_stock


@dataclass(frozen=True)
class KardexLine:
    """A movement together with the running stock balance after it."""

    movement: MovementRecord
    balance: Decimal
