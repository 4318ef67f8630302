"""
Purchasing Domain Models (``mfg_modules.purchasing.models``).

Frozen value objects for purchase requests (SC), purchase orders (OC) and
receipts.  Pending quantities are never stored: they are derived by
``PurchaseReconciliationSelector`` on every read.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from mfg_engines.reconciliation import OrderReceipt
from mfg_kernel.domain.movements import MovementRecord


class PurchaseRequestStatus(str, Enum):
    OPEN = "open"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"
    CANCELLED = "cancelled"


# Orders that can take receipts.
RECEIVABLE_STATUSES = frozenset({
    PurchaseOrderStatus.ISSUED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
})


@dataclass(frozen=True)
class RequestLineInput:
    sku: str
    quantity: Decimal
    estimated_unit_cost: Decimal | None = None
    note: str | None = None


@dataclass(frozen=True)
class OrderLineInput:
    sku: str
    quantity: Decimal
    unit_cost: Decimal
    request_line_id: UUID | None = None


@dataclass(frozen=True)
class ReceiptLineInput:
    sku: str
    quantity: Decimal


@dataclass(frozen=True)
class RequestLine:
    id: UUID
    sku: str
    quantity: Decimal
    estimated_unit_cost: Decimal | None = None
    note: str | None = None


@dataclass(frozen=True)
class PurchaseRequest:
    id: UUID
    code: str
    status: PurchaseRequestStatus
    work_order_id: UUID | None
    notes: str | None
    lines: tuple[RequestLine, ...] = ()


@dataclass(frozen=True)
class OrderLine:
    id: UUID
    sku: str
    quantity: Decimal
    unit_cost: Decimal
    request_line_id: UUID | None = None


@dataclass(frozen=True)
class PurchaseOrder:
    id: UUID
    code: str
    request_id: UUID
    supplier: str
    status: PurchaseOrderStatus
    total: Decimal
    notes: str | None
    lines: tuple[OrderLine, ...] = ()


@dataclass(frozen=True)
class ReceiptResult:
    """Outcome of one receipt against a purchase order."""
    order: PurchaseOrder
    movements: tuple[MovementRecord, ...]
    receipt: OrderReceipt
