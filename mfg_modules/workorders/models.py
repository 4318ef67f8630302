"""
Work-Order Domain Models (``mfg_modules.workorders.models``).

Responsibility
--------------
Frozen value objects for work orders (OT): status and priority
enumerations, line inputs accepted by ``WorkOrderService``, and the DTOs it
returns.  No database identity beyond the ids copied from ORM rows.

Invariants
----------
- Quantities, hours and costs are ``Decimal`` -- never ``float``.
- The cost fields of ``WorkOrder`` are a snapshot written only by
  ``WorkOrderService.recompute_costs``; they are None until the first
  rollup.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class WorkOrderStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Statuses in which material may be issued and production recorded.
ACTIVE_STATUSES = frozenset({WorkOrderStatus.OPEN, WorkOrderStatus.IN_PROGRESS})


@dataclass(frozen=True)
class MaterialLineInput:
    sku: str
    qty_planned: Decimal


@dataclass(frozen=True)
class PieceLineInput:
    description: str
    qty_planned: Decimal
    sku: str | None = None


@dataclass(frozen=True)
class IssueItem:
    """One SKU and quantity to issue from stock to a work order."""
    sku: str
    quantity: Decimal


@dataclass(frozen=True)
class MaterialLine:
    id: UUID
    sku: str
    qty_planned: Decimal
    qty_issued: Decimal


@dataclass(frozen=True)
class PieceLine:
    id: UUID
    description: str
    sku: str | None
    qty_planned: Decimal
    qty_done: Decimal

    @property
    def is_complete(self) -> bool:
        return self.qty_done >= self.qty_planned


@dataclass(frozen=True)
class ProductionLogEntry:
    id: UUID
    work_order_id: UUID
    hours: Decimal
    user_id: UUID
    machine: str | None
    logged_at: datetime
    note: str | None = None


@dataclass(frozen=True)
class WorkOrder:
    id: UUID
    code: str
    status: WorkOrderStatus
    priority: Priority
    machine_category: str | None
    notes: str | None
    materials: tuple[MaterialLine, ...] = ()
    pieces: tuple[PieceLine, ...] = ()
    cost_materials: Decimal | None = None
    cost_labor: Decimal | None = None
    cost_overhead: Decimal | None = None
    cost_total: Decimal | None = None
    costed_at: datetime | None = None

    def piece(self, piece_line_id: UUID) -> PieceLine:
        for piece in self.pieces:
            if piece.id == piece_line_id:
                return piece
        raise KeyError(piece_line_id)
