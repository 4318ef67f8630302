"""
Inventory Domain Models (``mfg_modules.inventory.models``).

Frozen DTOs returned by ``InventoryService``.  Movement and stock-position
DTOs are kernel types (``mfg_kernel.domain.movements``) and are not
repeated here.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class ProductInfo:
    """Catalog data of one product."""
    id: UUID
    sku: str
    name: str
    category: str | None
    unit: str
    reference_cost: Decimal
    min_stock: Decimal | None = None


@dataclass(frozen=True)
class RebaselineSummary:
    """Outcome of a bulk reference-cost re-baseline."""
    sample_size: int
    updated: int
    skipped: int
    costs: dict[str, Decimal] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.updated + self.skipped
