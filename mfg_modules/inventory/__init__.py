"""
Inventory Module (``mfg_modules.inventory``).

Responsibility
--------------
Product registration, manual stock movements, stock and cost reads, the
weighted-average reference-cost maintenance, stock positions and kardex.
Stock itself is never stored: it is always derived from the kernel ledger.

Architecture
------------
Layer: **Modules** -- a thin service over ``mfg_kernel`` (ledger writer,
stock selector) and ``mfg_engines.valuation``.
"""

from mfg_modules.inventory.models import ProductInfo, RebaselineSummary
from mfg_modules.inventory.service import InventoryService

__all__ = ["InventoryService", "ProductInfo", "RebaselineSummary"]
