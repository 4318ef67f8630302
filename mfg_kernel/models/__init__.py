"""Kernel ORM models: the product catalog and the stock ledger."""

from mfg_kernel.models.movement import StockMovement
from mfg_kernel.models.product import Product

__all__ = ["Product", "StockMovement"]
