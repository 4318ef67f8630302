"""Selectors for the manufacturing kernel (read side)."""

from mfg_kernel.selectors.stock_selector import StockSelector

__all__ = ["StockSelector"]
