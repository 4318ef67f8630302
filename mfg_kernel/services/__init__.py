"""Kernel services (write side)."""

from mfg_kernel.services.ledger_writer import LedgerWriter

__all__ = ["LedgerWriter"]
