"""
Manufacturing Kernel

The append-only stock ledger and its supporting infrastructure:
- Immutable, signed stock movements
- Stock and reference cost derived on read
- Typed errors and structured logging
- Database engine and session management
"""

__version__ = "0.1.0"
