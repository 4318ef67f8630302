"""
Pure domain layer.

Value objects and rules with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock)
"""

from mfg_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from mfg_kernel.domain.document_ref import DocumentKind, DocumentRef
from mfg_kernel.domain.movements import (
    MOVEMENT_SIGN,
    REFERENCE_COST_KINDS,
    KardexLine,
    MovementKind,
    MovementRecord,
    StockPosition,
    signed_quantity,
)
from mfg_kernel.domain.rounding import round_money, round_quantity
from mfg_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "DocumentKind",
    "DocumentRef",
    "MOVEMENT_SIGN",
    "REFERENCE_COST_KINDS",
    "KardexLine",
    "MovementKind",
    "MovementRecord",
    "StockPosition",
    "signed_quantity",
    "round_money",
    "round_quantity",
    "Guard",
    "Transition",
    "Workflow",
]
