"""
Module: mfg_engines.progress
Responsibility:
    Work-order progress figures that drive automatic state changes and
    purchase requests: material coverage, piece completion, and material
    shortages.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from mfg_kernel.domain.rounding import clamp_non_negative, round_quantity

_ZERO = Decimal("0")


@dataclass(frozen=True)
class MaterialProgress:
    sku: str
    planned: Decimal
    issued: Decimal


@dataclass(frozen=True)
class PieceProgress:
    planned: Decimal
    done: Decimal


@dataclass(frozen=True)
class Shortage:
    sku: str
    quantity: Decimal


def material_coverage(lines: Sequence[MaterialProgress]) -> Decimal:
    """
    Share of planned material already issued, between 0 and 1.

    Over-issue on one line does not compensate for another: each line
    contributes at most its planned quantity.  Lines planned at zero are
    ignored; nothing planned gives 0.
    """
    planned = _ZERO
    issued = _ZERO
    for line in lines:
        if line.planned > 0:
            planned += line.planned
            issued += min(max(line.issued, _ZERO), line.planned)
    if planned == 0:
        return _ZERO
    return issued / planned


def all_pieces_complete(pieces: Sequence[PieceProgress]) -> bool:
    """True when there is at least one piece line and none is short."""
    return bool(pieces) and all(p.done >= p.planned for p in pieces)


def compute_shortages(
    lines: Sequence[MaterialProgress],
    stock: Mapping[str, Decimal],
) -> list[Shortage]:
    """
    Quantities to requisition: still-needed material not covered by stock.

    need = max(planned - issued, 0); shortage = max(need - stock, 0).
    """
    shortages = []
    for line in lines:
        need = clamp_non_negative(line.planned - line.issued)
        missing = clamp_non_negative(need - stock.get(line.sku, _ZERO))
        if missing > 0:
            shortages.append(Shortage(sku=line.sku, quantity=round_quantity(missing)))
    return shortages
