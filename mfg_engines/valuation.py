"""
Module: mfg_engines.valuation
Responsibility:
    Weighted-average unit cost over a window of purchase receipts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The caller selects the
    window (most recent N receipts) and passes the samples in.

Invariants enforced:
    - Only samples with positive quantity take part.
    - Result is sum(q * c) / sum(q) rounded to 2 decimals (ROUND_HALF_UP).
    - No usable samples -> None, never zero: "no history" and "free" differ.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from mfg_engines.tracer import traced_engine
from mfg_kernel.domain.rounding import round_money


@dataclass(frozen=True)
class ReceiptSample:
    """Quantity and unit cost of one receipt."""

    quantity: Decimal
    unit_cost: Decimal


@traced_engine("weighted_average", "1.0", fingerprint_fields=("samples",))
def weighted_average_cost(*, samples: Sequence[ReceiptSample]) -> Decimal | None:
    """
    Quantity-weighted mean unit cost of ``samples``.

    Returns:
        The rounded average, or None when no sample has positive quantity.
    """
    usable = [s for s in samples if s.quantity > 0]
    total_quantity = sum((s.quantity for s in usable), Decimal("0"))
    if total_quantity <= 0:
        return None
    total_value = sum((s.quantity * s.unit_cost for s in usable), Decimal("0"))
    return round_money(total_value / total_quantity)
