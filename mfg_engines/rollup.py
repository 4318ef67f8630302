"""
Module: mfg_engines.rollup
Responsibility:
    Work-order cost rollup: materials, labor, overhead and total from the
    issued movements, logged hours and completed pieces of one work order.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The work-order service
    gathers the inputs, resolves rates (mfg_engines.rates) and persists the
    returned snapshot.

Invariants enforced:
    - Materials = sum(|q| * c) over outgoing movements only, rounded to 2.
    - Labor = sum(hours * labor rate), rounded to 2.
    - Overhead = hours * (rent + depreciation) + pieces * tooling, rounded to 2.
    - Total is the sum of the already-rounded components, so
      total == materials + labor + overhead exactly.
    - Same inputs, same snapshot: the rollup is never incremental.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from mfg_engines.rates import ResolvedRates
from mfg_engines.tracer import traced_engine
from mfg_kernel.domain.rounding import round_money

_ZERO = Decimal("0")


@dataclass(frozen=True)
class CostedMovement:
    """Signed quantity and unit cost of one movement tied to the work order."""

    quantity: Decimal
    unit_cost: Decimal


@dataclass(frozen=True)
class RollupInputs:
    movements: tuple[CostedMovement, ...] = ()
    hours: tuple[Decimal, ...] = ()
    pieces_completed: Decimal = _ZERO

    @property
    def hours_total(self) -> Decimal:
        return sum(self.hours, _ZERO)


@dataclass(frozen=True)
class CostSnapshot:
    materials: Decimal
    labor: Decimal
    overhead: Decimal
    total: Decimal
    hours_total: Decimal = _ZERO
    pieces_completed: Decimal = _ZERO

    def as_tuple(self) -> tuple[Decimal, Decimal, Decimal, Decimal]:
        return (self.materials, self.labor, self.overhead, self.total)


def materials_cost(movements: Sequence[CostedMovement]) -> Decimal:
    return round_money(
        sum((abs(m.quantity) * m.unit_cost for m in movements if m.quantity < 0), _ZERO)
    )


@traced_engine("cost_rollup", "1.0", fingerprint_fields=("inputs", "rates"))
def compute_cost_snapshot(*, inputs: RollupInputs, rates: ResolvedRates) -> CostSnapshot:
    """Compute the four-figure cost snapshot for one work order."""
    hours_total = inputs.hours_total

    materials = materials_cost(inputs.movements)
    labor = round_money(sum((h * rates.labor.value for h in inputs.hours), _ZERO))
    overhead = round_money(
        hours_total * (rates.rent.value + rates.depreciation.value)
        + inputs.pieces_completed * rates.tooling.value
    )
    total = round_money(materials + labor + overhead)

    return CostSnapshot(
        materials=materials,
        labor=labor,
        overhead=overhead,
        total=total,
        hours_total=hours_total,
        pieces_completed=inputs.pieces_completed,
    )
