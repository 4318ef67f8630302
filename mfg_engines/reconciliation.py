"""
Module: mfg_engines.reconciliation
Responsibility:
    Pending-quantity computations for purchasing documents:
    request-line coverage (requested vs. placed on orders) and order-line
    receipt (ordered vs. physically received).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The purchasing selector
    aggregates covered/received quantities from the database and passes
    them in; nothing computed here is stored.

Invariants enforced:
    - pending = max(0, expected - done), rounded to 3 decimals.  Over-ordering
      and over-delivery floor at zero and never go negative.
    - Line amount = ordered quantity * unit cost, rounded to 2 decimals.
    - Document totals are sums of the (clamped) line figures.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from mfg_engines.tracer import traced_engine
from mfg_kernel.domain.rounding import clamp_non_negative, round_money, round_quantity

_ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Request-line coverage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestedLine:
    line_id: UUID
    sku: str
    requested: Decimal


@dataclass(frozen=True)
class RequestLineCoverage:
    line_id: UUID
    sku: str
    requested: Decimal
    covered: Decimal
    pending: Decimal


@dataclass(frozen=True)
class RequestCoverage:
    request_id: UUID
    lines: tuple[RequestLineCoverage, ...]
    ordered_total: Decimal
    pending_total: Decimal

    def line(self, line_id: UUID) -> RequestLineCoverage:
        for line in self.lines:
            if line.line_id == line_id:
                return line
        raise KeyError(line_id)

    @property
    def is_fully_covered(self) -> bool:
        return self.pending_total == 0


@traced_engine("request_coverage", "1.0", fingerprint_fields=("lines", "covered_by_line"))
def compute_request_coverage(
    *,
    request_id: UUID,
    lines: Sequence[RequestedLine],
    covered_by_line: Mapping[UUID, Decimal],
) -> RequestCoverage:
    results = []
    for line in lines:
        covered = round_quantity(covered_by_line.get(line.line_id, _ZERO))
        pending = round_quantity(clamp_non_negative(line.requested - covered))
        results.append(
            RequestLineCoverage(
                line_id=line.line_id,
                sku=line.sku,
                requested=line.requested,
                covered=covered,
                pending=pending,
            )
        )
    return RequestCoverage(
        request_id=request_id,
        lines=tuple(results),
        ordered_total=sum((r.covered for r in results), _ZERO),
        pending_total=sum((r.pending for r in results), _ZERO),
    )


# ---------------------------------------------------------------------------
# Order-line receipt
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderedLine:
    line_id: UUID
    sku: str
    ordered: Decimal
    unit_cost: Decimal


@dataclass(frozen=True)
class OrderLineReceipt:
    line_id: UUID
    sku: str
    ordered: Decimal
    unit_cost: Decimal
    received: Decimal
    pending: Decimal
    amount: Decimal


@dataclass(frozen=True)
class OrderReceipt:
    order_id: UUID
    lines: tuple[OrderLineReceipt, ...]
    pending_total: Decimal
    amount_total: Decimal

    def line_for(self, sku: str) -> OrderLineReceipt:
        for line in self.lines:
            if line.sku == sku:
                return line
        raise KeyError(sku)

    @property
    def is_fully_received(self) -> bool:
        return self.pending_total == 0

    @property
    def has_receipts(self) -> bool:
        return any(line.received > 0 for line in self.lines)


@traced_engine("order_receipt", "1.0", fingerprint_fields=("lines", "received_by_sku"))
def compute_order_receipt(
    *,
    order_id: UUID,
    lines: Sequence[OrderedLine],
    received_by_sku: Mapping[str, Decimal],
) -> OrderReceipt:
    results = []
    for line in lines:
        received = round_quantity(received_by_sku.get(line.sku, _ZERO))
        pending = round_quantity(clamp_non_negative(line.ordered - received))
        results.append(
            OrderLineReceipt(
                line_id=line.line_id,
                sku=line.sku,
                ordered=line.ordered,
                unit_cost=line.unit_cost,
                received=received,
                pending=pending,
                amount=round_money(line.ordered * line.unit_cost),
            )
        )
    return OrderReceipt(
        order_id=order_id,
        lines=tuple(results),
        pending_total=sum((r.pending for r in results), _ZERO),
        amount_total=sum((r.amount for r in results), _ZERO),
    )
