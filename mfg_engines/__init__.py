"""
Module: mfg_engines
Responsibility:
    Re-exports the pure calculation engines: weighted-average valuation,
    rate resolution, cost rollup, work-order progress, purchase
    reconciliation and currency conversion.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import mfg_kernel.domain and mfg_kernel.exceptions only.
    MUST NOT import SQLAlchemy, mfg_modules, mfg_services or mfg_config.

Invariants enforced:
    - Purity: engines never read the clock or the environment.
    - Decimal-only arithmetic.
    - Determinism: identical inputs always produce identical outputs.
"""

from mfg_engines.currency import ConversionDirection, ConversionPlan, plan_conversion
from mfg_engines.progress import (
    MaterialProgress,
    PieceProgress,
    Shortage,
    all_pieces_complete,
    compute_shortages,
    material_coverage,
)
from mfg_engines.rates import (
    CategoryRates,
    RateCandidate,
    RateSource,
    ResolvedRate,
    ResolvedRates,
    resolve_rate,
    resolve_work_order_rates,
)
from mfg_engines.reconciliation import (
    OrderedLine,
    OrderLineReceipt,
    OrderReceipt,
    RequestCoverage,
    RequestedLine,
    RequestLineCoverage,
    compute_order_receipt,
    compute_request_coverage,
)
from mfg_engines.rollup import CostedMovement, CostSnapshot, RollupInputs, compute_cost_snapshot
from mfg_engines.valuation import ReceiptSample, weighted_average_cost

__all__ = [
    "ConversionDirection",
    "ConversionPlan",
    "plan_conversion",
    "MaterialProgress",
    "PieceProgress",
    "Shortage",
    "all_pieces_complete",
    "compute_shortages",
    "material_coverage",
    "CategoryRates",
    "RateCandidate",
    "RateSource",
    "ResolvedRate",
    "ResolvedRates",
    "resolve_rate",
    "resolve_work_order_rates",
    "OrderedLine",
    "OrderLineReceipt",
    "OrderReceipt",
    "RequestCoverage",
    "RequestedLine",
    "RequestLineCoverage",
    "compute_order_receipt",
    "compute_request_coverage",
    "CostedMovement",
    "CostSnapshot",
    "RollupInputs",
    "compute_cost_snapshot",
    "ReceiptSample",
    "weighted_average_cost",
]
