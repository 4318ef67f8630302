"""
Module: mfg_engines.rates
Responsibility:
    Ordered resolution of the four work-order cost rates (labor, rent,
    depreciation, tooling) from their candidate sources.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The costing module loads
    the machine category and the global parameters; this module only decides
    which value wins.

Invariants enforced:
    - Fallback order per rate: machine category -> global parameter -> zero.
    - An inactive category contributes nothing.
    - Every resolved rate records where it came from.
    - A missing rate is never an error; it resolves to zero.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class RateSource(str, Enum):
    CATEGORY = "category"
    PARAM = "param"
    DEFAULT = "default"


@dataclass(frozen=True)
class RateCandidate:
    """One possible source for a rate; ``value`` None means undefined there."""

    source: RateSource
    label: str
    value: Decimal | None


@dataclass(frozen=True)
class ResolvedRate:
    value: Decimal
    source: RateSource
    label: str


ZERO_RATE = ResolvedRate(value=Decimal("0"), source=RateSource.DEFAULT, label="zero")


def resolve_rate(candidates: Sequence[RateCandidate]) -> ResolvedRate:
    """First candidate with a defined value wins; otherwise zero."""
    for candidate in candidates:
        if candidate.value is not None:
            return ResolvedRate(
                value=Decimal(candidate.value),
                source=candidate.source,
                label=candidate.label,
            )
    return ZERO_RATE


@dataclass(frozen=True)
class CategoryRates:
    """Rates defined on a machine costing category."""

    name: str
    labor_cost: Decimal | None = None
    depr_per_hour: Decimal | None = None
    tooling_per_piece: Decimal | None = None
    active: bool = True


# Global parameter keys consulted when the category leaves a rate undefined.
LABOR_PARAM = "hourlyRate"
RENT_PARAM = "rentPerHour"
DEPRECIATION_PARAM = "deprPerHour"
TOOLING_PARAM = "toolingPerPiece"


@dataclass(frozen=True)
class ResolvedRates:
    labor: ResolvedRate
    rent: ResolvedRate
    depreciation: ResolvedRate
    tooling: ResolvedRate

    def as_dict(self) -> dict[str, dict[str, str]]:
        return {
            name: {"value": str(rate.value), "source": rate.source.value, "label": rate.label}
            for name, rate in (
                ("labor", self.labor),
                ("rent", self.rent),
                ("depreciation", self.depreciation),
                ("tooling", self.tooling),
            )
        }


def resolve_work_order_rates(
    category: CategoryRates | None,
    params: Mapping[str, Decimal | None],
) -> ResolvedRates:
    """
    Resolve every rate a cost rollup needs.

    Args:
        category: The work order's machine category, or None when unset
            or unknown.
        params: Numeric global parameters by key.
    """
    cat = category if category is not None and category.active else None

    def chain(category_value: Decimal | None, param_key: str) -> ResolvedRate:
        candidates = []
        if cat is not None:
            candidates.append(RateCandidate(RateSource.CATEGORY, cat.name, category_value))
        candidates.append(RateCandidate(RateSource.PARAM, param_key, params.get(param_key)))
        return resolve_rate(candidates)

    return ResolvedRates(
        labor=chain(cat.labor_cost if cat else None, LABOR_PARAM),
        # Categories carry no rent rate; rent is always a shop-wide figure.
        rent=resolve_rate([RateCandidate(RateSource.PARAM, RENT_PARAM, params.get(RENT_PARAM))]),
        depreciation=chain(cat.depr_per_hour if cat else None, DEPRECIATION_PARAM),
        tooling=chain(cat.tooling_per_piece if cat else None, TOOLING_PARAM),
    )
