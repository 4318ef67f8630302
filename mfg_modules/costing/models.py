"""
Costing Domain Models (``mfg_modules.costing.models``).

Frozen DTOs for costing parameters, machine categories and the outcome of a
currency conversion.  ``ParamType`` is shared with the configuration schema
so seeded defaults and stored rows use the same vocabulary.
"""

from dataclasses import dataclass
from decimal import Decimal

from mfg_config.schema import ParamType


@dataclass(frozen=True)
class CostingParam:
    key: str
    param_type: ParamType
    value_number: Decimal | None = None
    value_text: str | None = None
    label: str | None = None
    unit: str | None = None
    group: str | None = None

    @property
    def value(self) -> Decimal | str | None:
        if self.param_type is ParamType.TEXT:
            return self.value_text
        return self.value_number


@dataclass(frozen=True)
class MachineCostingCategory:
    """Per-machine-type rates; a None rate falls through to the global parameter."""
    name: str
    labor_cost: Decimal | None = None
    depr_per_hour: Decimal | None = None
    tooling_per_piece: Decimal | None = None
    active: bool = True


@dataclass(frozen=True)
class CurrencyConversionResult:
    from_currency: str
    to_currency: str
    rate: Decimal
    direction: str
    categories_converted: int
    params_converted: int
