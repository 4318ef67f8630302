"""
Module: mfg_engines.currency
Responsibility:
    Planning and applying a currency conversion of stored cost rates.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The costing service runs
    the plan over every affected row inside one transaction.

Invariants enforced:
    - ``rate`` is units of the target currency per one unit of the source
      currency and must be strictly positive.
    - Exactly one side of the conversion is the base currency.  Leaving the
      base currency multiplies by the base quote; returning to it divides by
      the base quote (the inverse of the given rate).
    - Every converted value is rounded to 2 decimals.

Failure modes:
    - InvalidExchangeRateError for rate <= 0.
    - ValidationError for malformed codes, identical currencies, or a
      conversion that does not involve the base currency.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from mfg_kernel.domain.rounding import round_money
from mfg_kernel.exceptions import InvalidExchangeRateError, ValidationError

_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")


class ConversionDirection(str, Enum):
    FROM_BASE = "from_base"
    TO_BASE = "to_base"


@dataclass(frozen=True)
class ConversionPlan:
    from_currency: str
    to_currency: str
    rate: Decimal
    direction: ConversionDirection
    base_quote: Decimal  # units of the non-base currency per base unit

    def apply(self, value: Decimal) -> Decimal:
        if self.direction is ConversionDirection.FROM_BASE:
            return round_money(value * self.base_quote)
        return round_money(value / self.base_quote)


def _check_code(code: str) -> str:
    normalized = (code or "").strip().upper()
    if not _CODE_PATTERN.match(normalized):
        raise ValidationError(f"Invalid currency code: {code!r}")
    return normalized


def plan_conversion(
    *,
    from_currency: str,
    to_currency: str,
    rate: Decimal,
    base_currency: str,
) -> ConversionPlan:
    """Validate a conversion request and work out its direction."""
    source = _check_code(from_currency)
    target = _check_code(to_currency)
    base = _check_code(base_currency)
    rate = Decimal(rate)

    if rate <= 0:
        raise InvalidExchangeRateError(rate)
    if source == target:
        raise ValidationError(f"Source and target currency are both {source}")

    if source == base:
        direction = ConversionDirection.FROM_BASE
        base_quote = rate
    elif target == base:
        direction = ConversionDirection.TO_BASE
        base_quote = Decimal("1") / rate
    else:
        raise ValidationError(
            f"Conversion {source}->{target} must involve the base currency {base}"
        )

    return ConversionPlan(
        from_currency=source,
        to_currency=target,
        rate=rate,
        direction=direction,
        base_quote=base_quote,
    )
