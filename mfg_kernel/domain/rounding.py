"""
Rounding rules for derived quantities and amounts.

Money is presented to 2 decimal places and quantities to 3, both with
ROUND_HALF_UP.  Stored values keep full Numeric(38, 9) precision; rounding
happens only where a derived figure is produced.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")
ZERO = Decimal("0")


def round_money(value: Decimal) -> Decimal:
    """Round an amount to cents."""
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_quantity(value: Decimal) -> Decimal:
    """Round a quantity to three decimals."""
    return Decimal(value).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def clamp_non_negative(value: Decimal) -> Decimal:
    """Floor a derived figure at zero."""
    return value if value > ZERO else ZERO
