"""Decimal helpers shared by the ledger, simplifier and reconciler."""
from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Any

getcontext().prec = 28

CENTS = Decimal("0.01")
ZERO = Decimal("0")

# Balances smaller than this are rounding noise
BALANCE_EPSILON = Decimal("0.005")
# Two settlement amounts within this are the same payment
SETTLEMENT_EPSILON = Decimal("0.01")
# Allowed |sum| of a single-currency balance set
CONSERVATION_TOLERANCE = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert int/float/str to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def qround(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_cents(value: Any) -> int:
    return int(qround(value) * 100)


def is_zero(value: Any, epsilon: Decimal = BALANCE_EPSILON) -> bool:
    return abs(to_decimal(value)) < epsilon


def amounts_match(a: Any, b: Any, epsilon: Decimal = SETTLEMENT_EPSILON) -> bool:
    """Compare in whole cents so the result agrees with cent-based keys."""
    return abs(to_cents(a) - to_cents(b)) <= to_cents(epsilon)
