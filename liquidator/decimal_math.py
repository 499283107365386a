"""Exact decimal helpers — every division names its rounding."""
from __future__ import annotations

from contextlib import contextmanager
from decimal import (
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    localcontext,
)
from typing import Iterator, Union

DecimalLike = Union[Decimal, int, str]

# Ambient context for all balance, price and seizure arithmetic.
AMBIENT_PRECISION = 60
AMBIENT_ROUNDING = ROUND_HALF_EVEN

# Pinned scale for the borrower net estimate.
NET_ESTIMATE_SCALE = 15

ZERO = Decimal(0)
ONE = Decimal(1)


def to_decimal(value: DecimalLike) -> Decimal:
    """Normalise a numeric-like value to Decimal.

    Floats are rejected; they cannot carry exact on-chain amounts.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Refusing inexact value {value!r}")
    return Decimal(value)


@contextmanager
def ambient() -> Iterator[Context]:
    """Run a block under the ambient arithmetic context."""
    with localcontext() as ctx:
        ctx.prec = AMBIENT_PRECISION
        ctx.rounding = AMBIENT_ROUNDING
        yield ctx


def quantize(value: Decimal, scale: int, rounding: str = AMBIENT_ROUNDING) -> Decimal:
    """Round ``value`` to ``scale`` fractional digits."""
    with ambient():
        return value.quantize(Decimal(1).scaleb(-scale), rounding=rounding)


def quantize_half_ceiling(value: Decimal, scale: int) -> Decimal:
    """Round half toward positive infinity at ``scale`` fractional digits.

    ``decimal`` has no half-ceiling mode: ties go away from zero for
    non-negative values and toward zero for negative ones.
    """
    rounding = ROUND_HALF_UP if value >= 0 else ROUND_HALF_DOWN
    return quantize(value, scale, rounding)


def divide(
    numerator: DecimalLike,
    denominator: DecimalLike,
    scale: int | None = None,
    rounding: str = AMBIENT_ROUNDING,
) -> Decimal:
    """Divide exactly under the ambient context.

    With ``scale`` the quotient is rounded to that many fractional digits
    using ``rounding``; otherwise it carries the ambient precision.
    """
    num = to_decimal(numerator)
    den = to_decimal(denominator)
    if den == 0:
        raise ZeroDivisionError(f"Division of {num} by zero")
    with ambient():
        quotient = num / den
    if scale is None:
        return quotient
    return quantize(quotient, scale, rounding)


def divide_half_ceiling(numerator: DecimalLike, denominator: DecimalLike, scale: int) -> Decimal:
    """Quotient rounded half toward positive infinity at ``scale`` places.

    The working quotient is floored rather than rounded, so the half-ceiling
    quantize is the only rounding that can move it across a tie.
    """
    num = to_decimal(numerator)
    den = to_decimal(denominator)
    if den == 0:
        raise ZeroDivisionError(f"Division of {num} by zero")
    with localcontext() as ctx:
        # Enough digits to reach two places past ``scale``.
        magnitude = num.adjusted() - den.adjusted() + 1
        ctx.prec = max(AMBIENT_PRECISION, magnitude + scale + 2)
        ctx.rounding = ROUND_FLOOR
        quotient = num / den
    return quantize_half_ceiling(quotient, scale)


def multiply(*factors: DecimalLike) -> Decimal:
    """Product of ``factors`` under the ambient context."""
    result = ONE
    with ambient():
        for factor in factors:
            result = result * to_decimal(factor)
    return result


def from_raw(amount: DecimalLike, decimals: int) -> Decimal:
    """Convert a raw on-chain amount to whole units (``amount / 10^decimals``)."""
    with ambient():
        return to_decimal(amount).scaleb(-decimals)
