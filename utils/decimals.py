from decimal import (
    Decimal,
    Context,
    Inexact,
    InvalidOperation,
    DivisionByZero,
    Overflow,
    ROUND_HALF_UP,
    MAX_EMAX,
    MAX_PREC,
    MIN_EMIN,
    localcontext,
)
from fractions import Fraction
from functools import wraps
from typing import Any, Callable, TypeVar

# Addition, subtraction and multiplication never round; Inexact traps if one would
DECIMAL_CONTEXT = Context(
    prec=MAX_PREC,
    rounding=ROUND_HALF_UP,
    Emax=MAX_EMAX,
    Emin=MIN_EMIN,
    traps=[Inexact, InvalidOperation, DivisionByZero, Overflow],
)

# Quotients keep 20 decimal places, matching bignumber.js defaults
DIVISION_PLACES = 20

F = TypeVar("F", bound=Callable[..., Any])


def with_decimal_context(func: F) -> F:
    """Run ``func`` inside the gateway's exact decimal context.

    The context is applied with ``localcontext`` so concurrent tasks never
    share arithmetic settings.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        with localcontext(DECIMAL_CONTEXT):
            return func(*args, **kwargs)
    return wrapper  # type: ignore[return-value]


def divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide and round the quotient to DIVISION_PLACES with ROUND_HALF_UP.

    The quotient is computed as an exact fraction first, so the result is
    rounded once regardless of how many digits the operands carry.
    """
    if denominator == 0:
        raise ZeroDivisionError("Decimal division by zero")
    scaled = Fraction(numerator) / Fraction(denominator) * 10 ** DIVISION_PLACES
    whole, remainder = divmod(abs(scaled.numerator), scaled.denominator)
    if 2 * remainder >= scaled.denominator:
        whole += 1
    sign = "-" if scaled < 0 and whole else ""
    return Decimal(f"{sign}{whole}E-{DIVISION_PLACES}")


def format_decimal(value: Decimal) -> str:
    """Plain, normalized string form: no exponent, no trailing zeros, no '-0'."""
    if value == 0:
        return "0"
    return format(value.normalize(DECIMAL_CONTEXT), "f")
