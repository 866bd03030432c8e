"""
Module: fiscal_kernel.db.types
Responsibility: Coercion and rounding helpers for monetary values.  Centralizes precision and rounding so that
    every model, selector, and calculator uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/, and modules.  MUST NOT import from any of those.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for monetary
      values.  Statutory forms are computed in cents (2 places).
    - No floats.  to_money() refuses float input outright.

Failure modes:
    - ValueError on non-numeric strings or float input to to_money().

Audit relevance:
    The last cent of a tax form depends on the rounding mode and on when
    rounding happens.  Keeping both here makes them reviewable in one place.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0.00")


def money_from_str(value: str) -> Decimal:
    """
    Create a monetary Decimal from a string.

    Postconditions: Returns a Decimal (not rounded).

    Raises:
        ValueError: If value cannot be converted to Decimal.
    """
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc


def to_money(value: Decimal | int | str | None) -> Decimal:
    """
    Coerce an input amount to Decimal.

    None becomes zero.  Floats are rejected because they cannot represent
    cents exactly; NaN and infinities are rejected outright.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, float):
        raise ValueError(f"Monetary amounts must not be float: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    else:
        amount = money_from_str(value)
    if not amount.is_finite():
        raise ValueError(f"Monetary amounts must be finite: {value!r}")
    return amount


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the specified decimal places.

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized to ``decimal_places`` using
        ``rounding``.
    """
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)
