"""
Fixed-point currency helpers.

Amounts are stored as integer cents; Decimal is only used at the edges.
"""

from decimal import Decimal, InvalidOperation

from .errors import InvalidInputError

_CENT = Decimal("0.01")

# Signed 64-bit range of the BIGINT columns holding keys and cents
BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1


def in_bigint_range(value: int) -> bool:
    return BIGINT_MIN <= value <= BIGINT_MAX


def to_cents(amount) -> int:
    """
    Convert an amount in dollars to integer cents.

    Every input is a dollar amount: ``19``, ``Decimal("19")`` and ``"19"`` all
    give 1900. Callers already holding cents pass them straight to the insertable.

    Args:
        amount: int, Decimal, or string like "19.99" / "$1,019.99".

    Returns:
        Amount in cents, e.g. "19.99" -> 1999.

    Raises:
        InvalidInputError: For floats, bools, unparsable strings, sub-cent precision
            or amounts outside the BIGINT range.
    """
    if isinstance(amount, bool) or isinstance(amount, float):
        raise InvalidInputError(f"Refusing to convert {type(amount).__name__} {amount!r} to cents")
    if isinstance(amount, int):
        amount = Decimal(amount)
    elif isinstance(amount, str):
        s = amount.replace("$", "").replace(",", "").strip()
        try:
            amount = Decimal(s)
        except InvalidOperation:
            raise InvalidInputError(f"Not a currency amount: {amount!r}")
    if not isinstance(amount, Decimal):
        raise InvalidInputError(f"Unsupported amount type: {type(amount).__name__}")
    if not amount.is_finite():
        raise InvalidInputError(f"Not a finite amount: {amount}")
    try:
        exact = amount.quantize(_CENT) == amount
    except InvalidOperation:
        raise InvalidInputError(f"Amount {amount} is out of range")
    if not exact:
        raise InvalidInputError(f"Amount {amount} has sub-cent precision")
    cents = int(amount.scaleb(2))
    if not in_bigint_range(cents):
        raise InvalidInputError(f"Amount {amount} is out of range")
    return cents


def format_usd(cents: int) -> str:
    """Render integer cents as a dollar string, e.g. 1999 -> "$19.99"."""
    sign = "-" if cents < 0 else ""
    dollars, rem = divmod(abs(cents), 100)
    return f"{sign}${dollars:,}.{rem:02d}"
