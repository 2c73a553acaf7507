"""
Module: credit_ledger.db.types
Responsibility: Annotated type aliases and the rounding helper for credit and
    hour amounts.  Centralizes precision so that every model and service
    uses identical definitions.
Architecture position: Ledger > DB.  May be imported by models/, domain/,
    services/ and selectors/.

Invariants enforced:
    - round_credits() is the ONLY sanctioned rounding function for credit
      and hour values.
    - No floats anywhere in the ledger.  All amounts are Decimal.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated

from sqlalchemy import Numeric, String


# Credits and hours: 9 digits total, 2 decimal places
Credits = Annotated[Decimal, Numeric(9, 2)]
Hours = Annotated[Decimal, Numeric(9, 2)]

ShortCode = Annotated[str, String(50)]
LongText = Annotated[str, String(2000)]

CREDIT_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0.00")
# Largest magnitude a Numeric(9, 2) column holds
MAX_CREDIT_AMOUNT = Decimal("9999999.99")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int, str or Decimal to Decimal.

    Floats are refused: binary floating point cannot represent most credit
    amounts exactly.

    Raises:
        TypeError: If value is a float or another unsupported type.
        ValueError: If a string is not numeric.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Credit amounts must be Decimal, int or str, not {type(value).__name__}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str)):
        try:
            return Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric value: {value!r}") from exc
    raise TypeError(f"Unsupported amount type: {type(value).__name__}")


def round_credits(
    value: Decimal,
    decimal_places: int = CREDIT_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a credit or hour value to the storage precision.

    This is the ONLY sanctioned rounding function for credit values.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def has_excess_precision(value: Decimal, decimal_places: int = CREDIT_DECIMAL_PLACES) -> bool:
    """True if value carries more decimal places than storage keeps."""
    return round_credits(value, decimal_places) != value
