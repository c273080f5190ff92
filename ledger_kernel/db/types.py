"""
Module: ledger_kernel.db.types
Responsibility: Money precision, rounding and amount parsing shared by
    every model and service.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in the kernel.  All monetary amounts use Decimal
      with two decimal places.
    - round_money() is the ONLY sanctioned rounding function for money.

Failure modes:
    - InvalidAmountError from parse_money() on non-numeric, non-finite, oversized
      or over-precise input.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ledger_kernel.exceptions import InvalidAmountError

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# Caller amounts stay below 10**18 so that balance arithmetic and quantizing
# to cents never leave the default 28-digit decimal context.
MAX_AMOUNT_INTEGER_DIGITS = 18


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the specified decimal places.

    This is the ONLY sanctioned rounding function for monetary values in
    the kernel.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places
    return Decimal(value).quantize(Decimal(quantize_str), rounding=rounding)


def parse_money(
    value: object,
    decimal_places: int = MONEY_DECIMAL_PLACES,
) -> Decimal:
    """
    Parse a caller-supplied amount into a Decimal money value.

    Accepts Decimal, int, str and float (floats go through ``str()`` so the
    shortest repr is used, never the binary expansion).  Booleans are
    rejected.  The value is NOT required to be positive; callers that need
    a positive amount check it themselves.

    Preconditions: value is not None.
    Postconditions: Returns a finite Decimal quantized to ``decimal_places``.

    Raises:
        InvalidAmountError: If the value is missing, non-numeric, non-finite,
            too large, or has more than ``decimal_places`` fractional digits.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError(str(value), "amount is required")

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(str(value), "not a number") from None

    if not amount.is_finite():
        raise InvalidAmountError(str(value), "amount must be finite")

    if amount and amount.adjusted() >= MAX_AMOUNT_INTEGER_DIGITS:
        raise InvalidAmountError(
            str(value), f"at most {MAX_AMOUNT_INTEGER_DIGITS} integer digits allowed"
        )

    if amount.as_tuple().exponent < -decimal_places and amount != round_money(
        amount, decimal_places
    ):
        raise InvalidAmountError(
            str(value), f"at most {decimal_places} decimal places allowed"
        )

    return round_money(amount, decimal_places)
