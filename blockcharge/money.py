"""Money helpers: every stored amount is a Decimal rounded half-up to the minor unit."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Convert int/float/str/Decimal (or None) to a 2dp Decimal using ROUND_HALF_UP.

    Floats go through ``str`` first so 2.675 stays 2.675 rather than its binary
    approximation.

    Raises:
        ValueError: If the value cannot be read as a number
    """
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a monetary amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def outstanding(total_amount_due: Decimal, amount_paid: Decimal) -> Decimal:
    """Outstanding balance, floored at zero (overpayment never goes negative)."""
    return max(ZERO, to_money(total_amount_due) - to_money(amount_paid))
