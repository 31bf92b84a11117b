from decimal import Decimal, ROUND_HALF_UP


MONEY_QUANT = Decimal("0.01")


def money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def to_decimal(value: object) -> Decimal | None:
    """Coerce a stored amount to a finite Decimal, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value))
    except Exception:
        return None
    if not parsed.is_finite():
        return None
    return parsed
