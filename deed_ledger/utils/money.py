"""Fixed-point money helpers; amounts never pass through binary floats"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Decimal) -> Decimal:
    """Quantize to cents, half-up"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_decimal(value) -> Decimal:
    """
    Parse a money value into Decimal, normalizing comma/dot separators.

    Handles both US and European formats:
    - "1,234.56" -> 1234.56
    - "1.234,56" -> 1234.56
    - "1234,56"  -> 1234.56
    - "1,234"    -> 1234

    Blank input parses to 0. Unparseable text raises ValueError.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return _finite(value, value)
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr() round-trips the shortest decimal form, avoiding 0.1 -> 0.1000000000000000055
        return _finite(Decimal(repr(value)), value)

    text = str(value).strip().replace("$", "").replace(" ", "")
    if not text:
        return ZERO

    comma_count = text.count(",")
    dot_count = text.count(".")

    if comma_count and dot_count:
        # Whichever separator appears last is the decimal point
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif comma_count:
        if comma_count > 1:
            text = text.replace(",", "")
        else:
            whole, fraction = text.split(",")
            text = f"{whole}.{fraction}" if len(fraction) <= 2 else whole + fraction

    try:
        result = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")
    return _finite(result, value)


def _finite(amount: Decimal, raw) -> Decimal:
    """NaN and Infinity are not amounts"""
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {raw!r}")
    return amount


def parse_optional_decimal(value) -> Optional[Decimal]:
    """Like parse_decimal, but blank input yields None instead of 0"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_decimal(value)


def money_text(value: Optional[Decimal]) -> Optional[str]:
    """Canonical 2-place text form used for audit values and exports"""
    if value is None:
        return None
    return str(to_money(value))
