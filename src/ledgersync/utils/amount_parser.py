"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


CENTS = Decimal("0.01")


def parse_amount(value: str | int | float | Decimal) -> Decimal:
    """Parse an amount into a Decimal rounded to cents.

    Handles numbers as well as strings such as:
    - "123.45"
    - "$123.45"
    - "-$123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        value: Amount string or number

    Returns:
        Decimal amount

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, bool):
        raise ValueError(f"Could not parse amount '{value}'")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        amount = Decimal(str(value))
    else:
        amount = _parse_amount_string(value)

    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{value}'")
    try:
        return amount.quantize(CENTS)
    except InvalidOperation:
        raise ValueError(f"Amount out of range '{value}'") from None


def _parse_amount_string(amount_str: str | None) -> Decimal:
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        is_negative = True
        cleaned = cleaned[1:-1]

    # Remove currency symbols, thousands separators and inner whitespace
    cleaned = re.sub(r"[$€£¥,\s]", "", cleaned)

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'") from None

    return -amount if is_negative else amount
