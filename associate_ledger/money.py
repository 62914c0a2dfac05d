"""
Money Arithmetic Module

Fixed-point helpers for ledger amounts. Every amount at rest carries exactly
two decimal places and every arithmetic step is re-quantized, so sums of
parts stay exact. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Iterable, Union
import re

# High precision for intermediate factors such as (1 + r) ** n
getcontext().prec = 28

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

Numeric = Union[Decimal, int, float, str]

# Currency symbols and whitespace allowed around or inside typed amounts
CURRENCY_NOISE = r"[\s$€£¥']"


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert a numeric input to Decimal without quantizing

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.

    Raises:
        ValueError: If the value cannot be read as a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        result = decimal_from_string(value)
    else:
        raise ValueError(f"Cannot convert {value!r} to Decimal")

    if not result.is_finite():
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    return result


def round_money(value: Numeric) -> Decimal:
    """
    Quantize to two places, half-up

    Raises:
        ValueError: If the value is not a finite number or too large to hold in cents
    """
    try:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount {value!r} is out of range")


def sum_money(values: Iterable[Numeric]) -> Decimal:
    """Sum amounts, quantizing each term and the total"""
    total = ZERO
    for value in values:
        total = round_money(total + round_money(value))
    return total


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Strip currency symbols and whitespace; anything else must parse as a number
    clean_value = re.sub(CURRENCY_NOISE, '', value)

    if ',' in clean_value and '.' in clean_value:
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value:
        # "1234,50" is a decimal comma, "1,234567" and "1,234,567" are not
        parts = clean_value.split(',')
        if len(parts) == 2 and len(parts[1]) <= 2:
            clean_value = clean_value.replace(',', '.')
        else:
            clean_value = clean_value.replace(',', '')

    try:
        result = Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")

    if not result.is_finite():
        raise ValueError(f"Cannot convert '{value}' to Decimal")
    return result


def format_money(amount: Decimal) -> str:
    """Format for display, e.g. 12,345.60"""
    return f"{round_money(amount):,.2f}"
