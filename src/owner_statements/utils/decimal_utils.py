"""Decimal utilities for statement calculations.

All monetary calculations use Decimal. Intermediate sums stay unrounded;
rounding to cents happens once, when a statement is assembled.
"""

import re
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Currency symbols, thousands separators and whitespace stripped before parsing
_AMOUNT_NOISE = re.compile(r"[$€£,\s]")

# Parentheses-enclosed negatives: ($1,234.56)
_PARENS_NEGATIVE = re.compile(r"^\(\s*(.+?)\s*\)$")


def parse_amount(raw_amount: object) -> Decimal:
    """Parse a raw amount into a signed Decimal.

    Handles plain numbers, currency symbols, thousands separators, and
    accounting-style parentheses. The sign is preserved: costs are negative,
    upsells and credits positive.

    Args:
        raw_amount: String or number to parse.

    Returns:
        Signed Decimal amount.

    Raises:
        ValueError: If the amount cannot be parsed.
    """
    if isinstance(raw_amount, Decimal):
        return raw_amount
    if isinstance(raw_amount, (int, float)) and not isinstance(raw_amount, bool):
        return Decimal(str(raw_amount))

    if raw_amount is None or str(raw_amount).strip() == "":
        raise ValueError("Empty amount string")

    amount_str = str(raw_amount).strip()
    negative = False
    parens = _PARENS_NEGATIVE.match(amount_str)
    if parens:
        amount_str = parens.group(1)
        negative = True

    amount_str = _AMOUNT_NOISE.sub("", amount_str)
    # "-$12.00" leaves "-12.00"; "$-12.00" too
    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse amount '{raw_amount}': {e}") from e

    return -abs(amount) if negative else amount


def safe_decimal(value: Optional[object], default: Decimal = ZERO) -> Decimal:
    """Safely convert a value to Decimal.

    Args:
        value: Value to convert (Decimal, int, float, string, or None).
        default: Returned when value is None or unparseable.

    Returns:
        Decimal value or default.
    """
    if value is None or isinstance(value, bool):
        return default

    try:
        if isinstance(value, Decimal):
            return value
        if isinstance(value, (int, float, str)):
            # Going through str keeps 0.1 as 0.1 rather than its binary expansion
            return Decimal(str(value).strip())
        return default
    except (InvalidOperation, ValueError):
        return default


def optional_decimal(value: Optional[object]) -> Optional[Decimal]:
    """Convert to Decimal, keeping None (and blank strings) as None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    result = safe_decimal(value, default=Decimal("NaN"))
    if result.is_nan():
        raise ValueError(f"Cannot parse amount '{value}'")
    return result


def round_money(amount: Decimal) -> Decimal:
    """Round to cents using round-half-up."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def ceil_to_multiple(amount: Decimal, multiple: Decimal) -> Decimal:
    """Round up to the next multiple (e.g. the next $5)."""
    steps = (amount / multiple).to_integral_value(rounding=ROUND_CEILING)
    return (steps * multiple).quantize(multiple)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """Return ``percentage`` percent of ``amount`` (unrounded)."""
    return amount * percentage / HUNDRED


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """Sum Decimal amounts, starting from an exact zero."""
    return sum(amounts, ZERO)


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    """Format an amount for display, e.g. ``-$1,234.50``.

    Args:
        amount: The amount to format.
        symbol: Currency symbol prefix.

    Returns:
        Display string with thousands separators.
    """
    rounded = round_money(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"
