"""
Decimal Math Utilities for Output Formatting.

Formula evaluation runs on floats; anything rendered to a lead is rounded
with Decimal so the displayed amount is deterministic.

Why Decimal?
- Float: round(2.675, 2) == 2.67
- Decimal: Decimal("2.675").quantize(Decimal("0.01"), ROUND_HALF_UP) == 2.68

Rounding is ROUND_HALF_UP on the shortest decimal representation of the
float, which matches how browsers round money with toLocaleString().
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

# Type alias for values that can be converted to Decimal
Numeric = Union[int, float, str, Decimal]

MONEY_PLACES = 2  # Round to cents
PERCENT_PLACES = 2


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Examples:
        >>> to_decimal(100.50)
        Decimal('100.5')
        >>> to_decimal("100.50")
        Decimal('100.50')
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # Convert float to string first to preserve representation
        return Decimal(str(value))
    return Decimal(value)


def round_half_up(value: Numeric, places: int) -> Decimal:
    """
    Round to a fixed number of decimal places, halves away from zero.

    Examples:
        >>> round_half_up(2.675, 2)
        Decimal('2.68')
        >>> round_half_up(1234.5, 0)
        Decimal('1235')
    """
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def money(value: Numeric) -> Decimal:
    """
    Convert value to money (rounded to cents).

    Examples:
        >>> money(100.999)
        Decimal('101.00')
    """
    return round_half_up(value, MONEY_PLACES)


def group_digits(digits: str, separator: str) -> str:
    """
    Insert a grouping separator every three digits from the right.

    Examples:
        >>> group_digits("1234567", ".")
        '1.234.567'
    """
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return separator.join(groups)


def format_grouped(
    value: Numeric,
    places: int,
    decimal_separator: str = ",",
    thousands_separator: str = ".",
    strip_trailing_zeros: bool = False,
) -> str:
    """
    Format a number with digit grouping and a fixed number of places.

    Args:
        value: Value to format
        places: Decimal places to round to
        decimal_separator: Separator between integer and fraction
        thousands_separator: Digit grouping separator
        strip_trailing_zeros: Drop trailing fraction zeros (and a bare separator)

    Examples:
        >>> format_grouped(1234.5, 2)
        '1.234,50'
        >>> format_grouped(1234567.891, 3, strip_trailing_zeros=True)
        '1.234.567,891'
        >>> format_grouped(1000.0, 3, strip_trailing_zeros=True)
        '1.000'
    """
    rounded = round_half_up(value, places)
    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):.{places}f}"
    integer, _, fraction = text.partition(".")
    if strip_trailing_zeros:
        fraction = fraction.rstrip("0")
    result = sign + group_digits(integer, thousands_separator)
    if fraction:
        result += decimal_separator + fraction
    return result


def format_money(
    value: Numeric,
    symbol: str = "€",
    decimal_separator: str = ",",
    thousands_separator: str = ".",
) -> str:
    """
    Format value as money string with a trailing currency symbol.

    Examples:
        >>> format_money(1234.5)
        '1.234,50 €'
    """
    amount = format_grouped(value, MONEY_PLACES, decimal_separator, thousands_separator)
    return f"{amount} {symbol}" if symbol else amount


def format_percentage(value: Numeric, decimal_places: int = PERCENT_PLACES) -> str:
    """
    Format value as percentage string.

    The value is already expressed in percent (12.5 for 12.5%).

    Examples:
        >>> format_percentage(12.345)
        '12.35%'
    """
    pct = round_half_up(value, decimal_places)
    return f"{pct:.{decimal_places}f}%"


def plain_number(value: float) -> str:
    """
    Render a float the way the widget shows raw values.

    Integral values drop the trailing ".0".

    Examples:
        >>> plain_number(5.0)
        '5'
        >>> plain_number(2.5)
        '2.5'
    """
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)
