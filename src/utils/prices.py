"""
GameShelf — Numeric Coercion

Price cells from imports and override values from the collection editor arrive
as loosely typed text. All money values are Decimal, never float.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from src.errors import ConversionError

_BLANK_MARKERS = {"", "N/A", "NA", "-", "NONE", "NULL"}

# Largest magnitude a DECIMAL(10,2) price column holds.
MAX_PRICE = Decimal("99999999.99")


def in_price_range(value: Decimal) -> bool:
    return abs(value) <= MAX_PRICE


def to_decimal(value: Any) -> Decimal:
    """
    Strictly convert a value to Decimal.

    Raises:
        ConversionError: If the value is blank, non-numeric, NaN or infinite.
    """
    if value is None or isinstance(value, bool):
        raise ConversionError(f"not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if text.upper() in _BLANK_MARKERS:
            raise ConversionError(f"not a number: {value!r}")
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError) as e:
            raise ConversionError(f"not a number: {value!r}") from e
    if not result.is_finite():
        raise ConversionError(f"not a finite number: {value!r}")
    return result


def parse_price(value: Any) -> Decimal | None:
    """
    Coerce a raw price cell to Decimal, or None when blank, unparseable or
    too large for a price column.

    Never raises: a row with un-priced fields is still a valid row.

    Examples:
        >>> parse_price("19.99")
        Decimal('19.99')
        >>> parse_price("N/A") is None
        True
        >>> parse_price("1e30") is None
        True
    """
    try:
        result = to_decimal(value)
    except ConversionError:
        return None
    if not in_price_range(result):
        return None
    return result


def is_present(price: Decimal | None) -> bool:
    """A stored price counts as present when it is set and non-zero."""
    return price is not None and price != 0
