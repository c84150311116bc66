"""
GameShelf — Local Currency Conversion

Converts USD market prices to the local currency (NOK) and derives the pinned
NOK2 display price.

NOK  = USD × rate, rounded to 2 dp.
NOK2 = NOK rounded UP to a friendly shelf-price step:
    below 25  → next multiple of 25
    below 50  → next multiple of 5
    below 100 → next multiple of 10
    otherwise → next multiple of 25

All money values use Decimal, never float.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_HALF_UP

import structlog

from src.config import settings
from src.errors import ConversionError
from src.utils.prices import in_price_range

logger = structlog.get_logger(__name__)

_TWO_DP = Decimal("0.01")


def convert_usd_to_local(amount_usd: Decimal | None, rate: Decimal) -> Decimal | None:
    """
    Convert a USD amount to the local currency.

    Args:
        amount_usd: Amount in USD, or None when the game has no price.
        rate: Local units per USD (e.g., 10.5 means 1 USD = 10.5 NOK).

    Returns:
        Converted amount (2dp), or None when there is nothing to convert.
        A zero USD price is treated as "no price", same as None.

    Raises:
        ValueError: If rate is zero or negative.
        ConversionError: If the converted amount does not fit a price column.
    """
    if rate <= Decimal("0"):
        raise ValueError(f"rate must be positive, got {rate}")

    if not amount_usd:
        return None

    try:
        result = (amount_usd * rate).quantize(_TWO_DP, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ConversionError(f"cannot convert {amount_usd} USD at rate {rate}") from e
    if not in_price_range(result):
        raise ConversionError(f"converted price {result} out of range")

    logger.debug(
        "forex_usd_to_local",
        amount_usd=str(amount_usd),
        rate=str(rate),
        result=str(result),
    )
    return result


def round_display_price(amount: Decimal | None) -> Decimal | None:
    """
    Round a local price up to the NOK2 display step.

    Examples:
        >>> round_display_price(Decimal("12.40"))
        Decimal('25')
        >>> round_display_price(Decimal("41.20"))
        Decimal('45')
        >>> round_display_price(Decimal("101"))
        Decimal('125')

    Raises:
        ConversionError: If the rounded price does not fit a price column.
    """
    if not amount:
        return None

    step = settings.NOK2_TOP_STEP
    for upper, bracket_step in settings.NOK2_ROUNDING_STEPS:
        if amount < upper:
            step = bracket_step
            break

    multiples = (amount / step).to_integral_value(rounding=ROUND_CEILING)
    result = multiples * step
    if not in_price_range(result):
        raise ConversionError(f"display price {result} out of range")
    return result
