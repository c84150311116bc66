"""
GameShelf — Exchange Rate Ledger

Append-only time series of currency rates (units per 1 USD).

- record() inserts a new observation; existing rows are never touched, so a
  "refresh" is just another append and historical valuations stay explainable.
- latest() returns the observation with the greatest timestamp, regardless of
  insertion order (a back-dated record never shadows a newer one).

This module stores and serves rates it is given; it does not fetch them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, NamedTuple

import structlog

from src.errors import ConversionError, InvalidRateError, NotFoundError
from src.storage.store import GameStore
from src.utils.prices import to_decimal

logger = structlog.get_logger(__name__)


class RateRecord(NamedTuple):
    """Detached snapshot of one stored rate observation."""
    currency: str
    rate: Decimal
    timestamp: datetime


# Largest rate a DECIMAL(12,6) column holds.
MAX_RATE = Decimal("999999.999999")


def _normalize_currency(currency: str) -> str:
    code = (currency or "").strip().upper()
    if not code:
        raise InvalidRateError("currency code must be non-empty")
    if len(code) != 3 or not (code.isascii() and code.isalpha()):
        raise InvalidRateError(f"currency code must be three letters, got {currency!r}")
    return code


def _as_utc(timestamp: datetime | None) -> datetime:
    if timestamp is None:
        return datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def _snapshot(row: Any) -> RateRecord:
    return RateRecord(currency=row.currency, rate=Decimal(row.rate), timestamp=row.timestamp)


class ExchangeRateLedger:
    """
    Rate history backed by the persistence collaborator.

    Usage:
        ledger = ExchangeRateLedger(store)
        await ledger.record("NOK", Decimal("10.45"))
        rate = (await ledger.latest("NOK")).rate
    """

    def __init__(self, store: GameStore):
        self._store = store

    async def record(
        self,
        currency: str,
        rate: Any,
        timestamp: datetime | None = None,
    ) -> RateRecord:
        """
        Append a rate observation.

        Args:
            currency: Three-letter ISO code; normalized to upper case.
            rate: Units of currency per 1 USD. Must be positive.
            timestamp: Observation time; naive values are taken as UTC.
                Defaults to now.

        Raises:
            InvalidRateError: If the currency is not a three-letter code, or
                the rate is non-numeric, not positive or too large to store.
        """
        code = _normalize_currency(currency)
        try:
            value = to_decimal(rate)
        except ConversionError as e:
            raise InvalidRateError(f"rate must be a number, got {rate!r}") from e
        if value <= Decimal("0"):
            logger.warning("exchange_rate_rejected", currency=code, rate=str(value))
            raise InvalidRateError(f"rate must be positive, got {value}")
        if value > MAX_RATE:
            logger.warning("exchange_rate_rejected", currency=code, rate=str(value))
            raise InvalidRateError(f"rate {value} exceeds {MAX_RATE}")

        observed_at = _as_utc(timestamp)
        await self._store.append_rate(code, value, observed_at)

        logger.info(
            "exchange_rate_recorded",
            currency=code,
            rate=str(value),
            timestamp=observed_at.isoformat(),
        )
        return RateRecord(currency=code, rate=value, timestamp=observed_at)

    async def latest(self, currency: str) -> RateRecord:
        """
        Return the most recent observation for a currency.

        Raises:
            NotFoundError: If no rate has ever been recorded for the currency.
        """
        code = _normalize_currency(currency)
        row = await self._store.latest_rate(code)
        if row is None:
            raise NotFoundError(f"Exchange rate not found for {code}")
        return _snapshot(row)

    async def latest_or_default(self, currency: str, default: Decimal) -> Decimal:
        """Latest stored rate, or `default` when the ledger has none."""
        try:
            return (await self.latest(currency)).rate
        except NotFoundError:
            logger.info(
                "exchange_rate_fallback",
                currency=currency,
                fallback_rate=str(default),
            )
            return default

    async def history(self, currency: str) -> list[RateRecord]:
        """All observations for a currency, oldest first."""
        code = _normalize_currency(currency)
        rows = await self._store.rate_history(code)
        return [_snapshot(row) for row in rows]
