"""
GameShelf — Exchange Rate Model

Append-only log of currency rate observations.
Never updated; each refresh appends a new row. "Latest" is the row with the
greatest timestamp for a currency, not the most recently inserted one.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, INTEGER, TIMESTAMP, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class ExchangeRateRecord(Base):
    """
    One rate observation: local units per base-currency unit at a point in time.

    Index: (currency, timestamp) supports the latest-per-currency lookup.
    """

    __tablename__ = "exchange_rates"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, comment="ISO 4217 code, upper-case (e.g., 'NOK')"
    )
    rate: Mapped[Decimal] = mapped_column(
        DECIMAL(12, 6), nullable=False, comment="Units of currency per 1 USD"
    )
    timestamp: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        comment="UTC time the rate was observed",
    )

    __table_args__ = (
        Index("ix_exchange_rates_currency_timestamp", "currency", "timestamp"),
        CheckConstraint("rate > 0", name="ck_exchange_rates_rate_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<ExchangeRateRecord currency={self.currency!r} rate={self.rate} "
            f"at={self.timestamp}>"
        )
