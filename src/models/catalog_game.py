"""
GameShelf — Catalog Game Model

One row per known game release per console. Carries fifteen valuation columns:
five completeness tiers (loose, cib, new, box, manual) × three currency
snapshots (usd live market, nok live-converted, nok2 pinned display price).

Uniqueness:
- (lower(title), console_id): the same title may exist once per console.
- pricecharting_url: globally unique when set.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BOOLEAN, DECIMAL, INTEGER, ForeignKey, Index, String, false, func
from sqlalchemy.orm import Mapped, mapped_column

from src.config import CurrencyTier, PriceTier
from src.models.base import Base


def price_column(tier: PriceTier, currency: CurrencyTier) -> str:
    """Attribute name holding a tier's price in a currency (e.g., 'cib_nok2')."""
    return f"{tier.value}_{currency.value}"


PRICE_COLUMNS: tuple[str, ...] = tuple(
    price_column(tier, currency) for tier in PriceTier for currency in CurrencyTier
)


class CatalogGame(Base):
    """
    A catalog entry with market valuations.

    Created by manual entry or bulk import; updated as a whole record.
    Never deleted while a collection item references it.
    """

    __tablename__ = "games"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    console_id: Mapped[int | None] = mapped_column(
        INTEGER, ForeignKey("consoles.id"), nullable=True
    )
    region_id: Mapped[int | None] = mapped_column(
        INTEGER, ForeignKey("regions.id"), nullable=True
    )
    rating_id: Mapped[int | None] = mapped_column(
        INTEGER, ForeignKey("ratings.id"), nullable=True
    )

    pricecharting_id: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="External price identifier"
    )
    pricecharting_url: Mapped[str | None] = mapped_column(
        String, unique=True, nullable=True, comment="External price page, globally unique"
    )
    cover_url: Mapped[str | None] = mapped_column(String, nullable=True)

    developer: Mapped[str | None] = mapped_column(String, nullable=True)
    publisher: Mapped[str | None] = mapped_column(String, nullable=True)
    release_year: Mapped[int | None] = mapped_column(INTEGER, nullable=True)
    genre: Mapped[str | None] = mapped_column(String, nullable=True)

    is_special: Mapped[bool] = mapped_column(BOOLEAN, default=False, server_default=false())
    is_kinect: Mapped[bool] = mapped_column(BOOLEAN, default=False, server_default=false())

    # Loose
    loose_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    loose_nok: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    loose_nok2: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    # Complete in box
    cib_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    cib_nok: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    cib_nok2: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    # Sealed
    new_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    new_nok: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    new_nok2: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    # Box only
    box_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    box_nok: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    box_nok2: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    # Manual only
    manual_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    manual_nok: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)
    manual_nok2: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)

    def price(self, tier: PriceTier, currency: CurrencyTier) -> Decimal | None:
        return getattr(self, price_column(tier, currency))

    def prices(self) -> dict[str, Decimal | None]:
        """All fifteen raw price columns keyed by attribute name."""
        return {name: getattr(self, name) for name in PRICE_COLUMNS}

    def __repr__(self) -> str:
        return (
            f"<CatalogGame id={self.id!r} title={self.title!r} "
            f"console_id={self.console_id!r}>"
        )


# Case-insensitive title uniqueness per console.
Index(
    "uq_games_title_console",
    func.lower(CatalogGame.title),
    CatalogGame.console_id,
    unique=True,
)
Index("ix_games_pricecharting_id", CatalogGame.pricecharting_id)
