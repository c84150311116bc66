"""
GameShelf — Collection Item Model

One row per owned physical copy. console_id/region_id are copied from the
catalog game when the copy is added, so later catalog edits don't rewrite
collection history.

Condition ratings are stored as text: "5" (mint) … "1" (poor) or "missing".
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import BOOLEAN, DECIMAL, INTEGER, TIMESTAMP, ForeignKey, String, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CollectionItem(Base):
    """An acquired copy of a catalog game with its physical condition."""

    __tablename__ = "collection_items"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("games.id"), nullable=False, index=True
    )
    console_id: Mapped[int | None] = mapped_column(
        INTEGER, nullable=True, comment="Copied from games.console_id at add time"
    )
    region_id: Mapped[int | None] = mapped_column(
        INTEGER, nullable=True, comment="Copied from games.region_id at add time"
    )

    box_condition: Mapped[str] = mapped_column(String(8), nullable=False, default="missing")
    manual_condition: Mapped[str] = mapped_column(String(8), nullable=False, default="missing")
    disc_condition: Mapped[str] = mapped_column(String(8), nullable=False, default="missing")

    price_override: Mapped[Decimal | None] = mapped_column(
        DECIMAL(10, 2), nullable=True, comment="Manual valuation in the display currency"
    )

    is_special: Mapped[bool] = mapped_column(BOOLEAN, default=False, server_default=false())
    is_kinect: Mapped[bool] = mapped_column(BOOLEAN, default=False, server_default=false())
    is_new: Mapped[bool] = mapped_column(BOOLEAN, default=False, server_default=false())
    is_promo: Mapped[bool] = mapped_column(BOOLEAN, default=False, server_default=false())
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    added_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<CollectionItem id={self.id!r} game_id={self.game_id!r} "
            f"box={self.box_condition!r} manual={self.manual_condition!r} "
            f"disc={self.disc_condition!r}>"
        )
