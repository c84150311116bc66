"""
GameShelf — Reference Tables

Consoles, regions and age ratings. Catalog games point at these; deleting a
console or region is blocked while any game still references it.
"""

from __future__ import annotations

from sqlalchemy import INTEGER, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class Console(Base):
    """A gaming platform (e.g., 'Xbox 360')."""

    __tablename__ = "consoles"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Console id={self.id!r} name={self.name!r}>"


class Region(Base):
    """A release region: PAL, NTSC-U or NTSC-J."""

    __tablename__ = "regions"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Region id={self.id!r} name={self.name!r}>"


class Rating(Base):
    """An age rating within a rating system (PEGI 16, ESRB M, CERO A...)."""

    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String, nullable=False, comment="Display name (e.g., 'PEGI 16')"
    )
    system: Mapped[str] = mapped_column(
        String, nullable=False, comment="Rating board: PEGI, ESRB, CERO, ACB, BBFC, USK"
    )
    description: Mapped[str | None] = mapped_column(String, nullable=True)

    def __repr__(self) -> str:
        return f"<Rating id={self.id!r} name={self.name!r} system={self.system!r}>"
