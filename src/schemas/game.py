"""
GameShelf — Catalog Game Schema

Validated, detached representation of a catalog game. Used as the input to
manual adds and imports, and as the snapshot handed back to callers after a
successful insert (never a live ORM instance).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.errors import ValidationError
from src.models.catalog_game import PRICE_COLUMNS
from src.utils.prices import parse_price


class GameRecord(BaseModel):
    """Catalog game fields; `id` is set only once the record is stored."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    title: str = Field(..., min_length=1)
    console_id: int | None = None
    region_id: int | None = None
    rating_id: int | None = None
    pricecharting_id: str | None = None
    pricecharting_url: str | None = None
    cover_url: str | None = None
    developer: str | None = None
    publisher: str | None = None
    release_year: int | None = Field(default=None, ge=1000, le=9999)
    genre: str | None = None
    is_special: bool = False
    is_kinect: bool = False

    loose_usd: Decimal | None = None
    loose_nok: Decimal | None = None
    loose_nok2: Decimal | None = None
    cib_usd: Decimal | None = None
    cib_nok: Decimal | None = None
    cib_nok2: Decimal | None = None
    new_usd: Decimal | None = None
    new_nok: Decimal | None = None
    new_nok2: Decimal | None = None
    box_usd: Decimal | None = None
    box_nok: Decimal | None = None
    box_nok2: Decimal | None = None
    manual_usd: Decimal | None = None
    manual_nok: Decimal | None = None
    manual_nok2: Decimal | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator(
        "pricecharting_id", "pricecharting_url", "cover_url",
        "developer", "publisher", "genre",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("release_year", mode="before")
    @classmethod
    def blank_year(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator(*PRICE_COLUMNS, mode="before")
    @classmethod
    def parse_prices(cls, v: Any) -> Decimal | None:
        """Safely convert price values to Decimal. Never use float for money."""
        return parse_price(v)

    def to_columns(self) -> dict[str, Any]:
        """Column values for insert/update; the primary key is left to storage."""
        return self.model_dump(exclude={"id"})

    def price_columns(self) -> dict[str, Decimal | None]:
        return {name: getattr(self, name) for name in PRICE_COLUMNS}


def validate_game(values: GameRecord | dict[str, Any]) -> GameRecord:
    """
    Build a GameRecord, reporting the first problem as a ValidationError.

    Raises:
        ValidationError: Empty title, non-4-digit year or malformed field.
    """
    if isinstance(values, GameRecord):
        return values
    try:
        return GameRecord.model_validate(values)
    except pydantic.ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ())) or "record"
        raise ValidationError(f"Invalid {field}: {err.get('msg', 'invalid value')}") from e
