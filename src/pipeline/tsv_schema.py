"""
GameShelf — Import File Schema

Bulk imports are tab-separated text with a header line. Fields are mapped by
column POSITION, never by header name; historical import files depend on
these exact positions. Changing the schema is a one-line edit to TSV_COLUMNS.
"""

from __future__ import annotations

import re

from src.config import PriceTier

TSV_COLUMNS: tuple[str, ...] = (
    "title",                     # 0  ProductName
    "rating_code",               # 1  rating code, drives region inference
    "pricecharting_url",         # 2
    "pricecharting_search_url",  # 3
    "mobygames_url",             # 4
    "gamefaqs_url",              # 5
    "wikipedia_url",             # 6
    "cover_url",                 # 7
    "pricecharting_id",          # 8
    "developer",                 # 9
    "publisher",                 # 10
    "release_date",              # 11 free text; the year is extracted
    "genre",                     # 12
    "pegi_raw",                  # 13 raw PEGI/age rating text
    "description",               # 14
    "price_loose",               # 15 USD
    "price_complete",            # 16 USD
    "price_new",                 # 17 USD
    "price_box_only",            # 18 USD
    "price_manual_only",         # 19 USD
)

COLUMN_INDEX: dict[str, int] = {name: i for i, name in enumerate(TSV_COLUMNS)}

PRICE_FIELDS: dict[str, PriceTier] = {
    "price_loose": PriceTier.LOOSE,
    "price_complete": PriceTier.CIB,
    "price_new": PriceTier.NEW,
    "price_box_only": PriceTier.BOX,
    "price_manual_only": PriceTier.MANUAL,
}

_YEAR_RE = re.compile(r"\d{4}")


def map_row(cells: list[str]) -> dict[str, str | None]:
    """Map positional cells to field names; absent or blank cells become None."""
    fields: dict[str, str | None] = {}
    for name, index in COLUMN_INDEX.items():
        value = cells[index].strip() if index < len(cells) else ""
        fields[name] = value or None
    return fields


def extract_year(release_date: str | None) -> int | None:
    """First 4-digit run in a free-text release date ('Nov 7, 2006' → 2006)."""
    if not release_date:
        return None
    match = _YEAR_RE.search(release_date)
    return int(match.group(0)) if match else None
