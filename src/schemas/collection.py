"""
GameShelf — Collection Item Schema

Detached snapshot of a collection item handed back by collection operations.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from src.engine.condition import ItemCondition


class CollectionItemRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    game_id: int
    console_id: int | None = None
    region_id: int | None = None
    box_condition: str
    manual_condition: str
    disc_condition: str
    price_override: Decimal | None = None
    is_special: bool = False
    is_kinect: bool = False
    is_new: bool = False
    is_promo: bool = False
    notes: str | None = None
    added_date: datetime | None = None

    @property
    def condition(self) -> ItemCondition:
        return ItemCondition.from_item(self)
