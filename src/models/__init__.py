"""
Models package: exports all SQLAlchemy models.
"""

from src.models.base import Base
from src.models.catalog_game import CatalogGame
from src.models.collection_item import CollectionItem
from src.models.exchange_rate import ExchangeRateRecord
from src.models.reference import Console, Rating, Region

__all__ = [
    "Base",
    "CatalogGame",
    "CollectionItem",
    "Console",
    "ExchangeRateRecord",
    "Rating",
    "Region",
]
