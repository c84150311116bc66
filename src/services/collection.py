"""
GameShelf — Collection Operations

Adding, editing and removing owned copies, plus whole-collection valuation.
Condition edits go through ItemCondition so that entering the New state pins
all three ratings in one step.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog

from src.config import CurrencyTier
from src.engine.condition import ItemCondition
from src.engine.price_resolver import CollectionValuation, ResolvedPrice, resolve, value_collection
from src.errors import ConversionError, NotFoundError, ValidationError
from src.schemas.collection import CollectionItemRecord
from src.schemas.game import GameRecord
from src.storage.store import GameStore
from src.utils.prices import in_price_range, to_decimal

logger = structlog.get_logger(__name__)


def _parse_override(value: Any) -> Decimal | None:
    """None/blank clears the override; anything else must be numeric."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        price = to_decimal(value)
    except ConversionError as e:
        raise ValidationError(f"Invalid price override {value!r}") from e
    if not in_price_range(price):
        raise ValidationError(f"Price override {value!r} out of range")
    return price


async def _load_item(store: GameStore, item_id: int) -> CollectionItemRecord:
    item = await store.get_collection_item(item_id)
    if item is None:
        raise NotFoundError(f"Collection item {item_id} not found")
    return CollectionItemRecord.model_validate(item)


async def add_to_collection(
    store: GameStore,
    game_id: int | None,
    condition: ItemCondition | None = None,
    price_override: Any = None,
    is_promo: bool = False,
    notes: str | None = None,
    is_special: bool | None = None,
    is_kinect: bool | None = None,
) -> CollectionItemRecord:
    """
    Add an acquired copy of a catalog game.

    Console and region are copied from the game; special/kinect flags default
    to the game's.

    Raises:
        ValidationError: Missing game id or non-numeric override.
        NotFoundError: No such catalog game.
    """
    if not game_id:
        raise ValidationError("Game ID is required")

    game = await store.get_game(game_id)
    if game is None:
        raise NotFoundError(f"Game {game_id} not found")

    condition = condition or ItemCondition()
    record: dict[str, Any] = {
        "game_id": game_id,
        "console_id": game.console_id,
        "region_id": game.region_id,
        "price_override": _parse_override(price_override),
        "is_special": game.is_special if is_special is None else is_special,
        "is_kinect": game.is_kinect if is_kinect is None else is_kinect,
        "is_promo": is_promo,
        "notes": notes,
        **condition.as_columns(),
    }

    item_id = await store.insert_collection_item(record)
    logger.info(
        "collection_item_added",
        item_id=item_id,
        game_id=game_id,
        is_cib=condition.completeness.is_cib,
        is_new=condition.is_new,
    )
    return await _load_item(store, item_id)


async def update_condition(
    store: GameStore, item_id: int, condition: ItemCondition
) -> CollectionItemRecord:
    """Store a new condition state for an item."""
    await _load_item(store, item_id)
    await store.update_collection_item(item_id, condition.as_columns())
    logger.info(
        "collection_condition_updated",
        item_id=item_id,
        is_cib=condition.completeness.is_cib,
        is_new=condition.is_new,
    )
    return await _load_item(store, item_id)


async def mark_new(store: GameStore, item_id: int) -> CollectionItemRecord:
    """Flag an item as New; all three ratings become 5 together."""
    item = await _load_item(store, item_id)
    return await update_condition(store, item_id, item.condition.mark_new())


async def set_price_override(
    store: GameStore, item_id: int, value: Any
) -> CollectionItemRecord:
    """Set or clear (None / blank) an item's price override."""
    override = _parse_override(value)
    await _load_item(store, item_id)
    await store.update_collection_item(item_id, {"price_override": override})
    logger.info(
        "collection_override_set",
        item_id=item_id,
        price_override=str(override) if override is not None else None,
    )
    return await _load_item(store, item_id)


async def remove_from_collection(store: GameStore, item_id: int) -> None:
    """Delete an owned copy; the catalog game is untouched."""
    await store.delete_collection_item(item_id)
    logger.info("collection_item_removed", item_id=item_id)


async def _pairs(store: GameStore) -> list[tuple[CollectionItemRecord, GameRecord | None]]:
    items = [CollectionItemRecord.model_validate(i) for i in await store.find_collection_items()]
    games: dict[int, GameRecord | None] = {}
    for item in items:
        if item.game_id not in games:
            game = await store.get_game(item.game_id)
            games[item.game_id] = GameRecord.model_validate(game) if game is not None else None
    return [(item, games[item.game_id]) for item in items]


async def final_prices(
    store: GameStore, currency_tier: CurrencyTier | str | None = None
) -> list[tuple[CollectionItemRecord, ResolvedPrice]]:
    """Resolved final price of every collection item, in id order."""
    return [(item, resolve(item, game, currency_tier)) for item, game in await _pairs(store)]


async def value_owned_collection(
    store: GameStore, currency_tier: CurrencyTier | str | None = None
) -> CollectionValuation:
    """Total value of the collection for one currency tier."""
    return value_collection(await _pairs(store), currency_tier)
