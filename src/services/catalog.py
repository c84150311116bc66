"""
GameShelf — Catalog Operations

Single-entity catalog operations. Unlike imports these fail atomically with a
specific reason: validation problems raise ValidationError, collisions raise
DuplicateError, missing rows raise NotFoundError.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog

from src.config import CurrencyTier, PriceTier, settings
from src.engine.duplicates import DuplicateDetector
from src.engine.exchange_rates import ExchangeRateLedger
from src.errors import ConversionError, DuplicateError, NotFoundError
from src.models.catalog_game import price_column
from src.schemas.game import GameRecord, validate_game
from src.storage.store import GameStore
from src.utils.forex import convert_usd_to_local

logger = structlog.get_logger(__name__)


async def add_game(store: GameStore, record: GameRecord | dict[str, Any]) -> GameRecord:
    """
    Add one game to the catalog after validation and duplicate checks.

    Returns:
        The stored record with its new id.

    Raises:
        ValidationError: Empty title, non-4-digit year or malformed field.
        DuplicateError: Title already on this console, or URL already used.
        StorageError: The store rejected the insert.
    """
    game = validate_game(record)

    check = await DuplicateDetector(store).check(
        game.title, game.console_id, game.pricecharting_url
    )
    if check.exists:
        raise DuplicateError(check.message or "Game already exists in database", check.reason)

    game_id = await store.insert_game(game.to_columns())
    logger.info("game_added", game_id=game_id, title=game.title, console_id=game.console_id)
    return game.model_copy(update={"id": game_id})


async def update_game(
    store: GameStore, game_id: int, record: GameRecord | dict[str, Any]
) -> GameRecord:
    """Replace every field of an existing game (no partial patch)."""
    game = validate_game(record)
    await store.update_game(game_id, game.to_columns())
    logger.info("game_updated", game_id=game_id, title=game.title)
    return game.model_copy(update={"id": game_id})


async def delete_game(store: GameStore, game_id: int) -> None:
    """
    Raises:
        ReferentialError: Collection items still reference the game.
        NotFoundError: No such game.
    """
    await store.delete_game(game_id)
    logger.info("game_deleted", game_id=game_id)


async def get_prices(store: GameStore, pricecharting_id: str) -> dict[str, Decimal | None]:
    """
    Raw fifteen price columns for an external price identifier.

    Raises:
        NotFoundError: No catalog game carries that identifier.
    """
    games = await store.find_games(pricecharting_id=pricecharting_id, limit=1)
    if not games:
        raise NotFoundError(f"No prices found for {pricecharting_id}")
    return GameRecord.model_validate(games[0]).price_columns()


async def reprice_catalog(store: GameStore, ledger: ExchangeRateLedger) -> int:
    """
    Recompute the live NOK columns from USD using the latest recorded rate.

    NOK2 columns are pinned valuations and are left alone.

    Returns:
        Number of games whose NOK prices changed.

    Raises:
        NotFoundError: No rate recorded for the local currency.
    """
    latest = await ledger.latest(settings.LOCAL_CURRENCY)
    changed = 0

    records = [GameRecord.model_validate(game) for game in await store.find_games()]
    for record in records:
        updates: dict[str, Decimal | None] = {}
        for tier in PriceTier:
            usd = getattr(record, price_column(tier, CurrencyTier.USD))
            nok_column = price_column(tier, CurrencyTier.NOK)
            try:
                nok = convert_usd_to_local(usd, latest.rate)
            except ConversionError as e:
                logger.warning(
                    "reprice_column_skipped",
                    game_id=record.id,
                    column=nok_column,
                    error=str(e),
                )
                continue
            if nok != getattr(record, nok_column):
                updates[nok_column] = nok
        if updates:
            await store.update_game(record.id, record.model_copy(update=updates).to_columns())
            changed += 1

    logger.info(
        "catalog_repriced",
        currency=settings.LOCAL_CURRENCY,
        rate=str(latest.rate),
        games_changed=changed,
    )
    return changed
