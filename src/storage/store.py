"""
GameShelf — Persistence Collaborator

GameStore is the narrow CRUD surface the valuation and import core depends on.
SqlAlchemyStore implements it on an async SQLAlchemy session.

Every write commits on its own: imports are row-by-row with no multi-row
atomicity, and a constraint violation rolls back only the offending write.
Database errors (constraint violations, numeric overflow) are translated into
StorageError so callers never see driver exceptions.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol, Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import NotFoundError, ReferentialError, StorageError
from src.models.catalog_game import CatalogGame
from src.models.collection_item import CollectionItem
from src.models.exchange_rate import ExchangeRateRecord
from src.models.reference import Console, Rating, Region

logger = structlog.get_logger(__name__)


class GameStore(Protocol):
    """Persistence operations used by the core."""

    async def find_games(
        self,
        *,
        title: str | None = None,
        console_id: int | None = None,
        pricecharting_url: str | None = None,
        pricecharting_id: str | None = None,
        limit: int | None = None,
    ) -> list[CatalogGame]: ...

    async def get_game(self, game_id: int) -> CatalogGame | None: ...

    async def insert_game(self, record: dict[str, Any]) -> int: ...

    async def update_game(self, game_id: int, record: dict[str, Any]) -> None: ...

    async def delete_game(self, game_id: int) -> None: ...

    async def find_collection_items(
        self, *, game_id: int | None = None
    ) -> list[CollectionItem]: ...

    async def get_collection_item(self, item_id: int) -> CollectionItem | None: ...

    async def insert_collection_item(self, record: dict[str, Any]) -> int: ...

    async def update_collection_item(self, item_id: int, values: dict[str, Any]) -> None: ...

    async def delete_collection_item(self, item_id: int) -> None: ...

    async def append_rate(self, currency: str, rate: Decimal, timestamp: datetime) -> ExchangeRateRecord: ...

    async def latest_rate(self, currency: str) -> ExchangeRateRecord | None: ...

    async def rate_history(self, currency: str) -> list[ExchangeRateRecord]: ...

    async def find_console(self, name: str) -> Console | None: ...

    async def find_region(self, name: str) -> Region | None: ...

    async def find_ratings(self) -> list[Rating]: ...

    async def delete_console(self, console_id: int) -> None: ...

    async def delete_region(self, region_id: int) -> None: ...


class SqlAlchemyStore:
    """
    GameStore backed by an AsyncSession.

    Usage:
        async with session_factory() as session:
            store = SqlAlchemyStore(session)
            games = await store.find_games(console_id=1)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    async def _commit(self, operation: str, pending: Any = None, **context: Any) -> Any:
        """Flush and commit; returns the primary key of `pending` when given."""
        try:
            await self.session.flush()
            ident = pending.id if pending is not None else None
            await self.session.commit()
        except DBAPIError as e:
            await self.session.rollback()
            logger.warning(
                "store_write_rejected",
                operation=operation,
                error=str(e.orig),
                **context,
            )
            raise StorageError(f"{operation} rejected by storage: {e.orig}") from e
        return ident

    async def _count(self, stmt: Any) -> int:
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    def _folds_ascii_only(self) -> bool:
        # SQLite lower() leaves non-ASCII letters untouched.
        bind = self.session.bind
        return bind is not None and bind.dialect.name == "sqlite"

    # -----------------------------------------------------------------------
    # Catalog games
    # -----------------------------------------------------------------------

    async def find_games(
        self,
        *,
        title: str | None = None,
        console_id: int | None = None,
        pricecharting_url: str | None = None,
        pricecharting_id: str | None = None,
        limit: int | None = None,
    ) -> list[CatalogGame]:
        """Filter games; title matches case-insensitively, all filters AND together."""
        fold_in_python = title is not None and self._folds_ascii_only()
        stmt = select(CatalogGame)
        if title is not None and not fold_in_python:
            stmt = stmt.where(func.lower(CatalogGame.title) == title.lower())
        if console_id is not None:
            stmt = stmt.where(CatalogGame.console_id == console_id)
        if pricecharting_url is not None:
            stmt = stmt.where(CatalogGame.pricecharting_url == pricecharting_url)
        if pricecharting_id is not None:
            stmt = stmt.where(CatalogGame.pricecharting_id == pricecharting_id)
        stmt = stmt.order_by(CatalogGame.title, CatalogGame.id)
        if limit is not None and not fold_in_python:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        games = list(result.scalars().all())
        if fold_in_python:
            key = title.casefold()
            games = [g for g in games if g.title.casefold() == key][:limit]
        return games

    async def get_game(self, game_id: int) -> CatalogGame | None:
        return await self.session.get(CatalogGame, game_id)

    async def insert_game(self, record: dict[str, Any]) -> int:
        game = CatalogGame(**record)
        self.session.add(game)
        game_id = await self._commit("insert_game", game, title=record.get("title"))
        logger.debug("game_inserted", game_id=game_id, title=record.get("title"))
        return game_id

    async def update_game(self, game_id: int, record: dict[str, Any]) -> None:
        game = await self.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Game {game_id} not found")
        for key, value in record.items():
            setattr(game, key, value)
        await self._commit("update_game", game_id=game_id)

    async def delete_game(self, game_id: int) -> None:
        game = await self.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Game {game_id} not found")
        refs = await self._count(
            select(func.count()).select_from(CollectionItem).where(CollectionItem.game_id == game_id)
        )
        if refs:
            raise ReferentialError("Cannot delete game that is in collection")
        await self.session.delete(game)
        await self._commit("delete_game", game_id=game_id)

    # -----------------------------------------------------------------------
    # Collection items
    # -----------------------------------------------------------------------

    async def find_collection_items(self, *, game_id: int | None = None) -> list[CollectionItem]:
        stmt = select(CollectionItem)
        if game_id is not None:
            stmt = stmt.where(CollectionItem.game_id == game_id)
        stmt = stmt.order_by(CollectionItem.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_collection_item(self, item_id: int) -> CollectionItem | None:
        return await self.session.get(CollectionItem, item_id)

    async def insert_collection_item(self, record: dict[str, Any]) -> int:
        item = CollectionItem(**record)
        self.session.add(item)
        return await self._commit("insert_collection_item", item, game_id=record.get("game_id"))

    async def update_collection_item(self, item_id: int, values: dict[str, Any]) -> None:
        item = await self.get_collection_item(item_id)
        if item is None:
            raise NotFoundError(f"Collection item {item_id} not found")
        for key, value in values.items():
            setattr(item, key, value)
        await self._commit("update_collection_item", item_id=item_id)

    async def delete_collection_item(self, item_id: int) -> None:
        item = await self.get_collection_item(item_id)
        if item is None:
            raise NotFoundError(f"Collection item {item_id} not found")
        await self.session.delete(item)
        await self._commit("delete_collection_item", item_id=item_id)

    # -----------------------------------------------------------------------
    # Exchange rates (append-only)
    # -----------------------------------------------------------------------

    async def append_rate(
        self, currency: str, rate: Decimal, timestamp: datetime
    ) -> ExchangeRateRecord:
        record = ExchangeRateRecord(currency=currency, rate=rate, timestamp=timestamp)
        self.session.add(record)
        await self._commit("append_rate", currency=currency)
        return record

    async def latest_rate(self, currency: str) -> ExchangeRateRecord | None:
        stmt = (
            select(ExchangeRateRecord)
            .where(ExchangeRateRecord.currency == currency)
            .order_by(ExchangeRateRecord.timestamp.desc(), ExchangeRateRecord.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def rate_history(self, currency: str) -> list[ExchangeRateRecord]:
        stmt = (
            select(ExchangeRateRecord)
            .where(ExchangeRateRecord.currency == currency)
            .order_by(ExchangeRateRecord.timestamp.asc(), ExchangeRateRecord.id.asc())
        )
        result = await self.session.execute(stmt)
        rows: Sequence[ExchangeRateRecord] = result.scalars().all()
        return list(rows)

    # -----------------------------------------------------------------------
    # Reference data
    # -----------------------------------------------------------------------

    async def find_console(self, name: str) -> Console | None:
        result = await self.session.execute(select(Console).where(Console.name == name))
        return result.scalars().first()

    async def find_region(self, name: str) -> Region | None:
        result = await self.session.execute(select(Region).where(Region.name == name))
        return result.scalars().first()

    async def find_ratings(self) -> list[Rating]:
        result = await self.session.execute(select(Rating).order_by(Rating.id))
        return list(result.scalars().all())

    async def delete_console(self, console_id: int) -> None:
        console = await self.session.get(Console, console_id)
        if console is None:
            raise NotFoundError(f"Console {console_id} not found")
        refs = await self._count(
            select(func.count()).select_from(CatalogGame).where(CatalogGame.console_id == console_id)
        )
        if refs:
            raise ReferentialError(f"Cannot delete console {console.name!r}: {refs} games reference it")
        await self.session.delete(console)
        await self._commit("delete_console", console_id=console_id)

    async def delete_region(self, region_id: int) -> None:
        region = await self.session.get(Region, region_id)
        if region is None:
            raise NotFoundError(f"Region {region_id} not found")
        refs = await self._count(
            select(func.count()).select_from(CatalogGame).where(CatalogGame.region_id == region_id)
        )
        if refs:
            raise ReferentialError(f"Cannot delete region {region.name!r}: {refs} games reference it")
        await self.session.delete(region)
        await self._commit("delete_region", region_id=region_id)
