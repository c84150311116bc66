"""
GameShelf — SqlAlchemyStore Tests

Constraint violations and other database errors surface as StorageError and
roll back only the offending write. Title lookups fold case beyond ASCII.
Reference rows cannot be deleted while games use them.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import DataError

from src.errors import NotFoundError, ReferentialError, StorageError


class TestGames:
    @pytest.mark.asyncio
    async def test_find_games_case_insensitive(self, store, make_game, xbox_id) -> None:
        await make_game("Halo 3", xbox_id)
        assert [g.title for g in await store.find_games(title="HALO 3")] == ["Halo 3"]

    @pytest.mark.asyncio
    async def test_find_games_filters_and(self, store, make_game, xbox_id, ps3_id) -> None:
        await make_game("Skyrim", xbox_id)
        await make_game("Skyrim", ps3_id)
        assert len(await store.find_games(title="skyrim")) == 2
        assert len(await store.find_games(title="skyrim", console_id=ps3_id)) == 1

    @pytest.mark.asyncio
    async def test_unique_url_violation(self, store, make_game, xbox_id) -> None:
        await make_game("Halo 3", xbox_id, pricecharting_url="https://example.test/halo")
        with pytest.raises(StorageError, match="insert_game rejected by storage"):
            await make_game("Halo 3 ODST", xbox_id, pricecharting_url="https://example.test/halo")

        # The session is usable again after the rollback.
        await make_game("Fable II", xbox_id)
        assert len(await store.find_games()) == 2

    @pytest.mark.asyncio
    async def test_unique_title_per_console_violation(self, store, make_game, xbox_id) -> None:
        await make_game("Halo 3", xbox_id)
        with pytest.raises(StorageError):
            await make_game("HALO 3", xbox_id)

    @pytest.mark.asyncio
    async def test_find_games_folds_non_ascii_case(self, store, make_game, xbox_id) -> None:
        await make_game("ÖKAMI", xbox_id)
        assert [g.title for g in await store.find_games(title="ökami")] == ["ÖKAMI"]
        assert [g.title for g in await store.find_games(title="Ökami", console_id=xbox_id, limit=1)] == ["ÖKAMI"]
        assert await store.find_games(title="okami") == []

    @pytest.mark.asyncio
    async def test_database_error_becomes_storage_error(self, store, make_game, xbox_id) -> None:
        """A driver error other than a constraint violation is rolled back and wrapped."""
        flush = store.session.flush
        store.session.flush = AsyncMock(
            side_effect=DataError("INSERT INTO games", {}, Exception("numeric field overflow"))
        )
        with pytest.raises(StorageError, match="numeric field overflow"):
            await make_game("Crackdown", xbox_id)

        store.session.flush = flush
        await make_game("Fable II", xbox_id)
        assert [g.title for g in await store.find_games()] == ["Fable II"]

    @pytest.mark.asyncio
    async def test_delete_missing_game(self, store) -> None:
        with pytest.raises(NotFoundError):
            await store.delete_game(123)


class TestReferenceData:
    @pytest.mark.asyncio
    async def test_delete_console_in_use(self, store, make_game, xbox_id) -> None:
        await make_game("Halo 3", xbox_id)
        with pytest.raises(ReferentialError, match="Xbox 360"):
            await store.delete_console(xbox_id)

    @pytest.mark.asyncio
    async def test_delete_unused_console(self, store, ps3_id) -> None:
        await store.delete_console(ps3_id)
        assert await store.find_console("PlayStation 3") is None

    @pytest.mark.asyncio
    async def test_delete_region_in_use(self, store, make_game, xbox_id, pal_id) -> None:
        await make_game("Halo 3", xbox_id, region_id=pal_id)
        with pytest.raises(ReferentialError, match="PAL"):
            await store.delete_region(pal_id)

    @pytest.mark.asyncio
    async def test_seeded_ratings(self, store) -> None:
        names = {r.name for r in await store.find_ratings()}
        assert {"PEGI 3", "PEGI 18", "ESRB M"} <= names
