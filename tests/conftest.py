"""
GameShelf — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- In-memory aiosqlite session with all tables created
- SqlAlchemyStore seeded with regions, consoles and ratings
- Small builders for catalog games and collection items
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.main import seed_reference_data
from src.models import Base, Console
from src.storage.store import SqlAlchemyStore


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async database session using aiosqlite in-memory.

    Creates a fresh database for each test, ensuring isolation.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        await seed_reference_data(session)
        session.add(Console(name="PlayStation 3"))
        await session.commit()
        yield session

    await engine.dispose()


@pytest.fixture
async def store(db_session: AsyncSession) -> SqlAlchemyStore:
    return SqlAlchemyStore(db_session)


@pytest.fixture
async def xbox_id(store: SqlAlchemyStore) -> int:
    return (await store.find_console("Xbox 360")).id


@pytest.fixture
async def ps3_id(store: SqlAlchemyStore) -> int:
    return (await store.find_console("PlayStation 3")).id


@pytest.fixture
async def pal_id(store: SqlAlchemyStore) -> int:
    return (await store.find_region("PAL")).id


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _game_values(title: str = "Halo 3", console_id: int | None = None, **overrides: Any) -> dict[str, Any]:
    """Column values for a catalog game with USD/NOK/NOK2 loose, CIB and New prices."""
    values: dict[str, Any] = {
        "title": title,
        "console_id": console_id,
        "loose_usd": Decimal("10.00"),
        "loose_nok": Decimal("105.00"),
        "loose_nok2": Decimal("125"),
        "cib_usd": Decimal("20.00"),
        "cib_nok": Decimal("210.00"),
        "cib_nok2": Decimal("225"),
        "new_usd": Decimal("50.00"),
        "new_nok": Decimal("525.00"),
        "new_nok2": Decimal("525"),
    }
    values.update(overrides)
    return values


@pytest.fixture
def game_values():
    """Builder for catalog game column values."""
    return _game_values


@pytest.fixture
def make_game(store: SqlAlchemyStore):
    """Insert a catalog game and return its id."""

    async def _make(title: str = "Halo 3", console_id: int | None = None, **overrides: Any) -> int:
        return await store.insert_game(_game_values(title, console_id, **overrides))

    return _make
