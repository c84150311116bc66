"""
GameShelf — Application Entrypoint

Configures structlog, builds the async SQLAlchemy engine and dispatches one
command-line operation against the store.

Run via:
    python -m src.main init-db
    python -m src.main import games.tsv --console "Xbox 360"
    python -m src.main record-rate NOK 10.45
    python -m src.main latest-rate NOK
    python -m src.main reprice
    python -m src.main value --tier nok2
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.config import CurrencyTier, RegionName, settings
from src.engine.exchange_rates import ExchangeRateLedger
from src.errors import GameShelfError, NotFoundError
from src.models import Base, Console, Rating, Region
from src.pipeline.importer import ImportPipeline
from src.services.catalog import reprice_catalog
from src.services.collection import value_owned_collection
from src.storage.store import SqlAlchemyStore

SessionFactory = async_sessionmaker[AsyncSession]

# (name, system) pairs created by init-db.
DEFAULT_RATINGS: tuple[tuple[str, str], ...] = (
    ("PEGI 3", "PEGI"),
    ("PEGI 7", "PEGI"),
    ("PEGI 12", "PEGI"),
    ("PEGI 16", "PEGI"),
    ("PEGI 18", "PEGI"),
    ("ESRB E", "ESRB"),
    ("ESRB T", "ESRB"),
    ("ESRB M", "ESRB"),
    ("CERO A", "CERO"),
)


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Logs go to stderr so command results on stdout stay machine-readable.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Database Setup
# ---------------------------------------------------------------------------


def create_db_engine(
    database_url: str | None = None,
) -> tuple[AsyncEngine, SessionFactory]:
    """
    Create SQLAlchemy async engine and session factory.

    Postgres (asyncpg) gets a connection pool; SQLite (aiosqlite) uses the
    driver default.

    Returns:
        (engine, session_factory) tuple.
    """
    logger = structlog.get_logger(__name__)
    url = database_url or settings.DATABASE_URL

    engine_kwargs: dict[str, Any] = {"echo": settings.DATABASE_ECHO}
    if url.startswith("postgresql"):
        engine_kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)

    engine = create_async_engine(url, **engine_kwargs)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info("database_engine_ready", dialect=engine.dialect.name)
    return engine, session_factory


async def seed_reference_data(session: AsyncSession) -> int:
    """
    Insert the default regions, import console and ratings when absent.

    Returns:
        Number of rows created.
    """
    created = 0

    async def _ensure(model: Any, **values: Any) -> None:
        nonlocal created
        stmt = select(model).filter_by(name=values["name"])
        if (await session.execute(stmt)).scalars().first() is None:
            session.add(model(**values))
            created += 1

    for region in RegionName:
        await _ensure(Region, name=region.value)
    await _ensure(Console, name=settings.IMPORT_CONSOLE_NAME)
    for name, system in DEFAULT_RATINGS:
        await _ensure(Rating, name=name, system=system)

    await session.commit()
    return created


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_init_db(
    engine: AsyncEngine, session_factory: SessionFactory, args: argparse.Namespace
) -> dict[str, Any]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with session_factory() as session:
        created = await seed_reference_data(session)
    return {"tables": sorted(Base.metadata.tables), "seeded_rows": created}


async def cmd_import(
    engine: AsyncEngine, session_factory: SessionFactory, args: argparse.Namespace
) -> dict[str, Any]:
    raw_text = Path(args.file).read_text(encoding="utf-8")
    async with session_factory() as session:
        store = SqlAlchemyStore(session)
        console = await store.find_console(args.console)
        if console is None:
            raise NotFoundError(f"Console {args.console} not found")
        pipeline = ImportPipeline(store, console_id=console.id, ledger=ExchangeRateLedger(store))
        result = await pipeline.import_text(raw_text)
    return result.to_summary()


async def cmd_record_rate(
    engine: AsyncEngine, session_factory: SessionFactory, args: argparse.Namespace
) -> dict[str, Any]:
    async with session_factory() as session:
        record = await ExchangeRateLedger(SqlAlchemyStore(session)).record(args.currency, args.rate)
    return {"currency": record.currency, "rate": str(record.rate), "timestamp": record.timestamp.isoformat()}


async def cmd_latest_rate(
    engine: AsyncEngine, session_factory: SessionFactory, args: argparse.Namespace
) -> dict[str, Any]:
    async with session_factory() as session:
        record = await ExchangeRateLedger(SqlAlchemyStore(session)).latest(args.currency)
    return {"currency": record.currency, "rate": str(record.rate), "timestamp": record.timestamp.isoformat()}


async def cmd_reprice(
    engine: AsyncEngine, session_factory: SessionFactory, args: argparse.Namespace
) -> dict[str, Any]:
    async with session_factory() as session:
        store = SqlAlchemyStore(session)
        changed = await reprice_catalog(store, ExchangeRateLedger(store))
    return {"games_changed": changed}


async def cmd_value(
    engine: AsyncEngine, session_factory: SessionFactory, args: argparse.Namespace
) -> dict[str, Any]:
    async with session_factory() as session:
        valuation = await value_owned_collection(SqlAlchemyStore(session), args.tier)
    return {
        "currency_tier": valuation.currency_tier.value,
        "total": str(valuation.total),
        "priced_items": valuation.priced_items,
        "unpriced_items": valuation.unpriced_items,
        "by_provenance": {p.value: n for p, n in valuation.by_provenance.items()},
    }


COMMANDS = {
    "init-db": cmd_init_db,
    "import": cmd_import,
    "record-rate": cmd_record_rate,
    "latest-rate": cmd_latest_rate,
    "reprice": cmd_reprice,
    "value": cmd_value,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gameshelf", description="Game collection valuation")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables and seed reference data")

    p_import = sub.add_parser("import", help="Import a tab-separated catalog export")
    p_import.add_argument("file")
    p_import.add_argument("--console", default=settings.IMPORT_CONSOLE_NAME)

    p_record = sub.add_parser("record-rate", help="Append an exchange rate (units per USD)")
    p_record.add_argument("currency")
    p_record.add_argument("rate")

    p_latest = sub.add_parser("latest-rate", help="Show the most recent exchange rate")
    p_latest.add_argument("currency")

    sub.add_parser("reprice", help="Recompute NOK prices from USD with the latest rate")

    p_value = sub.add_parser("value", help="Total value of the collection")
    p_value.add_argument(
        "--tier",
        type=str.lower,
        choices=[t.value for t in CurrencyTier],
        default=settings.DEFAULT_CURRENCY_TIER.value,
    )
    return parser


# ---------------------------------------------------------------------------
# Application Startup
# ---------------------------------------------------------------------------


async def main(argv: list[str] | None = None) -> int:
    """
    Parse arguments, run one command, print its JSON result.

    Returns:
        Process exit code: 0 on success, 1 on a domain error.
    """
    args = build_parser().parse_args(argv)
    _configure_logging(log_level=settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)

    engine, session_factory = create_db_engine(args.database_url)
    try:
        result = await COMMANDS[args.command](engine, session_factory, args)
    except GameShelfError as e:
        logger.error(
            "command_failed",
            command=args.command,
            error=str(e),
            error_type=type(e).__name__,
        )
        return 1
    finally:
        await engine.dispose()

    print(json.dumps(result, indent=2))
    logger.info("command_complete", command=args.command)
    return 0


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
