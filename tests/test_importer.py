"""
GameShelf — Bulk Import Pipeline Tests

- Partial success: bad rows are rejected with a reason, good rows persist
- Positional 20-column mapping, price coercion, NOK/NOK2 derivation
- Region, rating, Kinect and release-year derivation
- Only malformed input fails the whole import
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.config import RegionName
from src.engine.exchange_rates import ExchangeRateLedger
from src.errors import ImportFormatError, StorageError
from src.models.reference import Rating
from src.pipeline.importer import ImportPipeline, RowRejection, determine_region, match_rating, tokenize
from src.pipeline.tsv_schema import TSV_COLUMNS, extract_year, map_row

HEADER = "\t".join(TSV_COLUMNS)


def tsv_row(title: str = "Halo 3", **fields: Any) -> str:
    cells = {name: "" for name in TSV_COLUMNS}
    cells["title"] = title
    cells.update({k: str(v) for k, v in fields.items()})
    return "\t".join(cells[name] for name in TSV_COLUMNS)


def tsv(*rows: str) -> str:
    return "\n".join([HEADER, *rows]) + "\n"


@pytest.fixture
async def pipeline(store, xbox_id) -> ImportPipeline:
    return ImportPipeline(store, console_id=xbox_id, ledger=ExchangeRateLedger(store))


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestTokenize:
    def test_header_and_rows(self) -> None:
        header, rows = tokenize(tsv(tsv_row("A"), tsv_row("B")))
        assert header[0] == "title"
        assert len(header) == 20
        assert [r[0] for r in rows] == ["A", "B"]

    def test_blank_lines_and_crlf(self) -> None:
        text = HEADER + "\r\n\r\n" + tsv_row("A") + "\r\n   \r\n" + tsv_row("B")
        _, rows = tokenize(text)
        assert len(rows) == 2

    @pytest.mark.parametrize("text", ["", "   \n\n", None])
    def test_empty_input(self, text) -> None:
        with pytest.raises(ImportFormatError):
            tokenize(text)

    def test_not_tabular(self) -> None:
        with pytest.raises(ImportFormatError):
            tokenize("this is just prose\nwith two lines")


class TestRowMapping:
    def test_short_row_pads_with_none(self) -> None:
        fields = map_row(["Halo 3", "PEGI 16"])
        assert fields["title"] == "Halo 3"
        assert fields["rating_code"] == "PEGI 16"
        assert fields["price_manual_only"] is None

    def test_cells_are_stripped(self) -> None:
        assert map_row(["  Halo 3  "])["title"] == "Halo 3"

    @pytest.mark.parametrize(
        "text,year",
        [("Nov 7, 2006", 2006), ("2010-11-04", 2010), ("TBA", None), (None, None), ("'07", None)],
    )
    def test_extract_year(self, text, year) -> None:
        assert extract_year(text) == year


class TestRegionAndRating:
    @pytest.mark.parametrize(
        "code,region",
        [
            ("NTSC", RegionName.NTSC_U),
            ("ntsc-u", RegionName.NTSC_U),
            ("CERO B", RegionName.NTSC_J),
            ("PEGI 16", RegionName.PAL),
            ("BBFC 15", RegionName.PAL),
            ("ACB MA15+", RegionName.PAL),
            ("ESRB M", RegionName.PAL),
            (None, RegionName.PAL),
            ("", RegionName.PAL),
        ],
    )
    def test_determine_region(self, code, region: RegionName) -> None:
        assert determine_region(code) is region

    def test_match_rating(self) -> None:
        ratings = [
            Rating(id=1, name="PEGI 16", system="PEGI"),
            Rating(id=2, name="ESRB M", system="ESRB"),
        ]
        assert match_rating("pegi 16", ratings) == 1
        assert match_rating("ESRB M", ratings) == 2
        assert match_rating("PEGI16", ratings) == 1
        assert match_rating("PEGI 7", ratings) is None
        assert match_rating(None, ratings) is None


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class TestImportText:
    @pytest.mark.asyncio
    async def test_partial_success(self, pipeline: ImportPipeline, store) -> None:
        """A row without a title is rejected; its neighbours still import."""
        text = tsv(
            tsv_row("Halo 3", price_loose="19.99"),
            tsv_row("", price_loose="5"),
            tsv_row("Gears of War", price_loose="N/A"),
        )
        result = await pipeline.import_text(text)

        assert [g.title for g in result.accepted] == ["Halo 3", "Gears of War"]
        assert result.rejected == [RowRejection(row=2, reason="Missing required field: title")]
        assert len(await store.find_games()) == 2

    @pytest.mark.asyncio
    async def test_price_coercion(self, pipeline: ImportPipeline) -> None:
        text = tsv(tsv_row("Halo 3", price_loose="", price_complete="19.99", price_new="N/A"))
        game = (await pipeline.import_text(text)).accepted[0]

        assert game.loose_usd is None
        assert game.cib_usd == Decimal("19.99")
        assert game.new_usd is None

    @pytest.mark.asyncio
    async def test_oversized_price_is_unpriced(self, pipeline: ImportPipeline, store) -> None:
        """A price too large for a price column counts as no price; every row imports."""
        text = tsv(
            tsv_row("Halo 3", price_loose="19.99"),
            tsv_row("Crackdown", price_loose="1e30"),
            tsv_row("Fable II", price_loose="5"),
        )
        result = await pipeline.import_text(text)

        assert [g.title for g in result.accepted] == ["Halo 3", "Crackdown", "Fable II"]
        assert result.rejected == []
        crackdown = result.accepted[1]
        assert crackdown.loose_usd is None
        assert crackdown.loose_nok is None
        assert crackdown.loose_nok2 is None
        assert len(await store.find_games()) == 3

    @pytest.mark.asyncio
    async def test_unconvertible_price_rejects_only_that_row(self, pipeline: ImportPipeline, store) -> None:
        """99,999,999 USD fits a price column but its NOK value does not."""
        text = tsv(
            tsv_row("Halo 3", price_loose="19.99"),
            tsv_row("Crackdown", price_loose="99999999"),
            tsv_row("Fable II", price_loose="5"),
        )
        result = await pipeline.import_text(text)

        assert [g.title for g in result.accepted] == ["Halo 3", "Fable II"]
        assert [r.row for r in result.rejected] == [2]
        assert "out of range" in result.rejected[0].reason
        assert len(await store.find_games()) == 2

    @pytest.mark.asyncio
    async def test_local_prices_use_fallback_rate(self, pipeline: ImportPipeline) -> None:
        """No rate recorded: 19.99 × 10.5 = 209.90 NOK, shown as 225."""
        game = (await pipeline.import_text(tsv(tsv_row(price_complete="19.99")))).accepted[0]
        assert game.cib_nok == Decimal("209.90")
        assert game.cib_nok2 == Decimal("225")

    @pytest.mark.asyncio
    async def test_local_prices_use_latest_rate(self, pipeline: ImportPipeline, store) -> None:
        await ExchangeRateLedger(store).record(
            "NOK", Decimal("10"), datetime(2026, 3, 1, tzinfo=timezone.utc)
        )
        game = (await pipeline.import_text(tsv(tsv_row(price_loose="4.12")))).accepted[0]
        assert game.loose_nok == Decimal("41.20")
        assert game.loose_nok2 == Decimal("45")

    @pytest.mark.asyncio
    async def test_derived_fields(self, pipeline: ImportPipeline, store, xbox_id) -> None:
        text = tsv(
            tsv_row(
                "Kinect Adventures",
                rating_code="PEGI 7",
                release_date="Nov 4, 2010",
                developer="Good Science Studio",
                pricecharting_url="https://example.test/kinect-adventures",
                pricecharting_id="12345",
                description="ignored",
            )
        )
        game = (await pipeline.import_text(text)).accepted[0]
        pegi_7 = next(r for r in await store.find_ratings() if r.name == "PEGI 7")

        assert game.id is not None
        assert game.console_id == xbox_id
        assert game.region_id == (await store.find_region("PAL")).id
        assert game.rating_id == pegi_7.id
        assert game.release_year == 2010
        assert game.is_kinect is True
        assert game.is_special is False
        assert game.developer == "Good Science Studio"
        assert game.pricecharting_id == "12345"

    @pytest.mark.asyncio
    async def test_region_from_pegi_column(self, pipeline: ImportPipeline, store) -> None:
        game = (await pipeline.import_text(tsv(tsv_row("Lost Odyssey", pegi_raw="CERO B")))).accepted[0]
        assert game.region_id == (await store.find_region("NTSC-J")).id

    @pytest.mark.asyncio
    async def test_duplicate_rows_rejected(self, pipeline: ImportPipeline) -> None:
        text = tsv(
            tsv_row("Halo 3", pricecharting_url="https://example.test/halo-3"),
            tsv_row("HALO 3"),
            tsv_row("Halo 3 ODST", pricecharting_url="https://example.test/halo-3"),
        )
        result = await pipeline.import_text(text)

        assert len(result.accepted) == 1
        assert [r.row for r in result.rejected] == [2, 3]
        assert "title already exists" in result.rejected[0].reason
        assert "PriceCharting URL" in result.rejected[1].reason

    @pytest.mark.asyncio
    async def test_invalid_year_rejects_row(self, pipeline: ImportPipeline) -> None:
        result = await pipeline.import_text(tsv(tsv_row(release_date="year 0999")))
        assert result.accepted == []
        assert result.rejected[0].reason.startswith("Invalid release_year")

    @pytest.mark.asyncio
    async def test_storage_failure_rejects_only_that_row(self, pipeline: ImportPipeline, store) -> None:
        insert = store.insert_game

        async def flaky_insert(record: dict[str, Any]) -> int:
            if record["title"] == "Crackdown":
                raise StorageError("insert_game rejected by storage: disk full")
            return await insert(record)

        store.insert_game = AsyncMock(side_effect=flaky_insert)
        text = tsv(tsv_row("Halo 3"), tsv_row("Crackdown"), tsv_row("Fable II"))
        result = await pipeline.import_text(text)

        assert [g.title for g in result.accepted] == ["Halo 3", "Fable II"]
        assert result.rejected == [
            RowRejection(row=2, reason="insert_game rejected by storage: disk full")
        ]
        assert store.insert_game.await_count == 3

    @pytest.mark.asyncio
    async def test_missing_region_rejects_row(self, store, xbox_id) -> None:
        await store.delete_region((await store.find_region("NTSC-U")).id)
        pipeline = ImportPipeline(store, console_id=xbox_id)
        result = await pipeline.import_text(tsv(tsv_row("Halo 3", rating_code="NTSC")))
        assert result.rejected == [RowRejection(row=1, reason="Region NTSC-U not found")]

    @pytest.mark.asyncio
    async def test_header_only(self, pipeline: ImportPipeline) -> None:
        result = await pipeline.import_text(HEADER)
        assert result.accepted == []
        assert result.rejected == []

    @pytest.mark.asyncio
    async def test_malformed_input_fails_whole_import(self, pipeline: ImportPipeline, store) -> None:
        with pytest.raises(ImportFormatError):
            await pipeline.import_text("")
        assert await store.find_games() == []

    @pytest.mark.asyncio
    async def test_summary(self, pipeline: ImportPipeline) -> None:
        result = await pipeline.import_text(tsv(tsv_row("Halo 3"), tsv_row("", genre="Shooter")))
        assert result.to_summary() == {
            "accepted": 1,
            "rejected": [{"row": 2, "reason": "Missing required field: title"}],
        }
