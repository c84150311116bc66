"""
GameShelf — Bulk Import Pipeline

Parses tab-separated catalog exports into validated games and stores them one
row at a time.

Stages:
    1. Tokenize: split lines, drop blank ones, split on tabs. The header line
       is only logged; mapping is positional (see tsv_schema.TSV_COLUMNS).
    2. Map cells to fields; blank → None.
    3. Coerce the five USD price cells to Decimal (garbage or out of range
       → None, never fails). A local price too large to store rejects the row.
    4. Validate (title required) and run the DuplicateDetector.
    5. Insert via the store. A storage failure rejects that row only.
    6. Return accepted vs rejected rows with per-row reasons.

Rows are processed strictly in input order and each insert is awaited before
the next row starts, so rejection row numbers follow the file.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, NamedTuple

import structlog

from src.config import CurrencyTier, RegionName, settings
from src.engine.duplicates import DuplicateDetector
from src.engine.exchange_rates import ExchangeRateLedger
from src.errors import ConversionError, DuplicateError, ImportFormatError, StorageError, ValidationError
from src.models.catalog_game import price_column
from src.models.reference import Rating
from src.pipeline.tsv_schema import PRICE_FIELDS, extract_year, map_row
from src.schemas.game import GameRecord, validate_game
from src.storage.store import GameStore
from src.utils.forex import convert_usd_to_local, round_display_price
from src.utils.prices import parse_price

logger = structlog.get_logger(__name__)

_PEGI_NUMBER_RE = re.compile(r"\d+")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class RowRejection(NamedTuple):
    row: int       # 1-based over non-blank data lines
    reason: str


class ImportResult(NamedTuple):
    accepted: list[GameRecord]
    rejected: list[RowRejection]

    def to_summary(self) -> dict[str, Any]:
        """Body for the import endpoint: {accepted: n, rejected: [{row, reason}]}."""
        return {
            "accepted": len(self.accepted),
            "rejected": [{"row": r.row, "reason": r.reason} for r in self.rejected],
        }


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def tokenize(raw_text: str) -> tuple[list[str], list[list[str]]]:
    """
    Split raw text into (header cells, data rows).

    Raises:
        ImportFormatError: If the text is empty or the header has no tab.
    """
    if raw_text is None or not raw_text.strip():
        raise ImportFormatError("Import file is empty")

    lines = [
        line for line in raw_text.replace("\r\n", "\n").split("\n") if line.strip()
    ]
    header = lines[0].split("\t")
    if len(header) < 2:
        raise ImportFormatError("Import file is not tab-separated text")

    return [h.strip() for h in header], [line.split("\t") for line in lines[1:]]


def determine_region(rating_code: str | None) -> RegionName:
    """
    Infer a release region from a rating code.

    NTSC → NTSC-U, CERO → NTSC-J, ACB/BBFC/PEGI → PAL, anything else → PAL.
    """
    if not rating_code:
        return settings.DEFAULT_REGION
    code = rating_code.upper()

    if "NTSC" in code:
        return RegionName.NTSC_U
    if "CERO" in code:
        return RegionName.NTSC_J
    if "ACB" in code or "BBFC" in code or "PEGI" in code:
        return RegionName.PAL
    return settings.DEFAULT_REGION


def match_rating(rating_code: str | None, ratings: list[Rating]) -> int | None:
    """
    Resolve a rating code to a rating id.

    Exact name match first (case-insensitive); for PEGI codes, fall back to
    the PEGI rating whose name carries the same age number.
    """
    code = (rating_code or "").strip().upper()
    if not code:
        return None

    for rating in ratings:
        if rating.name.upper() == code:
            return rating.id

    if "PEGI" in code:
        number = _PEGI_NUMBER_RE.search(code)
        if number:
            for rating in ratings:
                if rating.system == "PEGI" and number.group(0) in rating.name:
                    return rating.id

    return None


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class ImportPipeline:
    """
    Imports catalog games for one console.

    Usage:
        pipeline = ImportPipeline(store, console_id=console.id, ledger=ledger)
        result = await pipeline.import_text(path.read_text())
    """

    def __init__(
        self,
        store: GameStore,
        console_id: int | None,
        ledger: ExchangeRateLedger | None = None,
        detector: DuplicateDetector | None = None,
    ):
        self._store = store
        self._console_id = console_id
        self._ledger = ledger
        self._detector = detector or DuplicateDetector(store)
        self._region_ids: dict[RegionName, int] = {}

    async def _local_rate(self) -> Decimal:
        if self._ledger is None:
            return settings.DEFAULT_NOK_RATE
        return await self._ledger.latest_or_default(
            settings.LOCAL_CURRENCY, settings.DEFAULT_NOK_RATE
        )

    async def _region_id(self, region: RegionName) -> int:
        if region not in self._region_ids:
            row = await self._store.find_region(region.value)
            if row is None:
                raise ValidationError(f"Region {region.value} not found")
            self._region_ids[region] = row.id
        return self._region_ids[region]

    async def build_record(
        self,
        cells: list[str],
        rate: Decimal,
        ratings: list[Rating],
    ) -> GameRecord:
        """
        Turn one row of cells into a validated GameRecord.

        Raises:
            ValidationError: Missing title, unknown region or invalid field.
        """
        fields = map_row(cells)
        title = fields["title"]
        if not title:
            raise ValidationError("Missing required field: title")

        rating_code = fields["rating_code"] or fields["pegi_raw"]
        region_id = await self._region_id(determine_region(rating_code))

        values: dict[str, Any] = {
            "title": title,
            "console_id": self._console_id,
            "region_id": region_id,
            "rating_id": match_rating(rating_code, ratings),
            "pricecharting_id": fields["pricecharting_id"],
            "pricecharting_url": fields["pricecharting_url"],
            "cover_url": fields["cover_url"],
            "developer": fields["developer"],
            "publisher": fields["publisher"],
            "release_year": extract_year(fields["release_date"]),
            "genre": fields["genre"],
            "is_special": False,
            "is_kinect": "kinect" in title.lower(),
        }

        for field_name, tier in PRICE_FIELDS.items():
            usd = parse_price(fields[field_name])
            nok = convert_usd_to_local(usd, rate)
            values[price_column(tier, CurrencyTier.USD)] = usd
            values[price_column(tier, CurrencyTier.NOK)] = nok
            values[price_column(tier, CurrencyTier.NOK2)] = round_display_price(nok)

        return validate_game(values)

    async def import_text(self, raw_text: str) -> ImportResult:
        """
        Import every data row of a tab-separated export.

        Never raises for row-level failures; only malformed input
        (ImportFormatError) fails the whole call.
        """
        header, rows = tokenize(raw_text)
        logger.info(
            "import_header_detected",
            headers=header,
            column_count=len(header),
            data_rows=len(rows),
        )

        rate = await self._local_rate()
        ratings = await self._store.find_ratings()

        accepted: list[GameRecord] = []
        rejected: list[RowRejection] = []

        for row_number, cells in enumerate(rows, start=1):
            try:
                record = await self.build_record(cells, rate, ratings)

                check = await self._detector.check(
                    record.title, record.console_id, record.pricecharting_url
                )
                if check.exists:
                    raise DuplicateError(check.message or "Duplicate game", check.reason)

                game_id = await self._store.insert_game(record.to_columns())
                accepted.append(record.model_copy(update={"id": game_id}))

            except (ValidationError, ConversionError, DuplicateError, StorageError) as e:
                reason = str(e)[: settings.IMPORT_MAX_REASON_LENGTH]
                rejected.append(RowRejection(row=row_number, reason=reason))
                logger.warning(
                    "import_row_rejected",
                    row=row_number,
                    error_type=type(e).__name__,
                    reason=reason,
                )

        logger.info(
            "import_complete",
            accepted=len(accepted),
            rejected=len(rejected),
            console_id=self._console_id,
            local_rate=str(rate),
        )
        return ImportResult(accepted=accepted, rejected=rejected)
