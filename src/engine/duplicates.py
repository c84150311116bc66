"""
GameShelf — Duplicate Detector

Enforces catalog uniqueness before a new game is accepted.

Order is fixed:
1. Title, case-insensitive, within the same console → "title" (stops here;
   the URL is not checked).
2. PriceCharting URL, exact, across ALL consoles → "url".
3. Otherwise no duplicate.

The title check is per-console while the URL check is global. A title
collision is reported even when no URL is supplied.
"""

from __future__ import annotations

from typing import Any, NamedTuple

import structlog

from src.storage.store import GameStore

logger = structlog.get_logger(__name__)

TITLE = "title"
URL = "url"

_MESSAGES = {
    TITLE: "A game with this title already exists for this console",
    URL: "This PriceCharting URL is already registered to another game",
}


class DuplicateCheck(NamedTuple):
    exists: bool
    reason: str | None

    @property
    def message(self) -> str | None:
        return _MESSAGES.get(self.reason) if self.reason else None

    def to_response(self) -> dict[str, Any]:
        """Body for the duplicate-check endpoint: {exists, message?}."""
        body: dict[str, Any] = {"exists": self.exists}
        if self.message:
            body["message"] = self.message
        return body


NO_DUPLICATE = DuplicateCheck(exists=False, reason=None)


class DuplicateDetector:
    """Read-only uniqueness checks against the catalog."""

    def __init__(self, store: GameStore):
        self._store = store

    async def check(
        self,
        title: str,
        console_id: int | None,
        pricecharting_url: str | None = None,
    ) -> DuplicateCheck:
        """
        Check a candidate game against existing catalog entries.

        Args:
            title: Candidate title (compared case-insensitively).
            console_id: Console the title must be unique within.
            pricecharting_url: Optional external URL, globally unique.

        Returns:
            DuplicateCheck(exists, reason) with reason "title", "url" or None.
        """
        # A None console only matches games without a console.
        title_matches = [
            game
            for game in await self._store.find_games(title=(title or "").strip())
            if game.console_id == console_id
        ]
        if title_matches:
            logger.info(
                "duplicate_detected",
                reason=TITLE,
                title=title,
                console_id=console_id,
                existing_id=title_matches[0].id,
            )
            return DuplicateCheck(exists=True, reason=TITLE)

        url = (pricecharting_url or "").strip()
        if url:
            url_matches = await self._store.find_games(pricecharting_url=url, limit=1)
            if url_matches:
                logger.info(
                    "duplicate_detected",
                    reason=URL,
                    pricecharting_url=url,
                    existing_id=url_matches[0].id,
                )
                return DuplicateCheck(exists=True, reason=URL)

        return NO_DUPLICATE
