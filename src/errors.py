"""
GameShelf — Error Taxonomy

Row-level errors (validation, duplicates, storage) are recovered inside the
import pipeline and reported as rejections. Single-entity operations let them
propagate to the caller with a specific reason string.
"""

from __future__ import annotations


class GameShelfError(Exception):
    """Base class for all GameShelf domain errors."""


class ValidationError(GameShelfError, ValueError):
    """Required field missing or malformed (empty title, non-4-digit year)."""


class ImportFormatError(ValidationError):
    """Input is not tabular text at all; the whole import fails."""


class ConversionError(GameShelfError, ValueError):
    """A numeric field could not be parsed."""


class DuplicateError(GameShelfError):
    """Title+console or URL collision with an existing catalog game."""

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason


class NotFoundError(GameShelfError, LookupError):
    """No record exists for the requested key."""


class ReferentialError(GameShelfError):
    """Deletion blocked by rows that still reference the target."""


class InvalidRateError(GameShelfError, ValueError):
    """Exchange rate is non-positive or not a number."""


class StorageError(GameShelfError):
    """The persistence layer rejected a write (e.g. constraint violation)."""
