"""
GameShelf — Condition Classifier

Derives completeness from three independent condition ratings (box, manual,
disc). Each rating is an ordinal grade 5 (mint) … 1 (poor), or absent.

Rules:
- A rating is absent iff it is "missing" or "0".
- CIB (Complete In Box) iff none of the three ratings is absent.
- The New flag is carried verbatim; it is never derived from the ratings.

Entering the New state is a single transition (ItemCondition.mark_new) that
pins all three ratings to 5 at once.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, NamedTuple

import structlog
from pydantic import BaseModel, ConfigDict, field_validator

from src.errors import ValidationError

logger = structlog.get_logger(__name__)


class ConditionRating(str, Enum):
    """Ordinal condition grade as stored on collection items."""
    MINT = "5"
    VERY_GOOD = "4"
    GOOD = "3"
    FAIR = "2"
    POOR = "1"
    MISSING = "missing"


class ConditionPart(str, Enum):
    """The three independently rated parts of a copy."""
    BOX = "box"
    MANUAL = "manual"
    DISC = "disc"


class Completeness(NamedTuple):
    """Result of classifying a copy's three ratings."""
    is_cib: bool
    is_new: bool


_ABSENT_MARKERS = {"missing", "0"}


def is_absent(value: Any) -> bool:
    """True when a raw rating denotes a missing part."""
    if value is None:
        return True
    if isinstance(value, ConditionRating):
        return value is ConditionRating.MISSING
    return str(value).strip().lower() in _ABSENT_MARKERS


def parse_rating(value: Any) -> ConditionRating:
    """
    Normalize a raw rating (5, "5", "missing", "0", 0, None) to ConditionRating.

    Raises:
        ValidationError: If the value is outside the rating domain.
    """
    if isinstance(value, ConditionRating):
        return value
    if is_absent(value):
        return ConditionRating.MISSING
    try:
        return ConditionRating(str(value).strip())
    except ValueError:
        raise ValidationError(
            f"Invalid condition rating {value!r}; expected 1-5 or 'missing'"
        ) from None


def classify(box: Any, manual: Any, disc: Any, is_new: bool = False) -> Completeness:
    """
    Classify a copy as complete-in-box and/or new.

    Args:
        box: Box rating.
        manual: Manual rating.
        disc: Disc/cartridge rating.
        is_new: Sealed flag, mirrored into the result unchanged.

    Returns:
        Completeness(is_cib, is_new). Never raises.
    """
    is_cib = not (is_absent(box) or is_absent(manual) or is_absent(disc))
    is_new = bool(is_new)

    if is_new and not all(
        str(getattr(r, "value", r)).strip() == ConditionRating.MINT.value
        for r in (box, manual, disc)
    ):
        logger.warning(
            "condition_new_not_mint",
            box=str(box),
            manual=str(manual),
            disc=str(disc),
        )

    return Completeness(is_cib=is_cib, is_new=is_new)


class ItemCondition(BaseModel):
    """
    Immutable condition state of one collection item.

    Every edit returns a new instance; nothing is recomputed implicitly.
    """

    model_config = ConfigDict(frozen=True)

    box: ConditionRating = ConditionRating.MISSING
    manual: ConditionRating = ConditionRating.MISSING
    disc: ConditionRating = ConditionRating.MISSING
    is_new: bool = False

    @field_validator("box", "manual", "disc", mode="before")
    @classmethod
    def _parse(cls, v: Any) -> ConditionRating:
        return parse_rating(v)

    @classmethod
    def from_item(cls, item: Any) -> ItemCondition:
        """Build from anything with box/manual/disc_condition and is_new attributes."""
        return cls(
            box=getattr(item, "box_condition", None),
            manual=getattr(item, "manual_condition", None),
            disc=getattr(item, "disc_condition", None),
            is_new=bool(getattr(item, "is_new", False)),
        )

    @property
    def completeness(self) -> Completeness:
        return classify(self.box, self.manual, self.disc, self.is_new)

    def mark_new(self) -> ItemCondition:
        """Enter the New state: all three parts become mint in one step."""
        return self.model_copy(
            update={
                "box": ConditionRating.MINT,
                "manual": ConditionRating.MINT,
                "disc": ConditionRating.MINT,
                "is_new": True,
            }
        )

    def unmark_new(self) -> ItemCondition:
        """Leave the New state; ratings are kept as they are."""
        return self.model_copy(update={"is_new": False})

    def with_rating(self, part: ConditionPart | str, value: Any) -> ItemCondition:
        """
        Change one part's rating.

        Any rating below 5 also leaves the New state.
        """
        part = ConditionPart(part)
        rating = parse_rating(value)
        update: dict[str, Any] = {part.value: rating}
        if self.is_new and rating is not ConditionRating.MINT:
            update["is_new"] = False
        return self.model_copy(update=update)

    def as_columns(self) -> dict[str, Any]:
        """Column values for a CollectionItem row."""
        return {
            "box_condition": self.box.value,
            "manual_condition": self.manual.value,
            "disc_condition": self.disc.value,
            "is_new": self.is_new,
        }
