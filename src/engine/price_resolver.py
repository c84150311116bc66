"""
GameShelf — Final Price Resolver

Picks the single displayed valuation of a collection item from the competing
price sources on its catalog game.

Precedence (first match wins):
    1. Price override on the item            → "override"
    2. Item is New and a New price exists    → "new"
    3. Item is CIB and a CIB price exists    → "cib"
    4. A Loose price exists                  → "loose"
    5. Nothing                               → "none" (amount None)

The same precedence applies to every currency tier (USD, NOK, NOK2); only the
column read changes. Absent data always degrades to "none"; the resolver
never raises.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, NamedTuple

import structlog

from src.config import CurrencyTier, PriceTier, Provenance, settings
from src.engine.condition import classify
from src.models.catalog_game import price_column
from src.utils.prices import is_present, parse_price

logger = structlog.get_logger(__name__)


class ResolvedPrice(NamedTuple):
    amount: Decimal | None
    provenance: Provenance


class CollectionValuation(NamedTuple):
    """Totals across a set of collection items for one currency tier."""
    currency_tier: CurrencyTier
    total: Decimal
    priced_items: int
    unpriced_items: int
    by_provenance: dict[Provenance, int]


def _game_price(game: Any, tier: PriceTier, currency: CurrencyTier) -> Decimal | None:
    if game is None:
        return None
    return parse_price(getattr(game, price_column(tier, currency), None))


def resolve_override(value: Any) -> Decimal | None:
    """
    Interpret a stored price override.

    Only non-null, non-empty numeric values count; an explicit 0 is a valid
    override. Anything else falls through the precedence chain.
    """
    return parse_price(value)


def resolve(
    item: Any,
    game: Any,
    currency_tier: CurrencyTier | str | None = None,
) -> ResolvedPrice:
    """
    Resolve the final price of a collection item.

    Args:
        item: Object with price_override, is_new and box/manual/disc_condition.
        game: Catalog game carrying the fifteen price columns (may be None).
        currency_tier: Column set to read, in any letter case ("NOK2" or "nok2");
            defaults to settings.DEFAULT_CURRENCY_TIER.

    Returns:
        ResolvedPrice(amount, provenance).
    """
    currency = CurrencyTier(currency_tier) if currency_tier else settings.DEFAULT_CURRENCY_TIER

    override = resolve_override(getattr(item, "price_override", None))
    if override is not None:
        return ResolvedPrice(override, Provenance.OVERRIDE)

    completeness = classify(
        getattr(item, "box_condition", None),
        getattr(item, "manual_condition", None),
        getattr(item, "disc_condition", None),
        bool(getattr(item, "is_new", False)),
    )

    if completeness.is_new:
        new_price = _game_price(game, PriceTier.NEW, currency)
        if is_present(new_price):
            return ResolvedPrice(new_price, Provenance.NEW)

    if completeness.is_cib:
        cib_price = _game_price(game, PriceTier.CIB, currency)
        if is_present(cib_price):
            return ResolvedPrice(cib_price, Provenance.CIB)

    loose_price = _game_price(game, PriceTier.LOOSE, currency)
    if is_present(loose_price):
        return ResolvedPrice(loose_price, Provenance.LOOSE)

    return ResolvedPrice(None, Provenance.NONE)


def value_collection(
    pairs: Iterable[tuple[Any, Any]],
    currency_tier: CurrencyTier | str | None = None,
) -> CollectionValuation:
    """
    Sum resolved prices across (item, game) pairs.

    Items resolving to "none" are counted as unpriced and add nothing.
    """
    currency = CurrencyTier(currency_tier) if currency_tier else settings.DEFAULT_CURRENCY_TIER
    total = Decimal("0")
    by_provenance: dict[Provenance, int] = {p: 0 for p in Provenance}

    for item, game in pairs:
        resolved = resolve(item, game, currency)
        by_provenance[resolved.provenance] += 1
        if resolved.amount is not None:
            total += resolved.amount

    unpriced = by_provenance[Provenance.NONE]
    priced = sum(by_provenance.values()) - unpriced

    logger.info(
        "collection_valued",
        currency_tier=currency.value,
        total=str(total),
        priced_items=priced,
        unpriced_items=unpriced,
    )
    return CollectionValuation(
        currency_tier=currency,
        total=total,
        priced_items=priced,
        unpriced_items=unpriced,
        by_provenance=by_provenance,
    )
