"""
Purchase strategies.

Each strategy turns the price index and the shopping list into candidate
PurchaseOptions:

- single:         everything from one store (or the best partial store when no
                  store has the whole list)
- cheapest:       every item at its lowest price anywhere, whatever the store count
- fewest-stores:  the smallest combination of stores (2, then 3) that covers the
                  whole list, searched over the best-covering stores only
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import List, Optional, Sequence

from grocery_api.core.config import settings
from grocery_api.core.price_index import PriceIndex, cheapest
from grocery_api.schemas.recommendations import ListItem, PriceOffer, PurchasedItem, PurchaseOption, Strategy

logger = logging.getLogger(__name__)


@dataclass
class StoreCoverage:
    """What a single store can sell from the list; `matches` is aligned with the list."""
    store: str
    matches: List[Optional[PriceOffer]]

    @property
    def covered(self) -> int:
        return sum(1 for m in self.matches if m is not None)

    @property
    def total(self) -> float:
        return sum(m.price for m in self.matches if m is not None)

    @property
    def is_full(self) -> bool:
        return all(m is not None for m in self.matches)


def score_stores(index: PriceIndex, shopping_list: Sequence[ListItem]) -> List[StoreCoverage]:
    return [
        StoreCoverage(store=store, matches=[index.match(item, store) for item in shopping_list])
        for store in index.stores
    ]


def rank_stores(coverages: Sequence[StoreCoverage]) -> List[StoreCoverage]:
    """Most items covered first, then cheaper covered basket, then store name."""
    return sorted(coverages, key=lambda c: (-c.covered, c.total, c.store))


def build_option(
    shopping_list: Sequence[ListItem],
    picks: Sequence[Optional[PriceOffer]],
    *,
    strategy: Strategy,
    is_combination: bool,
) -> PurchaseOption:
    items = [
        PurchasedItem(item=li.name, price=o.price, brand=o.brand, store=o.store)
        for li, o in zip(shopping_list, picks)
        if o is not None
    ]
    stores = sorted({it.store for it in items})
    return PurchaseOption(
        stores=stores,
        items=items,
        total_price=sum(it.price for it in items),
        missing_count=len(shopping_list) - len(items),
        is_combination=is_combination,
        strategy=strategy,
        store_count=len(stores),
    )


def single_store_options(
    coverages: Sequence[StoreCoverage],
    shopping_list: Sequence[ListItem],
) -> List[PurchaseOption]:
    if not shopping_list:
        return []

    full = [c for c in coverages if c.is_full]
    if full:
        return [
            build_option(shopping_list, c.matches, strategy="single", is_combination=False)
            for c in full
        ]

    # No store has everything: fall back to the one store that gets closest.
    partial = [c for c in coverages if c.covered > 0]
    if not partial:
        return []
    best = rank_stores(partial)[0]
    return [build_option(shopping_list, best.matches, strategy="single", is_combination=False)]


def cheapest_option(index: PriceIndex, shopping_list: Sequence[ListItem]) -> Optional[PurchaseOption]:
    picks = [index.match(item) for item in shopping_list]
    if not any(p is not None for p in picks):
        return None
    return build_option(shopping_list, picks, strategy="cheapest", is_combination=True)


def _combine(combo: Sequence[StoreCoverage]) -> List[Optional[PriceOffer]]:
    # Per item, the cheapest match among the combination's stores; on equal
    # prices the higher-ranked store (earlier in combo) wins.
    n = len(combo[0].matches)
    return [cheapest(c.matches[i] for c in combo if c.matches[i] is not None) for i in range(n)]


def _full_combinations(
    ranked: Sequence[StoreCoverage],
    size: int,
    shopping_list: Sequence[ListItem],
):
    for combo in combinations(ranked, size):
        picks = _combine(combo)
        if any(p is None for p in picks):
            continue
        option = build_option(shopping_list, picks, strategy="fewest-stores", is_combination=True)
        # Some store in the combo ended up contributing nothing: that plan is a
        # smaller combination (or a single store) and is produced there.
        if option.store_count < size:
            continue
        yield option


def fewest_store_options(
    coverages: Sequence[StoreCoverage],
    shopping_list: Sequence[ListItem],
    *,
    pair_limit: Optional[int] = None,
    triple_limit: Optional[int] = None,
) -> List[PurchaseOption]:
    """
    Search 2-store combinations among the top `pair_limit` stores by coverage,
    keeping every pair that covers the whole list.

    Only when no pair works and no single store has the whole list, search
    3-store combinations among the top `triple_limit` stores; that search stops
    at the first full-coverage triple in ranked order (not necessarily the
    cheapest triple).
    """
    if not shopping_list:
        return []
    pair_limit = settings.PAIR_SEARCH_LIMIT if pair_limit is None else pair_limit
    triple_limit = settings.TRIPLE_SEARCH_LIMIT if triple_limit is None else triple_limit

    ranked = rank_stores(coverages)

    pairs = list(_full_combinations(ranked[:pair_limit], 2, shopping_list))
    if pairs:
        logger.debug("Found %d full-coverage store pairs", len(pairs))
        return pairs

    if any(c.is_full for c in coverages):
        return []

    for triple in _full_combinations(ranked[:triple_limit], 3, shopping_list):
        logger.debug("Found full-coverage triple %s", triple.stores)
        return [triple]
    return []
