from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from grocery_api.core.config import settings
from grocery_api.schemas.recommendations import PurchaseOption

# Only used to make the order total once every ranking rule is tied.
STRATEGY_ORDER = {"fewest-stores": 0, "single": 1, "cheapest": 2}


def option_key(option: PurchaseOption) -> Tuple[str, Tuple[str, ...]]:
    return option.strategy, tuple(sorted(option.stores))


def merge_options(*groups: Iterable[PurchaseOption]) -> List[PurchaseOption]:
    """Concatenate strategy outputs, dropping options with the same strategy and store set."""
    seen = set()
    merged: List[PurchaseOption] = []
    for group in groups:
        for option in group:
            k = option_key(option)
            if k in seen:
                continue
            seen.add(k)
            merged.append(option)
    return merged


def rank_key(option: PurchaseOption):
    """
    1. full coverage before partial
    2. fewer missing items
    3. among full-coverage options, fewest-stores before other strategies
    4. fewer stores
    5. lower total price
    """
    full = option.missing_count == 0
    return (
        not full,
        option.missing_count,
        not (full and option.strategy == "fewest-stores"),
        option.store_count,
        option.total_price,
        STRATEGY_ORDER.get(option.strategy, len(STRATEGY_ORDER)),
        tuple(option.stores),
    )


def rank_options(options: Iterable[PurchaseOption]) -> List[PurchaseOption]:
    return sorted(options, key=rank_key)


@dataclass
class BudgetPartition:
    within: List[PurchaseOption] = field(default_factory=list)
    exceeded: List[PurchaseOption] = field(default_factory=list)


def partition_by_budget(options: Iterable[PurchaseOption], budget: Optional[float]) -> BudgetPartition:
    """
    Split options at `budget` (inclusive). Without a budget everything is within.
    Both sides come back ranked.
    """
    options = list(options)
    if budget is None:
        return BudgetPartition(within=rank_options(options))
    return BudgetPartition(
        within=rank_options(o for o in options if o.total_price <= budget),
        exceeded=rank_options(o for o in options if o.total_price > budget),
    )


def select_recommendations(ranked: List[PurchaseOption], limit: Optional[int] = None) -> List[PurchaseOption]:
    """
    Pick the headline options from an already ranked list: the best full-coverage
    fewest-stores plan and the best full-coverage cheapest plan, then fill up
    with whatever ranks next.
    """
    limit = settings.MAX_RECOMMENDATIONS if limit is None else limit
    if limit <= 0:
        return []

    chosen: List[PurchaseOption] = []
    for strategy in ("fewest-stores", "cheapest"):
        pick = next((o for o in ranked if o.missing_count == 0 and o.strategy == strategy), None)
        if pick is not None and not any(pick is c for c in chosen):
            chosen.append(pick)

    for option in ranked:
        if len(chosen) >= limit:
            break
        if not any(option is c for c in chosen):
            chosen.append(option)

    chosen = chosen[:limit]
    return rank_options(chosen)
