from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from grocery_api.core.catalog import normalize_store_name
from grocery_api.core.price_index import PriceIndex, build_price_index
from grocery_api.core.ranking import merge_options, partition_by_budget, select_recommendations
from grocery_api.core.reasoning import label_for, reasoning_for, summarize
from grocery_api.core.strategies import cheapest_option, fewest_store_options, score_stores, single_store_options
from grocery_api.schemas.recommendations import (
    ListItem,
    MissingItem,
    PriceOffer,
    PurchaseOption,
    RecommendationResponse,
)

logger = logging.getLogger(__name__)


def generate_candidates(
    index: PriceIndex,
    shopping_list: Sequence[ListItem],
    *,
    pair_limit: Optional[int] = None,
    triple_limit: Optional[int] = None,
) -> List[PurchaseOption]:
    """Every strategy's options, merged and de-duplicated, in strategy order (unranked)."""
    if not shopping_list:
        return []

    coverages = score_stores(index, shopping_list)
    singles = single_store_options(coverages, shopping_list)
    cheapest = cheapest_option(index, shopping_list)
    fewest = fewest_store_options(
        coverages,
        shopping_list,
        pair_limit=pair_limit,
        triple_limit=triple_limit,
    )
    logger.info(
        "Strategies produced %d single, %d cheapest, %d fewest-stores options",
        len(singles),
        int(cheapest is not None),
        len(fewest),
    )
    return merge_options(singles, [cheapest] if cheapest else [], fewest)


def _present(option: PurchaseOption, list_size: int, budget: Optional[float]) -> PurchaseOption:
    return option.model_copy(
        update={
            "label": label_for(option),
            "reasoning": reasoning_for(option, list_size, budget),
        }
    )


def recommend(
    shopping_list: Sequence[ListItem],
    offers: Iterable[PriceOffer],
    *,
    budget: Optional[float] = None,
    all_stores: Optional[Iterable[str]] = None,
    list_name: Optional[str] = None,
    skipped_offers: int = 0,
    pair_limit: Optional[int] = None,
    triple_limit: Optional[int] = None,
    max_recommendations: Optional[int] = None,
) -> RecommendationResponse:
    """
    Price a shopping list against a catalog and recommend where to buy it.

    Pure function of its inputs: identical calls give identical responses.
    """
    shopping_list = list(shopping_list)
    index = build_price_index(offers)
    stores_considered = sorted(set(index.stores) | {normalize_store_name(s) for s in (all_stores or [])})

    all_prices = [index.compare(item) for item in shopping_list]
    missing = [MissingItem(name=c.name, brand=c.brand) for c in all_prices if not c.has_prices]

    candidates = generate_candidates(
        index,
        shopping_list,
        pair_limit=pair_limit,
        triple_limit=triple_limit,
    )
    partition = partition_by_budget(candidates, budget)
    selected = select_recommendations(partition.within, max_recommendations)

    n = len(shopping_list)
    recommendations = [_present(o, n, budget) for o in selected]
    budget_exceeded = None
    if budget is not None and partition.exceeded:
        budget_exceeded = [_present(o, n, budget) for o in partition.exceeded]

    summary = summarize(
        list_size=n,
        recommendations=recommendations,
        exceeded=partition.exceeded,
        missing_count=len(missing),
        budget=budget,
    )

    return RecommendationResponse(
        list_name=list_name,
        all_prices=all_prices,
        items_without_prices=missing,
        recommendations=recommendations,
        budget_exceeded=budget_exceeded,
        budget=budget,
        summary=summary,
        stores_considered=stores_considered,
        skipped_offers=skipped_offers,
    )
