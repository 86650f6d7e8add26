"""Human-readable text for options and responses. Nothing here affects ranking."""
from __future__ import annotations

from typing import List, Optional

from grocery_api.core.config import settings
from grocery_api.schemas.recommendations import PurchaseOption


def money(value: float) -> str:
    return f"{settings.CURRENCY_SYMBOL}{value:.2f}"


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def label_for(option: PurchaseOption) -> str:
    if not option.stores:
        return "No store"
    if option.strategy == "cheapest":
        return "Cheapest per item: " + " + ".join(option.stores)
    if option.strategy == "fewest-stores":
        return "Fewest stores: " + " + ".join(option.stores)
    return " + ".join(option.stores)


def reasoning_for(option: PurchaseOption, list_size: int, budget: Optional[float] = None) -> str:
    covered = len(option.items)
    stores = " + ".join(option.stores)
    parts: List[str] = []

    if option.strategy == "single":
        if option.missing_count == 0:
            parts.append(f"All {_plural(list_size, 'item')} available at {stores} for {money(option.total_price)}.")
        else:
            parts.append(
                f"{stores} has {covered} of {_plural(list_size, 'item')} for {money(option.total_price)}; "
                f"no store carries the whole list."
            )
    elif option.strategy == "cheapest":
        parts.append(
            f"Lowest price for each item, buying at {_plural(option.store_count, 'store')} "
            f"({stores}), total {money(option.total_price)}."
        )
    else:
        parts.append(
            f"Whole list covered with only {_plural(option.store_count, 'store')} "
            f"({stores}) for {money(option.total_price)}."
        )

    if option.missing_count:
        parts.append(f"{_plural(option.missing_count, 'item')} not available in this option.")

    if budget is not None:
        if option.total_price <= budget:
            parts.append(f"Within your budget of {money(budget)} ({money(budget - option.total_price)} left).")
        else:
            parts.append(f"Exceeds your budget of {money(budget)} by {money(option.total_price - budget)}.")

    return " ".join(parts)


def summarize(
    *,
    list_size: int,
    recommendations: List[PurchaseOption],
    exceeded: List[PurchaseOption],
    missing_count: int,
    budget: Optional[float],
) -> str:
    if list_size == 0:
        return "The list is empty, there is nothing to price."

    if not recommendations:
        if budget is not None and exceeded:
            full = [o for o in exceeded if o.missing_count == 0]
            cheapest = min(full or exceeded, key=lambda o: o.total_price)
            return (
                f"No option fits within your budget of {money(budget)}. "
                f"The cheapest option costs {money(cheapest.total_price)} ({label_for(cheapest)})."
            )
        return "No recommendations found: none of the items in the list have prices available."

    best = recommendations[0]
    full_over_budget = [o for o in exceeded if o.missing_count == 0] if budget is not None else []
    if best.missing_count == 0:
        text = f"Best option: {label_for(best)} covers the whole list for {money(best.total_price)}."
    elif full_over_budget:
        text = (
            f"No option within your budget of {money(budget)} covers the whole list. "
            f"Best option: {label_for(best)} covers {len(best.items)} of {_plural(list_size, 'item')} "
            f"for {money(best.total_price)}."
        )
    else:
        text = (
            f"No option covers the whole list. Best option: {label_for(best)} covers "
            f"{len(best.items)} of {_plural(list_size, 'item')} for {money(best.total_price)}."
        )

    if len(recommendations) > 1:
        alt = recommendations[1]
        text += f" Alternative: {label_for(alt)} for {money(alt.total_price)}."

    if missing_count:
        text += f" {_plural(missing_count, 'item')} without any price in the catalog."

    if budget is not None and exceeded:
        text += f" {_plural(len(exceeded), 'option')} over your budget of {money(budget)}."
        if best.missing_count and full_over_budget:
            whole = min(full_over_budget, key=lambda o: o.total_price)
            text += f" The whole list costs {money(whole.total_price)} with {label_for(whole)}."
    return text
