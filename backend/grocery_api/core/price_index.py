from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from grocery_api.schemas.recommendations import ItemPriceComparison, ListItem, PriceOffer

NO_BRAND_KEY = "none"


def item_key(product: str, brand: Optional[str]) -> str:
    return f"{product}|{brand or NO_BRAND_KEY}"


@dataclass
class PriceIndex:
    """
    Lookup structures over one request's offers. Built per request, never shared.

    by_store:     store -> offers at that store
    by_item_key:  "product|brand" (or "product|none") -> offers
    by_product:   product -> offers of any brand
    """
    by_store: Dict[str, List[PriceOffer]] = field(default_factory=dict)
    by_item_key: Dict[str, List[PriceOffer]] = field(default_factory=dict)
    by_product: Dict[str, List[PriceOffer]] = field(default_factory=dict)
    # store -> product -> offers; what the matching rule scans for a single store
    by_store_product: Dict[str, Dict[str, List[PriceOffer]]] = field(default_factory=dict)

    @property
    def stores(self) -> List[str]:
        """Store names in order of first appearance."""
        return list(self.by_store.keys())

    def candidates(self, item: ListItem, store: Optional[str] = None) -> List[PriceOffer]:
        """
        Offers eligible for `item`, optionally limited to one store.
        Branded items only accept that exact brand; unbranded items accept any.
        """
        if store is None:
            if item.brand:
                return list(self.by_item_key.get(item_key(item.name, item.brand), []))
            return list(self.by_product.get(item.name, []))

        offers = self.by_store_product.get(store, {}).get(item.name, [])
        if item.brand:
            return [o for o in offers if o.brand == item.brand]
        return list(offers)

    def match(self, item: ListItem, store: Optional[str] = None) -> Optional[PriceOffer]:
        """
        The matching rule shared by every strategy: the cheapest eligible offer,
        ties going to the one that came first in the catalog.
        """
        return cheapest(self.candidates(item, store))

    def compare(self, item: ListItem) -> ItemPriceComparison:
        offers = sorted(self.candidates(item), key=lambda o: o.price)
        return ItemPriceComparison(
            name=item.name,
            brand=item.brand,
            available_prices=offers,
            has_prices=len(offers) > 0,
        )


def cheapest(offers: Iterable[PriceOffer]) -> Optional[PriceOffer]:
    best: Optional[PriceOffer] = None
    for o in offers:
        # strict < keeps the earliest offer on equal prices
        if best is None or o.price < best.price:
            best = o
    return best


def build_price_index(offers: Iterable[PriceOffer]) -> PriceIndex:
    by_store: Dict[str, List[PriceOffer]] = defaultdict(list)
    by_item_key: Dict[str, List[PriceOffer]] = defaultdict(list)
    by_product: Dict[str, List[PriceOffer]] = defaultdict(list)
    by_store_product: Dict[str, Dict[str, List[PriceOffer]]] = defaultdict(lambda: defaultdict(list))

    for o in offers:
        if not o.product:
            continue
        by_store[o.store].append(o)
        by_item_key[item_key(o.product, o.brand)].append(o)
        by_product[o.product].append(o)
        by_store_product[o.store][o.product].append(o)

    return PriceIndex(
        by_store=dict(by_store),
        by_item_key=dict(by_item_key),
        by_product=dict(by_product),
        by_store_product={s: dict(p) for s, p in by_store_product.items()},
    )
