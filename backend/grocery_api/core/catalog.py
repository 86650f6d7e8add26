from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Optional, Tuple

from grocery_api.core.config import settings
from grocery_api.schemas.recommendations import PriceOffer, clean_text

logger = logging.getLogger(__name__)

# Catalog rows arrive either flat ({"product", "store", ...}) or as the joined
# database shape ({"product_name" | "products": {"name"}, "supermarkets": {"name"}, ...}).
PRODUCT_KEYS = ("product", "product_name", "products")
BRAND_KEYS = ("brand", "brand_name", "brands")
STORE_KEYS = ("store", "supermarket", "supermarket_name", "supermarkets")
UNIT_KEYS = ("unit",)


def normalize_store_name(store: Optional[str]) -> str:
    """
    Collapse whitespace in store names so "Mercadona " and "Mercadona" land in
    the same bucket. Missing names fall back to the configured unknown-store label.
    """
    return clean_text(store) or settings.UNKNOWN_STORE_NAME


def normalize_brand(brand: Optional[str]) -> Optional[str]:
    """
    None, "" and whitespace all mean "no brand"; everything downstream only ever sees None.
    """
    return clean_text(brand)


def _extract_name(row: dict, keys: Iterable[str]) -> Optional[str]:
    for k in keys:
        v = row.get(k)
        if isinstance(v, dict):
            v = v.get("name")
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def parse_price(value: Any) -> Optional[float]:
    """
    Converts 2, 2.5, "2.50" or " 2.50 " to float.
    Returns None for anything that is not a finite, non-negative number.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        pv = float(value)
    else:
        try:
            pv = float(str(value).strip())
        except ValueError:
            return None
    if not math.isfinite(pv) or pv < 0:
        return None
    return pv


def parse_offer(row: Any) -> Optional[PriceOffer]:
    if isinstance(row, PriceOffer):
        return row
    if not isinstance(row, dict):
        return None

    product = _extract_name(row, PRODUCT_KEYS)
    if not product:
        return None

    price = parse_price(row.get("price"))
    if price is None:
        return None

    return PriceOffer(
        product=product,
        brand=normalize_brand(_extract_name(row, BRAND_KEYS)),
        price=price,
        unit=_extract_name(row, UNIT_KEYS) or "",
        store=normalize_store_name(_extract_name(row, STORE_KEYS)),
    )


def parse_offers(rows: Iterable[Any]) -> Tuple[List[PriceOffer], int]:
    """
    Turns raw catalog rows into PriceOffers, keeping input order.
    Rows without a product or without a usable price are skipped, never fatal.

    Returns:
        (offers, skipped_count)
    """
    offers: List[PriceOffer] = []
    skipped = 0
    for row in rows:
        offer = parse_offer(row)
        if offer is None:
            skipped += 1
            continue
        offers.append(offer)

    if skipped:
        logger.warning("Skipped %d catalog rows without a product or a valid price", skipped)
    return offers, skipped
