import re

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_serializer
from pydantic.alias_generators import to_camel
from typing import Any, List, Literal, Optional


Strategy = Literal["single", "cheapest", "fewest-stores"]


class CamelModel(BaseModel):
    # Wire format is camelCase (totalPrice, missingCount, ...); Python code uses snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def clean_text(v: Any) -> Optional[str]:
    """
    Collapses runs of whitespace and trims. Blank values become None.
    List items and catalog rows both go through here, so "Casa  Tarradellas"
    and "Casa Tarradellas" are the same brand.
    """
    if v is None:
        return None
    s = re.sub(r"\s+", " ", str(v)).strip()
    return s or None


class ListItem(CamelModel):
    name: str = Field(..., min_length=1)
    brand: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("brand", mode="before")
    @classmethod
    def _normalize_brand(cls, v: Any) -> Optional[str]:
        return clean_text(v)


class PriceOffer(CamelModel):
    model_config = ConfigDict(frozen=True)

    product: str
    brand: Optional[str] = None
    price: float
    unit: str = ""
    store: str

    @field_validator("brand", mode="before")
    @classmethod
    def _normalize_brand(cls, v: Any) -> Optional[str]:
        return clean_text(v)


class RecommendationRequest(CamelModel):
    """
    Body of POST /v1/list-recommendations.

    `offers` is kept loose on purpose: catalog rows are dirty and are cleaned by
    core.catalog.parse_offers, which skips what it cannot use instead of rejecting
    the whole request.
    """
    shopping_list: List[ListItem] = Field(..., validation_alias=AliasChoices("list", "items"))
    offers: List[Any] = Field(..., validation_alias=AliasChoices("offers", "availablePrices"))
    all_stores: Optional[List[str]] = None
    budget: Optional[float] = Field(default=None, gt=0)
    list_name: Optional[str] = None
    narrate: bool = False


class ItemPriceComparison(CamelModel):
    name: str
    brand: Optional[str] = None
    available_prices: List[PriceOffer]
    has_prices: bool


class MissingItem(CamelModel):
    name: str
    brand: Optional[str] = None


class PurchasedItem(CamelModel):
    item: str
    price: float
    brand: Optional[str] = None
    store: str


class PurchaseOption(CamelModel):
    label: str = ""
    stores: List[str]
    items: List[PurchasedItem]
    total_price: float
    missing_count: int
    is_combination: bool
    strategy: Strategy
    store_count: int
    reasoning: str = ""


# Top-level sections left out of the response body when they do not apply.
# Nested nulls such as an unbranded item's "brand" are always sent.
_OPTIONAL_SECTIONS = ("list_name", "budget_exceeded", "budget", "ai_summary")


class RecommendationResponse(CamelModel):
    list_name: Optional[str] = None
    all_prices: List[ItemPriceComparison]
    items_without_prices: List[MissingItem]
    recommendations: List[PurchaseOption]
    budget_exceeded: Optional[List[PurchaseOption]] = None
    budget: Optional[float] = None
    summary: str
    stores_considered: List[str] = []
    skipped_offers: int = 0
    ai_summary: Optional[str] = None

    @model_serializer(mode="wrap")
    def _drop_absent_sections(self, handler):
        data = handler(self)
        for name in _OPTIONAL_SECTIONS:
            if getattr(self, name) is None:
                data.pop(name, None)
                data.pop(to_camel(name), None)
        return data
