import logging

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool

from grocery_api.core.catalog import parse_offers
from grocery_api.core.gemini import GeminiRateLimitError, GeminiRequestError, narrate_recommendations
from grocery_api.core.recommender import recommend
from grocery_api.schemas.recommendations import RecommendationRequest, RecommendationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["recommendations"])


@router.post("/list-recommendations", response_model=RecommendationResponse)
async def list_recommendations(body: RecommendationRequest):
    """
    Works out which store(s) to buy a shopping list at, trading off the number
    of stores against total price, optionally within a budget.
    """
    offers, skipped = parse_offers(body.offers)
    logger.info(
        "Pricing list %r: %d items, %d offers (%d skipped), budget=%s",
        body.list_name,
        len(body.shopping_list),
        len(offers),
        skipped,
        body.budget,
    )

    # The combination search is CPU-bound; keep it off the event loop.
    result = await run_in_threadpool(
        recommend,
        body.shopping_list,
        offers,
        budget=body.budget,
        all_stores=body.all_stores,
        list_name=body.list_name,
        skipped_offers=skipped,
    )

    if not body.narrate:
        return result

    try:
        ai_summary = await narrate_recommendations(result)
    except GeminiRateLimitError as e:
        # Return 429 (NOT 422), and include Retry-After when we have it.
        headers = {}
        if e.retry_after_seconds is not None:
            headers["Retry-After"] = str(int(e.retry_after_seconds))
        raise HTTPException(
            status_code=429,
            detail={
                "error": "rate_limited",
                "message": e.message,
                "retry_after_seconds": e.retry_after_seconds,
            },
            headers=headers,
        )
    except GeminiRequestError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "error": "gemini_error",
                "message": e.message,
                "status_code": e.status_code,
                "body": e.body,
            },
        )

    return result.model_copy(update={"ai_summary": ai_summary})
