import asyncio
import json
import logging
import random
import re
from typing import Any, Dict, Optional

import httpx

from grocery_api.core.config import settings
from grocery_api.core.reasoning import money
from grocery_api.schemas.recommendations import RecommendationResponse

logger = logging.getLogger(__name__)

# Service endpoint for Gemini API (v1beta)
API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiRequestError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class GeminiRateLimitError(GeminiRequestError):
    def __init__(self, message: str, retry_after_seconds: Optional[float] = None, body: Optional[str] = None):
        super().__init__(message, status_code=429, body=body)
        self.retry_after_seconds = retry_after_seconds


def _redact_key(s: str) -> str:
    """
    Redact 'key=...' in URLs or text so we never leak API keys in logs/responses.
    """
    if not s:
        return s
    return re.sub(r"(key=)([^&\s]+)", r"\1REDACTED", s)


def _summary_schema() -> Dict[str, Any]:
    """
    JSON Schema for the narrative; used by Gemini Structured Output.
    """
    return {
        "type": "object",
        "properties": {"summary": {"type": "string"}},
        "required": ["summary"],
        "additionalProperties": False,
    }


def _extract_json_best_effort(text: str) -> Dict[str, Any]:
    """
    Returns the first valid JSON object found in model output
    (fenced ```json blocks, extra text around it, etc.).
    """
    fenced = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL | re.IGNORECASE)
    if fenced:
        return json.loads(fenced.group(1).strip())

    blocks = re.findall(r"\{.*?\}", text, re.DOTALL)
    for b in blocks:
        try:
            return json.loads(b.strip())
        except json.JSONDecodeError:
            continue

    m = re.search(r"\{.*\}", text, re.DOTALL)
    if not m:
        raise ValueError("No JSON object found in model output")
    return json.loads(m.group(0))


def _retry_after_seconds(resp: httpx.Response) -> Optional[float]:
    retry_after = resp.headers.get("retry-after")
    if not retry_after:
        return None
    try:
        return max(0.5, min(float(retry_after), settings.GEMINI_MAX_BACKOFF_SECONDS))
    except ValueError:
        return None


async def _sleep_for_retry(resp: httpx.Response, attempt: int) -> None:
    """
    Respect Retry-After header when present; otherwise exponential backoff with jitter.
    """
    wait = _retry_after_seconds(resp)
    if wait is None:
        wait = min(settings.GEMINI_MAX_BACKOFF_SECONDS, (2 ** attempt)) + random.uniform(0.0, 0.5)
    logger.info("Gemini returned %s, retrying in %.1fs", resp.status_code, wait)
    await asyncio.sleep(wait)


async def _send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    params: Dict[str, Any],
    json_payload: Optional[Dict[str, Any]] = None,
    max_retries: Optional[int] = None,
) -> httpx.Response:
    """
    GET/POST with retries for 429/503. A 429 that survives every retry becomes GeminiRateLimitError.
    """
    max_retries = settings.GEMINI_MAX_RETRIES if max_retries is None else max_retries

    for attempt in range(max_retries + 1):
        resp = await client.request(method, url, params=params, json=json_payload)
        if resp.status_code not in (429, 503):
            return resp
        if attempt < max_retries:
            await _sleep_for_retry(resp, attempt)

    if resp.status_code == 429:
        raise GeminiRateLimitError(
            "Gemini rate limit reached",
            retry_after_seconds=_retry_after_seconds(resp),
            body=_redact_key(resp.text)[:2000],
        )
    return resp


def _pick_model_from_list(models_payload: Dict[str, Any]) -> str:
    """
    Picks a model name (e.g. 'models/xxx') that supports generateContent,
    preferring Flash models.
    """
    models = models_payload.get("models", []) or []

    def supports_generate(m: Dict[str, Any]) -> bool:
        methods = m.get("supportedGenerationMethods") or []
        return any(str(x).lower() == "generatecontent" for x in methods)

    candidates = [m for m in models if supports_generate(m)]
    if not candidates:
        raise GeminiRequestError("No models found that support generateContent (ListModels returned none)")

    flash = [m for m in candidates if "flash" in (m.get("name", "").lower())]
    chosen = (flash[0] if flash else candidates[0]).get("name")
    if not chosen:
        raise GeminiRequestError("ListModels returned a model entry without a name")
    return chosen


def _normalize_model_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        return ""
    return name if name.startswith("models/") else f"models/{name}"


async def _resolve_model_name(client: httpx.AsyncClient, api_key: str) -> str:
    """
    Uses GEMINI_MODEL when configured, otherwise asks ListModels for one.
    """
    configured = _normalize_model_name(settings.GEMINI_MODEL)
    if configured:
        return configured

    r = await _send_with_retry(client, "GET", f"{API_BASE}/models", params={"key": api_key})
    if r.status_code >= 400:
        raise GeminiRequestError(
            "Gemini ListModels failed",
            status_code=r.status_code,
            body=_redact_key(r.text)[:2000],
        )
    return _pick_model_from_list(r.json())


def build_prompt(result: RecommendationResponse) -> str:
    lines = [
        "You are an expert grocery shopping assistant.",
        "Write a short, friendly summary (3 sentences max) of where the shopper should buy their list.",
        "Only use the facts below. Do not invent prices or stores.",
        "Return ONLY valid JSON matching the provided schema.",
        "",
    ]
    if result.list_name:
        lines.append(f'Shopping list: "{result.list_name}"')
    if result.budget is not None:
        lines.append(f"Budget: {money(result.budget)}")
    lines.append(f"Computed summary: {result.summary}")

    for i, option in enumerate(result.recommendations, start=1):
        lines.append(f"Option {i}: {option.label} - {money(option.total_price)} - {option.reasoning}")
        for it in option.items:
            brand = f" ({it.brand})" if it.brand else ""
            lines.append(f"  - {it.item}{brand}: {money(it.price)} at {it.store}")

    if result.items_without_prices:
        lines.append("Items without prices: " + ", ".join(m.name for m in result.items_without_prices))
    return "\n".join(lines)


async def narrate_recommendations(result: RecommendationResponse) -> str:
    """
    Asks Gemini for a shopper-facing narrative of an already computed result.

    - Structured Output (response_mime_type + response_json_schema)
    - Retries 429/503 with backoff
    - Redacts API key from any raised errors
    """
    api_key = (settings.GEMINI_API_KEY or "").strip()
    if not api_key:
        raise GeminiRequestError("GEMINI_API_KEY is not set")

    payload = {
        "contents": [{"role": "user", "parts": [{"text": build_prompt(result)}]}],
        "generationConfig": {
            "response_mime_type": "application/json",
            "response_json_schema": _summary_schema(),
            "temperature": 0.7,
        },
    }

    async with httpx.AsyncClient(timeout=60) as client:
        model_name = await _resolve_model_name(client, api_key)
        url = f"{API_BASE}/{model_name}:generateContent"
        r = await _send_with_retry(client, "POST", url, params={"key": api_key}, json_payload=payload)

        if r.status_code >= 400:
            safe_body = _redact_key(r.text)[:2000]
            logger.error("Gemini request failed: %s %s", r.status_code, safe_body)
            raise GeminiRequestError("Gemini request failed", status_code=r.status_code, body=safe_body)

        data = r.json()

    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise GeminiRequestError(f"Unexpected Gemini response shape; raw={json.dumps(data)[:2000]}")

    try:
        obj = json.loads(text)
    except json.JSONDecodeError:
        try:
            obj = _extract_json_best_effort(text)
        except ValueError as e:
            raise GeminiRequestError(str(e), body=text[:2000])

    summary = obj.get("summary") if isinstance(obj, dict) else None
    if not isinstance(summary, str) or not summary.strip():
        raise GeminiRequestError("Gemini output has no 'summary'", body=text[:2000])
    return summary.strip()
