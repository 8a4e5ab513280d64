"""Trustpilot review-platform sentiment via the RapidAPI company-details endpoint."""
import json
import logging
from typing import Any, Optional

import httpx

from competitor_signals.config import settings
from competitor_signals.schemas.signals import Quote, ReviewSentimentData, sentiment_to_score
from competitor_signals.services.feeds import clean_html
from competitor_signals.services.providers import USER_AGENT, ProviderContext

logger = logging.getLogger(__name__)

RAPIDAPI_HOST = "trustpilot-company-and-reviews-data.p.rapidapi.com"
COMPANY_DETAILS_URL = f"https://{RAPIDAPI_HOST}/company-details"
MAX_QUOTES = 3


def rating_to_sentiment(rating: Optional[float]) -> str:
    if rating is None:
        return "neutral"
    if rating >= 4:
        return "positive"
    if rating >= 2.5:
        return "neutral"
    return "negative"


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def normalize_company_details(payload: Any, domain: str) -> ReviewSentimentData:
    """Turn a company-details response into ReviewSentimentData.

    Accepted shape: ``{"data": {"company": {...}, "reviews": [...]}}``, where
    the envelope may also arrive as a JSON string or under a string ``body``.
    The company carries ``rating.average`` (or ``trustScore``) and
    ``rating.count`` (or ``numberOfReviews``); each review carries ``text``,
    ``title``, ``rating``, ``url`` and ``author``.
    """
    if isinstance(payload, str):
        payload = json.loads(payload)
    if isinstance(payload, dict) and isinstance(payload.get("body"), str):
        payload = json.loads(payload["body"])
    data = (payload or {}).get("data") or payload or {}
    company = data.get("company") or data
    raw_rating = company.get("rating")
    rating = raw_rating if isinstance(raw_rating, dict) else {}

    average = _to_float(rating.get("average")) if rating else _to_float(raw_rating)
    if average is None:
        average = _to_float(company.get("trustScore"))
    total = rating.get("count") if rating else None
    if total is None:
        total = company.get("numberOfReviews")

    reviews = data.get("reviews") if isinstance(data.get("reviews"), list) else []
    if total is None and reviews:
        total = len(reviews)
    profile_url = f"https://www.trustpilot.com/review/{company.get('domain') or domain}"
    quotes = []
    for r in reviews:
        text = clean_html(r.get("text") or r.get("title") or "")
        if not text:
            continue
        quotes.append(Quote(
            text=text[:240],
            author=r.get("author") if isinstance(r.get("author"), str) else None,
            url=r.get("url") or profile_url,
            rating=_to_float(r.get("rating")),
        ))
    sentiment = rating_to_sentiment(average)
    return ReviewSentimentData(
        platform="trustpilot",
        average_rating=average,
        total_reviews=int(total) if total is not None else None,
        sentiment=sentiment,
        sentiment_score=sentiment_to_score(sentiment, average),
        top_quotes=quotes[:MAX_QUOTES],
    )


class TrustpilotProvider:
    """Review sentiment for a competitor's domain. Needs both a domain and an API key."""

    platform = "trustpilot"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key or settings.TRUSTPILOT_RAPIDAPI_KEY
        self.timeout = timeout or settings.REVIEW_TIMEOUT_SECONDS

    async def fetch(self, competitor: str, context: ProviderContext) -> Optional[ReviewSentimentData]:
        if not context.domain:
            return None
        if not self.api_key:
            logger.warning("TRUSTPILOT_RAPIDAPI_KEY not set; skipping review sentiment for %s", competitor)
            return None
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "User-Agent": USER_AGENT,
                "x-rapidapi-host": RAPIDAPI_HOST,
                "x-rapidapi-key": self.api_key,
            },
        ) as client:
            resp = await client.get(
                COMPANY_DETAILS_URL,
                params={"company_domain": context.domain, "locale": "en-US"},
            )
            resp.raise_for_status()
        result = normalize_company_details(resp.json(), context.domain)
        logger.info(
            "Trustpilot %s: rating=%s reviews=%s",
            context.domain, result.average_rating, result.total_reviews,
        )
        return result
