"""Hacker News forum sentiment from the Algolia search API."""
import logging
import re
import time
from typing import Any, Optional

import httpx

from competitor_signals.config import settings
from competitor_signals.schemas.signals import Quote, ReviewSentimentData, sentiment_to_score
from competitor_signals.services.feeds import clean_html
from competitor_signals.services.providers import USER_AGENT, ProviderContext

logger = logging.getLogger(__name__)

SEARCH_URL = "https://hn.algolia.com/api/v1/search_by_date"
WINDOW_SECONDS = 30 * 24 * 60 * 60
MAX_QUOTES = 3
SNIPPET_CHARS = 240

OPINION_WORDS = (
    "love", "hate", "like", "dislike", "good", "bad", "great", "terrible", "awesome", "awful",
    "amazing", "disappointing", "recommend", "avoid", "better", "worse", "prefer", "alternative",
    "versus", "vs", "experience", "tried", "used", "switched", "migrated", "consistently", "value",
    "improve", "worsen", "decline", "not a fan", "happy", "unhappy", "satisfied", "dissatisfied",
    "complain", "praise", "criticize", "criticise",
)
POSITIVE_WORDS = (
    "love", "like", "good", "great", "awesome", "amazing", "excellent", "fantastic", "wonderful",
    "perfect", "best", "better", "recommend", "impressed", "solid", "reliable", "easy", "helpful", "useful",
)
NEGATIVE_WORDS = (
    "hate", "dislike", "bad", "terrible", "awful", "horrible", "worst", "worse", "disappointing",
    "frustrating", "broken", "buggy", "avoid", "problem", "issue", "difficult", "confusing", "slow", "expensive",
)

_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


def is_relevant_comment(text: str, competitor: str) -> bool:
    """Explicit brand mention plus at least one opinion signal."""
    lower = text.lower()
    return competitor.lower() in lower and any(w in lower for w in OPINION_WORDS)


def comment_sentiment(text: str) -> str:
    lower = text.lower()
    pos = sum(1 for w in POSITIVE_WORDS if w in lower)
    neg = sum(1 for w in NEGATIVE_WORDS if w in lower)
    if pos > neg:
        return "positive"
    if neg > pos:
        return "negative"
    return "neutral"


def overall_sentiment(texts: list[str]) -> str:
    labels = [comment_sentiment(t) for t in texts]
    pos = labels.count("positive")
    neg = labels.count("negative")
    if pos > neg * 1.5:
        return "positive"
    if neg > pos * 1.5:
        return "negative"
    return "neutral"


def _truncate(text: str) -> str:
    return text if len(text) <= SNIPPET_CHARS else text[: SNIPPET_CHARS - 3] + "..."


def extract_opinion_snippet(text: str, competitor: str) -> str:
    sentences = [s.strip() for s in _SENTENCE_RE.split(text or "") if s.strip()]
    comp = competitor.lower()
    for s in sentences:
        lower = s.lower()
        if comp in lower and any(w in lower for w in OPINION_WORDS):
            return _truncate(s)
    for s in sentences:
        if comp in s.lower():
            return _truncate(s)
    return _truncate(sentences[0] if sentences else text or "")


def normalize_comment_hits(hits: list[dict[str, Any]], competitor: str) -> ReviewSentimentData:
    """Build forum sentiment from Algolia comment hits.

    Each hit is read for ``comment_text``, ``author``, ``points`` and
    ``objectID``. Hits shorter than 20 characters or without a brand mention
    and opinion word are ignored; the rest are ranked by points.
    """
    comments = []
    for hit in hits:
        raw = hit.get("comment_text") or ""
        if len(raw) <= 20:
            continue
        text = clean_html(raw)
        if not is_relevant_comment(text, competitor):
            continue
        comments.append((hit.get("points") or 0, text, hit))
    comments.sort(key=lambda c: c[0], reverse=True)

    texts = [c[1] for c in comments]
    sentiment = overall_sentiment(texts) if texts else "neutral"
    quotes = []
    for _, text, hit in comments[:MAX_QUOTES]:
        snippet = extract_opinion_snippet(text, competitor)
        if snippet:
            quotes.append(Quote(
                text=snippet,
                author=hit.get("author") or "Anonymous",
                url=f"https://news.ycombinator.com/item?id={hit.get('objectID')}",
            ))
    return ReviewSentimentData(
        platform="hackernews",
        total_mentions=len(comments),
        sentiment=sentiment,
        sentiment_score=sentiment_to_score(sentiment),
        top_quotes=quotes,
    )


class HackerNewsProvider:
    """Opinionated comments mentioning a competitor over the past month."""

    platform = "hackernews"

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.FORUM_TIMEOUT_SECONDS

    async def fetch(self, competitor: str, context: ProviderContext) -> Optional[ReviewSentimentData]:
        cutoff = int(time.time()) - WINDOW_SECONDS
        async with httpx.AsyncClient(timeout=self.timeout, headers={"User-Agent": USER_AGENT}) as client:
            resp = await client.get(
                SEARCH_URL,
                params={
                    "query": competitor,
                    "tags": "comment",
                    "numericFilters": f"created_at_i>{cutoff}",
                    "hitsPerPage": 150,
                },
            )
            resp.raise_for_status()
        result = normalize_comment_hits(resp.json().get("hits") or [], competitor)
        logger.info("Hacker News %s: %d relevant comments, %s", competitor, result.total_mentions, result.sentiment)
        return result
