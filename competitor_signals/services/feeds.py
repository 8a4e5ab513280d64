"""RSS-backed signal providers: Bing News heuristics and user-supplied feeds."""
import html
import logging
import re
import urllib.parse
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import feedparser
import httpx
from dateutil import parser as date_parser

from competitor_signals.config import settings
from competitor_signals.schemas.signals import SignalItem
from competitor_signals.services.concurrency import settle_all
from competitor_signals.services.providers import USER_AGENT, ProviderContext

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 90

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")

# toggle -> (query template, max items, type forced on results or None to classify)
HEURISTIC_QUERIES: dict[str, list[tuple[str, int, Optional[str]]]] = {
    "news": [
        ('"{name}" funding raised investment revenue earnings', 3, None),
        ('"{name}" product launch new features acquisition merger partnership', 3, None),
    ],
    "funding": [
        ('"{name}" "funding" OR "investment" OR "raised" OR "revenue" OR "valuation" OR "IPO"', 5, "funding"),
    ],
    "social": [
        ('"{name}" "customers" OR "reviews" OR "complaints" OR "satisfaction" OR "market share"', 5, "social"),
    ],
    "products": [
        ('"{name}" launches OR releases OR "new feature" OR "product update"', 5, "product"),
    ],
}

IRRELEVANT_KEYWORDS = (
    "free ai tools",
    "top 9",
    "that make your life easier",
    "tutorial",
    "how to use",
    "tips and tricks",
    "vs comparison",
    "alternatives to",
    "similar to",
    "instead of",
)


def bing_news_rss_url(query: str, count: int = 5) -> str:
    q = urllib.parse.quote(query)
    return f"https://www.bing.com/news/search?format=RSS&q={q}&sortby=date&since=90days&count={count}"


def clean_html(text: str) -> str:
    return _WS_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", text or ""))).strip()


def detect_signal_type(*texts: str) -> str:
    text = " ".join(t for t in texts if t).lower()
    if any(w in text for w in ("funding", "investment", "round", "raised", "venture")):
        return "funding"
    if any(w in text for w in ("launch", "release", "feature", "product", "announcement")):
        return "product"
    if any(w in text for w in ("twitter", "social", "tweet", "linkedin")):
        return "social"
    return "news"


def normalize_feed_entry(entry: Any, forced_type: Optional[str] = None, query: str = "") -> Optional[SignalItem]:
    """Map one feedparser entry to a SignalItem.

    Reads ``title``, ``summary`` (falling back to ``description``), ``link``
    and ``published_parsed`` (falling back to ``updated_parsed``). Entries
    without a title or body are skipped.
    """
    title = clean_html(entry.get("title", ""))
    content = clean_html(entry.get("summary") or entry.get("description") or "")
    if not title or not content:
        return None
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    published_at = datetime(*parsed[:6], tzinfo=timezone.utc).isoformat() if parsed else None
    return SignalItem(
        title=title,
        content=content,
        url=(entry.get("link") or "").strip() or None,
        published_at=published_at,
        type=forced_type or detect_signal_type(query, title, content),
        source_type="rss",
    )


def parse_published(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def is_recent(item: SignalItem, days: int = RECENT_WINDOW_DAYS, now: Optional[datetime] = None) -> bool:
    """Undated items count as recent."""
    published = parse_published(item.published_at)
    if published is None:
        return True
    now = now or datetime.now(timezone.utc)
    return published >= now - timedelta(days=days)


def mentions_competitor(item: SignalItem, competitors: list[str]) -> bool:
    text = f"{item.title} {item.content}".lower()
    return any(c.lower() in text for c in competitors if c)


def is_noise(item: SignalItem) -> bool:
    text = f"{item.title} {item.content}".lower()
    return any(k in text for k in IRRELEVANT_KEYWORDS)


async def fetch_feed(
    client: httpx.AsyncClient,
    url: str,
    forced_type: Optional[str] = None,
    query: str = "",
) -> list[SignalItem]:
    """GET a feed and parse it with feedparser. HTTP errors propagate to the caller."""
    resp = await client.get(url)
    resp.raise_for_status()
    feed = feedparser.parse(resp.text)
    items = []
    for entry in feed.entries:
        item = normalize_feed_entry(entry, forced_type, query)
        if item is not None:
            items.append(item)
    return items


def _client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


class HeuristicNewsProvider:
    """Keyword news/funding/social/product queries against Bing News RSS."""

    source_name = "Aggregated Sources"

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.RSS_TIMEOUT_SECONDS

    async def fetch(self, competitor: str, context: ProviderContext) -> list[SignalItem]:
        enabled = set(context.sources.enabled())
        plan = [
            (template.format(name=competitor), count, forced)
            for toggle, queries in HEURISTIC_QUERIES.items()
            if toggle in enabled
            for template, count, forced in queries
        ]
        if not plan:
            return []
        async with _client(self.timeout) as client:
            settled = await settle_all(
                [fetch_feed(client, bing_news_rss_url(q, n), forced, q) for q, n, forced in plan],
                timeout=self.timeout,
                labels=[f"bing rss {q!r}" for q, _, _ in plan],
            )
        items: list[SignalItem] = []
        for (_, count, _), result in zip(plan, settled):
            items.extend(result.unwrap_or([])[:count])
        return [i for i in items if is_recent(i)]


class FeedProvider:
    """User-supplied RSS feeds, filtered to recent items that mention a requested competitor."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.RSS_TIMEOUT_SECONDS

    async def fetch(self, url: str, context: ProviderContext) -> list[SignalItem]:
        async with _client(self.timeout) as client:
            items = await fetch_feed(client, url)
        return [
            i for i in items
            if is_recent(i) and mentions_competitor(i, context.competitors) and not is_noise(i)
        ]


def feed_source_name(url: str) -> str:
    host = urllib.parse.urlparse(url).hostname or url
    return f"RSS: {host}"
