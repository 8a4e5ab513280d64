"""Traditional multi-source collection: news heuristics, news search, and user RSS feeds."""
import asyncio
import logging
import re
from collections.abc import Callable
from typing import Any, Optional

from competitor_signals.config import settings
from competitor_signals.schemas.analysis import SourceToggles
from competitor_signals.schemas.signals import CompetitorSignalBundle, SignalItem
from competitor_signals.services.concurrency import settle_all
from competitor_signals.services.feeds import feed_source_name, parse_published
from competitor_signals.services.providers import FeedSource, NewsProvider, ProviderContext

logger = logging.getLogger(__name__)

MAX_ITEMS_PER_BUNDLE = 15
SHORT_CONTENT_CHARS = 800
SUMMARY_TARGET_CHARS = 600
TITLE_OVERLAP_THRESHOLD = 0.6

PartialCallback = Callable[[dict[str, Any]], None]

_TAG_RE = re.compile(r"<[^>]*>")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_PUNCT_RE = re.compile(r"[^\w\s]")
_ABBREVIATIONS = (("U.S.", "US"), ("U.K.", "UK"), ("etc.", "etc"))


def trim_text_content(content: str) -> str:
    """Strip markup and cut long bodies to whole sentences (about 600 chars, hard cap 800)."""
    if not content:
        return ""
    clean = _TAG_RE.sub("", content)
    if len(clean) <= SHORT_CONTENT_CHARS:
        return clean.strip()
    for full, short in _ABBREVIATIONS:
        clean = clean.replace(full, short)
    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(clean) if len(s.strip()) > 5]
    summary = ""
    for sentence in sentences:
        if len(summary) >= SUMMARY_TARGET_CHARS:
            break
        summary = f"{summary}. {sentence}" if summary else sentence
    for full, short in _ABBREVIATIONS:
        summary = re.sub(rf"\b{short}\b", full, summary)
    return summary[:SHORT_CONTENT_CHARS].strip()


def _title_words(title: str) -> list[str]:
    return [w for w in _PUNCT_RE.sub("", title.lower()).split() if len(w) > 3]


def is_same_story(a: SignalItem, b: SignalItem) -> bool:
    if a.url and a.url == b.url and len(a.url) > 10:
        return True
    words_a, words_b = _title_words(a.title), _title_words(b.title)
    if not words_a or not words_b:
        return False
    common = sum(1 for w in words_a if w in words_b)
    return common / min(len(words_a), len(words_b)) >= TITLE_OVERLAP_THRESHOLD


def dedupe_items(items: list[SignalItem]) -> list[SignalItem]:
    """Keep the first of each URL match or near-identical headline."""
    kept: list[SignalItem] = []
    for item in items:
        if not any(is_same_story(k, item) for k in kept):
            kept.append(item)
    return kept


def _sort_key(item: SignalItem) -> float:
    published = parse_published(item.published_at)
    return published.timestamp() if published else 0.0


def finalize_items(items: list[SignalItem], limit: int = MAX_ITEMS_PER_BUNDLE) -> list[SignalItem]:
    unique = sorted(dedupe_items(items), key=_sort_key, reverse=True)[:limit]
    return [i.model_copy(update={"content": trim_text_content(i.content)}) for i in unique]


class SignalAggregator:
    """Collects per-competitor news bundles and user-feed bundles concurrently."""

    def __init__(
        self,
        news_providers: list[NewsProvider],
        feed_source: Optional[FeedSource] = None,
        timeout: Optional[float] = None,
        feed_timeout: Optional[float] = None,
    ):
        self.news_providers = news_providers
        self.feed_source = feed_source
        self.timeout = timeout or settings.NEWS_TIMEOUT_SECONDS
        self.feed_timeout = feed_timeout or settings.RSS_TIMEOUT_SECONDS

    async def aggregate(
        self,
        competitors: list[str],
        urls: Optional[list[str]] = None,
        sources: Optional[SourceToggles] = None,
        on_partial: Optional[PartialCallback] = None,
    ) -> list[CompetitorSignalBundle]:
        """Bundles in competitor order (one per provider), then one per feed URL.

        Empty bundles are dropped. ``on_partial`` receives the bundles collected
        so far each time a source finishes with items.
        """
        urls = urls or []
        sources = sources or SourceToggles()
        collected: list[CompetitorSignalBundle] = []

        def _emit(bundle: Optional[CompetitorSignalBundle]) -> Optional[CompetitorSignalBundle]:
            if bundle is None or not bundle.items:
                return None
            collected.append(bundle)
            if on_partial is not None:
                on_partial({
                    "type": "partial_results",
                    "track": "traditional",
                    "results": [b.model_dump() for b in collected],
                })
            return bundle

        async def _competitor(provider: NewsProvider, competitor: str):
            context = ProviderContext(sources=sources, competitors=competitors)
            items = await provider.fetch(competitor, context)
            return _emit(CompetitorSignalBundle(
                source=provider.source_name,
                competitor=competitor,
                items=finalize_items(items or []),
            ))

        async def _feed(url: str):
            context = ProviderContext(sources=sources, competitors=competitors)
            items = await self.feed_source.fetch(url, context)
            return _emit(CompetitorSignalBundle(
                source=feed_source_name(url),
                competitor="Multiple",
                items=finalize_items(items or []),
            ))

        jobs = []
        labels = []
        for competitor in competitors:
            for provider in self.news_providers:
                jobs.append(_competitor(provider, competitor))
                labels.append(f"{provider.source_name} for {competitor}")
        results = settle_all(jobs, timeout=self.timeout, labels=labels)
        feed_jobs = [_feed(u) for u in urls] if self.feed_source is not None else []
        feed_results = settle_all(feed_jobs, timeout=self.feed_timeout, labels=[f"feed {u}" for u in urls])

        settled, settled_feeds = await asyncio.gather(results, feed_results)
        bundles = [s.value for s in settled + settled_feeds if s.ok and s.value is not None]
        logger.info(
            "Traditional collection: %d bundles, %d items",
            len(bundles), sum(len(b.items) for b in bundles),
        )
        return bundles
