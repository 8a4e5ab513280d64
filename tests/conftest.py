"""Shared fakes: providers, summarizer and an in-memory report store."""
import asyncio
import json
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Optional

import pytest

from competitor_signals.ai.sentiment import QuoteSentimentSummarizer
from competitor_signals.exceptions import SummarizationError
from competitor_signals.schemas.signals import Quote, ReviewSentimentData, SignalItem
from competitor_signals.services.analysis_cache import AnalysisCache, CachePolicy
from competitor_signals.services.enhanced_aggregator import EnhancedSignalAggregator
from competitor_signals.services.intelligence import IntelligenceService
from competitor_signals.services.signal_aggregator import SignalAggregator


def make_item(title: str, url: Optional[str] = None, published_at: Optional[str] = None, **kw) -> SignalItem:
    return SignalItem(
        title=title,
        content=kw.pop("content", f"{title} body"),
        url=url,
        published_at=published_at or datetime.now(timezone.utc).isoformat(),
        **kw,
    )


class FakeNewsProvider:
    def __init__(self, source_name: str = "News Search", items=None, raises: Optional[Exception] = None, delay: float = 0):
        self.source_name = source_name
        self.items = items
        self.raises = raises
        self.delay = delay
        self.calls: list[str] = []

    async def fetch(self, competitor, context):
        self.calls.append(competitor)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.items is not None:
            return list(self.items)
        return [
            make_item(f"{competitor} announces quarterly results", url=f"https://example.com/{competitor}/1"),
            make_item(f"{competitor} opens office in Berlin", url=f"https://example.com/{competitor}/2"),
        ]


class FakeSentimentProvider:
    def __init__(self, platform: str = "hackernews", raises: Optional[Exception] = None, delays=None):
        self.platform = platform
        self.raises = raises
        self.delays = delays or {}
        self.calls: list[str] = []

    async def fetch(self, competitor, context):
        self.calls.append(competitor)
        delay = self.delays.get(competitor, 0)
        if delay:
            await asyncio.sleep(delay)
        if self.raises is not None:
            raise self.raises
        return ReviewSentimentData(
            platform=self.platform,
            total_mentions=2,
            sentiment="positive",
            sentiment_score=75,
            top_quotes=[Quote(text=f"I love {competitor}, great API")],
        )


class FakeSummarizer:
    def __init__(self, fail_high: bool = False, fail_all: bool = False):
        self.fail_high = fail_high
        self.fail_all = fail_all
        self.calls: list[bool] = []

    async def summarize(self, signals, competitor_names, high_effort=True, enhanced=None):
        self.calls.append(high_effort)
        if self.fail_all or (high_effort and self.fail_high):
            raise SummarizationError("model unavailable")
        return json.dumps({
            "executive_summary": f"Summary of {', '.join(competitor_names)}",
            "effort": "high" if high_effort else "low",
        })

    async def preview(self, signals, competitor_names):
        return {"preview": "Early look", "key_themes": ["growth"]}

    async def newsletter(self, signals, competitor_names):
        return "# Newsletter\n\n" + "\n".join(f"- {n}" for n in competitor_names)


class InMemoryStore:
    """Same async surface as ReportStore, backed by lists."""

    def __init__(self):
        self.reports: list[SimpleNamespace] = []
        self.tracked: list[SimpleNamespace] = []

    async def create(self, draft):
        report = SimpleNamespace(
            id=str(uuid.uuid4()),
            user_id=draft.user_id,
            title=draft.title,
            competitors=draft.competitors,
            signals=draft.signals,
            summary=draft.summary,
            report_metadata=dict(draft.metadata),
            created_at=datetime.now(timezone.utc),
        )
        self.reports.append(report)
        return report

    async def get_by_id(self, report_id):
        return next((r for r in self.reports if r.id == report_id), None)

    async def list_for_user(self, user_id, limit=20):
        rows = [r for r in self.reports if r.user_id == user_id]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)[:limit]

    async def update_metadata(self, report_id, patch):
        report = await self.get_by_id(report_id)
        if report is not None:
            report.report_metadata = {**report.report_metadata, **patch}
        return report

    async def has_report_since(self, user_id, report_type, since):
        return any(
            r.user_id == user_id and r.created_at >= since and r.report_metadata.get("type") == report_type
            for r in self.reports
        )

    async def list_tracked(self, user_id):
        return [t for t in self.tracked if t.user_id == user_id and t.is_active]

    async def add_tracked(self, user_id, competitor_name, domain, canonical_key):
        row = SimpleNamespace(
            id=str(uuid.uuid4()),
            user_id=user_id,
            competitor_name=competitor_name,
            domain=domain,
            canonical_key=canonical_key,
            is_active=True,
            added_at=datetime.now(timezone.utc),
            last_analyzed_at=None,
        )
        self.tracked.append(row)
        return row

    async def remove_tracked(self, user_id, tracked_id):
        before = len(self.tracked)
        self.tracked = [t for t in self.tracked if not (t.id == tracked_id and t.user_id == user_id)]
        return len(self.tracked) < before

    async def mark_tracked_analyzed(self, user_id, when):
        for t in self.tracked:
            if t.user_id == user_id:
                t.last_analyzed_at = when

    async def users_with_tracked(self):
        return sorted({t.user_id for t in self.tracked if t.is_active})


def build_service(
    news: Optional[list[Any]] = None,
    review: Optional[FakeSentimentProvider] = None,
    forum: Optional[FakeSentimentProvider] = None,
    summarizer: Optional[FakeSummarizer] = None,
    store: Optional[InMemoryStore] = None,
    **kwargs,
) -> IntelligenceService:
    traditional = SignalAggregator(news if news is not None else [FakeNewsProvider()], timeout=2, feed_timeout=2)
    aggregator = EnhancedSignalAggregator(
        traditional,
        review_provider=review,
        forum_provider=forum,
        quote_summarizer=QuoteSentimentSummarizer(None),
        review_timeout=2,
        forum_timeout=2,
    )
    return IntelligenceService(
        aggregator,
        summarizer or FakeSummarizer(),
        store or InMemoryStore(),
        analysis_cache=kwargs.pop("analysis_cache", AnalysisCache(ttl=60)),
        cache_policy=kwargs.pop("cache_policy", CachePolicy()),
        **kwargs,
    )


@pytest.fixture
def store():
    return InMemoryStore()
