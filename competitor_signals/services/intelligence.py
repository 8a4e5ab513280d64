"""Orchestration: request -> canonical competitors -> cache or aggregation -> summary -> stored report."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from competitor_signals.ai.llm import LLMClient
from competitor_signals.ai.sentiment import QuoteSentimentSummarizer
from competitor_signals.ai.summarizer import ReportSummarizer
from competitor_signals.config import settings
from competitor_signals.exceptions import (
    AnalysisError,
    DuplicateCompetitorError,
    InvalidRequestError,
    ReportNotFoundError,
    SummarizationError,
    TrackingLimitError,
)
from competitor_signals.models import CompetitorReport, TrackedCompetitor
from competitor_signals.schemas.analysis import AnalysisPayload, AnalyzeRequest, SourceToggles
from competitor_signals.schemas.signals import CompetitorSignalBundle, EnhancedData
from competitor_signals.services.analysis_cache import AnalysisCache, CachePolicy, make_key
from competitor_signals.services.asknews_service import AskNewsProvider
from competitor_signals.services.enhanced_aggregator import AggregateOptions, EnhancedSignalAggregator
from competitor_signals.services.enhanced_cache import EnhancedCache, EnhancedRead
from competitor_signals.services.feeds import FeedProvider, HeuristicNewsProvider
from competitor_signals.services.hacker_news import HackerNewsProvider
from competitor_signals.services.identity import canonicalize, parse_competitor_list, parse_line, parse_url_list
from competitor_signals.services.report_store import ReportDraft, ReportStore
from competitor_signals.services.signal_aggregator import SignalAggregator
from competitor_signals.services.streaming import LiveUpdateHub, StreamChannel, StreamSessionRegistry
from competitor_signals.services.trustpilot import TrustpilotProvider

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to analyze competitors. Please try again."
NEWSLETTER_SOURCES = SourceToggles(news=True, funding=True, social=False, products=True)


@dataclass
class AnalysisOutcome:
    report: CompetitorReport
    cached: bool
    stream_session_id: Optional[str] = None


def report_title(names: list[str]) -> str:
    extra = f" +{len(names) - 2} more" if len(names) > 2 else ""
    return f"{', '.join(names[:2])}{extra} Analysis"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class IntelligenceService:
    """Owns the process-wide caches, stream registry and live-update hub.

    Built once at startup and shared by every request handler.
    """

    def __init__(
        self,
        aggregator: EnhancedSignalAggregator,
        summarizer: ReportSummarizer,
        store: ReportStore,
        analysis_cache: Optional[AnalysisCache] = None,
        cache_policy: Optional[CachePolicy] = None,
        streams: Optional[StreamSessionRegistry] = None,
        hub: Optional[LiveUpdateHub] = None,
        enhanced_cache: Optional[EnhancedCache] = None,
        max_competitors: Optional[int] = None,
        tracked_limit: Optional[int] = None,
    ):
        self.aggregator = aggregator
        self.summarizer = summarizer
        self.store = store
        self.analysis_cache = analysis_cache or AnalysisCache()
        self.cache_policy = cache_policy or CachePolicy.from_settings()
        self.streams = streams or StreamSessionRegistry()
        self.hub = hub or LiveUpdateHub()
        self.enhanced_cache = enhanced_cache or EnhancedCache(store, aggregator, self.hub)
        self.max_competitors = max_competitors or settings.MAX_COMPETITORS_PER_REQUEST
        self.tracked_limit = tracked_limit or settings.TRACKED_COMPETITOR_LIMIT

    @classmethod
    def build_default(cls, store: Optional[ReportStore] = None) -> "IntelligenceService":
        """Wire the real providers and LLM client from settings."""
        llm = LLMClient()
        traditional = SignalAggregator(
            news_providers=[AskNewsProvider(), HeuristicNewsProvider()],
            feed_source=FeedProvider(),
        )
        aggregator = EnhancedSignalAggregator(
            traditional,
            review_provider=TrustpilotProvider(),
            forum_provider=HackerNewsProvider(),
            quote_summarizer=QuoteSentimentSummarizer(llm),
        )
        return cls(aggregator, ReportSummarizer(llm), store or ReportStore())

    # Streaming

    def create_stream_session(self, parent_session_id: str) -> str:
        """Allocate an id; the channel is opened when a client subscribes to it."""
        return self.streams.new_session_id(parent_session_id)

    def open_stream(self, stream_session_id: str) -> StreamChannel:
        return self.streams.open(stream_session_id)

    # Analysis

    async def analyze(self, request: AnalyzeRequest) -> AnalysisOutcome:
        """Run one analysis request end to end.

        Raises InvalidRequestError for unusable input and AnalysisError for any
        other request-level failure; nothing is persisted in either case.
        """
        stream_id = request.stream_session_id
        try:
            identities = parse_competitor_list(request.competitors)
            if not identities:
                raise InvalidRequestError("No valid competitor names provided")
            if len(identities) > self.max_competitors:
                raise InvalidRequestError(
                    f"At most {self.max_competitors} competitors per analysis (got {len(identities)})"
                )
            names = [i.display_name for i in identities]
            domains = {i.display_name: i.domain for i in identities if i.domain}
            urls = parse_url_list(request.urls)
            key = make_key(
                [i.canonical_key for i in identities],
                domains.values(),
                urls,
                request.sources,
                request.mode,
            )

            payload = None
            if not self.cache_policy.should_bypass(request.no_cache, request.mode, domains.values()):
                payload = self.analysis_cache.get(key)
            cached = payload is not None
            if cached:
                logger.info("Analysis cache hit: %s", key)
            else:
                payload = await self._run_pipeline(request, names, domains, urls, stream_id)
                self.analysis_cache.put(key, payload)
            # Names as they were when the cached signals were gathered
            names = payload.competitors or names
            domains = payload.domains if payload.competitors else domains

            report = await self.store.create(ReportDraft(
                user_id=request.user_id or f"guest_{request.session_id or 'anonymous'}",
                title=report_title(names),
                competitors=names,
                signals=[b.model_dump() for b in payload.signals],
                summary=payload.summary,
                metadata=self._report_metadata(request, domains, payload, cached),
            ))
            self.streams.send(stream_id, {
                "type": "complete",
                "progress": 100,
                "reportId": report.id,
                "cached": cached,
            })
            return AnalysisOutcome(report=report, cached=cached, stream_session_id=stream_id)
        except InvalidRequestError as e:
            self.streams.send(stream_id, {"type": "error", "message": str(e)})
            raise
        except Exception as e:
            logger.exception("Analysis failed: %s", e)
            self.streams.send(stream_id, {"type": "error", "message": GENERIC_FAILURE})
            raise AnalysisError(GENERIC_FAILURE) from e
        finally:
            self.streams.close(stream_id)

    async def _run_pipeline(
        self,
        request: AnalyzeRequest,
        names: list[str],
        domains: dict[str, str],
        urls: list[str],
        stream_id: Optional[str],
    ) -> AnalysisPayload:
        def send(event: dict[str, Any]) -> None:
            self.streams.send(stream_id, event)

        send({"type": "progress", "progress": 20, "message": "Gathering competitor signals..."})
        result = await self.aggregator.aggregate(
            names,
            urls,
            request.sources,
            AggregateOptions(
                mode=request.mode,
                compute_sentiment=request.sources.social,
                domain_by_competitor=domains,
            ),
            on_partial=lambda event: send({**event, "progress": 50}),
        )
        send({"type": "progress", "progress": 70, "message": "Analyzing with AI..."})
        if self.streams.is_open(stream_id):
            await self._send_preview(stream_id, result.traditional, names)
        summary = await self._summarize(result.traditional, names, result.enhanced)
        return AnalysisPayload(
            competitors=names,
            domains=domains,
            signals=result.traditional,
            enhanced_data=result.enhanced,
            summary=summary,
            has_review_data=any(e.review_sentiment is not None for e in result.enhanced),
            has_sentiment_data=any(e.forum_sentiment is not None for e in result.enhanced),
        )

    async def _send_preview(self, stream_id: str, signals: list[CompetitorSignalBundle], names: list[str]) -> None:
        try:
            preview = await self.summarizer.preview(signals, names)
        except SummarizationError as e:
            logger.warning("Preview skipped: %s", e)
            return
        self.streams.send(stream_id, {"type": "preview", "progress": 85, "data": preview})

    async def _summarize(
        self,
        signals: list[CompetitorSignalBundle],
        names: list[str],
        enhanced: list[EnhancedData],
    ) -> str:
        """High effort first; on failure the same inputs go to the low-effort path."""
        try:
            return await self.summarizer.summarize(signals, names, high_effort=True, enhanced=enhanced)
        except SummarizationError as e:
            logger.warning("High-effort summary failed, falling back to low effort: %s", e)
        return await self.summarizer.summarize(signals, names, high_effort=False, enhanced=enhanced)

    def _report_metadata(
        self,
        request: AnalyzeRequest,
        domains: dict[str, str],
        payload: AnalysisPayload,
        cached: bool,
    ) -> dict[str, Any]:
        now = _now_iso()
        return {
            "signalCount": sum(len(b.items) for b in payload.signals),
            "sources": request.sources.enabled(),
            "generatedAt": now,
            "mode": request.mode,
            "domains": domains,
            "enhanced": [e.model_dump() for e in payload.enhanced_data],
            "enhancedUpdatedAt": now,
            "hasReviewData": payload.has_review_data,
            "hasSentimentData": payload.has_sentiment_data,
            "cached": cached,
        }

    # Reports

    async def get_report(self, report_id: str) -> CompetitorReport:
        report = await self.store.get_by_id(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    async def list_reports(self, user_id: str, limit: int = 20) -> list[CompetitorReport]:
        return await self.store.list_for_user(user_id, limit)

    async def get_enhanced(self, report_id: str) -> EnhancedRead:
        return await self.enhanced_cache.get_enhanced(report_id)

    # Tracked competitors

    async def list_tracked(self, user_id: str) -> list[TrackedCompetitor]:
        return await self.store.list_tracked(user_id)

    async def add_tracked(self, user_id: str, entry: str) -> TrackedCompetitor:
        name, domain = parse_line(entry)
        key = canonicalize(name) or (canonicalize(domain) if domain else "")
        if not key:
            raise InvalidRequestError("Competitor name is empty after normalization")
        existing = await self.store.list_tracked(user_id)
        if any(t.canonical_key == key for t in existing):
            raise DuplicateCompetitorError(f"{name} is already tracked")
        if len(existing) >= self.tracked_limit:
            raise TrackingLimitError(f"You can track up to {self.tracked_limit} competitors")
        return await self.store.add_tracked(user_id, name, domain, key)

    async def remove_tracked(self, user_id: str, tracked_id: str) -> bool:
        return await self.store.remove_tracked(user_id, tracked_id)

    async def analyze_tracked(
        self,
        user_id: str,
        session_id: Optional[str] = None,
        stream_session_id: Optional[str] = None,
    ) -> AnalysisOutcome:
        tracked = await self.store.list_tracked(user_id)
        if not tracked:
            raise InvalidRequestError("No tracked competitors")
        lines = [f"{t.competitor_name}, {t.domain}" if t.domain else t.competitor_name for t in tracked]
        outcome = await self.analyze(AnalyzeRequest(
            competitors="\n".join(lines),
            session_id=session_id,
            stream_session_id=stream_session_id,
            user_id=user_id,
        ))
        await self.store.mark_tracked_analyzed(user_id, datetime.now(timezone.utc))
        return outcome

    async def generate_newsletter(self, user_id: str, force: bool = False) -> Optional[CompetitorReport]:
        """Markdown digest of the user's tracked competitors; None when skipped."""
        tracked = await self.store.list_tracked(user_id)
        if not tracked:
            logger.info("Newsletter skipped for %s: no tracked competitors", user_id)
            return None
        if not force:
            since = datetime.now(timezone.utc) - timedelta(hours=settings.NEWSLETTER_MIN_INTERVAL_HOURS)
            if await self.store.has_report_since(user_id, "newsletter_summary", since):
                logger.info("Newsletter skipped for %s: recent newsletter exists", user_id)
                return None
        names = [t.competitor_name for t in tracked]
        signals = await self.aggregator.traditional.aggregate(names, [], NEWSLETTER_SOURCES)
        markdown = await self.summarizer.newsletter(signals, names)
        canonical = sorted(canonicalize(n) for n in names)
        report = await self.store.create(ReportDraft(
            user_id=user_id,
            title=f"Quick Summary (Newsletter) - {datetime.now(timezone.utc):%Y-%m-%d}",
            competitors=names,
            signals=[],
            summary=markdown,
            metadata={
                "type": "newsletter_summary",
                "generatedAt": _now_iso(),
                "competitorCount": len(names),
                "canonicalKey": "tracked_qs:" + "|".join(canonical),
                "sources": NEWSLETTER_SOURCES.enabled(),
            },
        ))
        await self.store.mark_tracked_analyzed(user_id, datetime.now(timezone.utc))
        return report

    async def shutdown(self) -> None:
        await self.enhanced_cache.drain()
