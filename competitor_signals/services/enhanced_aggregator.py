"""Enhanced signal aggregation: traditional bundles plus per-competitor review and forum sentiment."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from competitor_signals.ai.sentiment import QuoteSentimentSummarizer, unavailable_summary
from competitor_signals.config import settings
from competitor_signals.schemas.analysis import AggregateResult, PlanMode, SourceToggles
from competitor_signals.schemas.signals import EnhancedData, ReviewSentimentData
from competitor_signals.services.concurrency import settle_all, with_deadline
from competitor_signals.services.providers import ProviderContext, SentimentProvider
from competitor_signals.services.signal_aggregator import PartialCallback, SignalAggregator

logger = logging.getLogger(__name__)


@dataclass
class AggregateOptions:
    mode: PlanMode = "free"
    compute_sentiment: bool = True
    domain_by_competitor: dict[str, Optional[str]] = field(default_factory=dict)


class EnhancedSignalAggregator:
    """Runs the traditional and enhanced tracks concurrently.

    Enhanced track: one task per competitor. Inside it the review adapter
    (premium mode with a known domain) and the forum adapter (when sentiment
    is requested) run concurrently, each under its own deadline, and both are
    settled before that competitor's partial event fires. A failed or timed
    out adapter leaves its field as None. The quote summary that follows a
    fetch has the same deadline and falls back to a fixed sentence.
    """

    def __init__(
        self,
        traditional: SignalAggregator,
        review_provider: Optional[SentimentProvider] = None,
        forum_provider: Optional[SentimentProvider] = None,
        quote_summarizer: Optional[QuoteSentimentSummarizer] = None,
        review_timeout: Optional[float] = None,
        forum_timeout: Optional[float] = None,
    ):
        self.traditional = traditional
        self.review_provider = review_provider
        self.forum_provider = forum_provider
        self.quote_summarizer = quote_summarizer or QuoteSentimentSummarizer()
        self.review_timeout = review_timeout or settings.REVIEW_TIMEOUT_SECONDS
        self.forum_timeout = forum_timeout or settings.FORUM_TIMEOUT_SECONDS

    async def aggregate(
        self,
        competitors: list[str],
        urls: Optional[list[str]] = None,
        sources: Optional[SourceToggles] = None,
        options: Optional[AggregateOptions] = None,
        on_partial: Optional[PartialCallback] = None,
    ) -> AggregateResult:
        options = options or AggregateOptions()
        traditional, enhanced = await asyncio.gather(
            self.traditional.aggregate(competitors, urls or [], sources, on_partial),
            self.collect_enhanced(competitors, options, on_partial),
        )
        logger.info(
            "Aggregation done for %s: %d bundles, %d enhanced",
            ", ".join(competitors), len(traditional), len(enhanced),
        )
        return AggregateResult(traditional=traditional, enhanced=enhanced)

    async def collect_enhanced(
        self,
        competitors: list[str],
        options: Optional[AggregateOptions] = None,
        on_partial: Optional[PartialCallback] = None,
    ) -> list[EnhancedData]:
        """Enhanced track alone, in input competitor order."""
        options = options or AggregateOptions()
        settled = await settle_all(
            [self._competitor(c, competitors, options, on_partial) for c in competitors],
            labels=[f"enhanced data for {c}" for c in competitors],
        )
        results = []
        for competitor, outcome in zip(competitors, settled):
            if outcome.ok and outcome.value is not None:
                results.append(outcome.value)
            else:
                results.append(EnhancedData(
                    competitor=competitor,
                    domain=options.domain_by_competitor.get(competitor),
                ))
        return results

    async def _competitor(
        self,
        competitor: str,
        competitors: list[str],
        options: AggregateOptions,
        on_partial: Optional[PartialCallback],
    ) -> EnhancedData:
        domain = options.domain_by_competitor.get(competitor)
        context = ProviderContext(mode=options.mode, domain=domain, competitors=competitors)
        run_review = self.review_provider is not None and options.mode == "premium" and bool(domain)
        run_forum = self.forum_provider is not None and options.compute_sentiment

        review_job = self._sentiment(self.review_provider, competitor, context, self.review_timeout) if run_review else _none()
        forum_job = self._sentiment(self.forum_provider, competitor, context, self.forum_timeout) if run_forum else _none()
        review, forum = await settle_all(
            [review_job, forum_job],
            labels=[f"review sentiment for {competitor}", f"forum sentiment for {competitor}"],
        )
        data = EnhancedData(
            competitor=competitor,
            domain=domain,
            review_sentiment=review.value if review.ok else None,
            forum_sentiment=forum.value if forum.ok else None,
        )
        if on_partial is not None:
            on_partial({
                "type": "partial_results",
                "track": "enhanced",
                "competitor": competitor,
                "data": data.model_dump(),
            })
        return data

    async def _sentiment(
        self,
        provider: SentimentProvider,
        competitor: str,
        context: ProviderContext,
        timeout: float,
    ) -> Optional[ReviewSentimentData]:
        result = await with_deadline(
            provider.fetch(competitor, context),
            timeout,
            f"{provider.platform} for {competitor}",
        )
        if result is None:
            return None
        summary = await with_deadline(
            self.quote_summarizer.summarize(competitor, result.platform, [q.text for q in result.top_quotes]),
            timeout,
            f"{provider.platform} summary for {competitor}",
        )
        return result.model_copy(update={"summary": summary or unavailable_summary(result.platform)})


async def _none() -> None:
    return None
