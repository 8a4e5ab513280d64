"""Pydantic schemas for API and validation."""
from competitor_signals.schemas.signals import (
    CompetitorIdentity,
    SignalItem,
    CompetitorSignalBundle,
    Quote,
    ReviewSentimentData,
    EnhancedData,
    sentiment_to_score,
)
from competitor_signals.schemas.analysis import (
    SourceToggles,
    AnalyzeRequest,
    AnalysisPayload,
    AggregateResult,
    StreamSessionCreate,
    StreamSessionResponse,
)
from competitor_signals.schemas.report import (
    StructuredSummary,
    NewsletterSummary,
    Summary,
    resolve_summary,
    ReportResponse,
    ReportListResponse,
    AnalyzeResponse,
    EnhancedResponse,
)
from competitor_signals.schemas.tracked import (
    TrackedCompetitorCreate,
    TrackedCompetitorResponse,
    TrackedCompetitorListResponse,
    TrackedAnalyzeRequest,
    DigestRequest,
    DigestEnqueueResponse,
)

__all__ = [
    "CompetitorIdentity",
    "SignalItem",
    "CompetitorSignalBundle",
    "Quote",
    "ReviewSentimentData",
    "EnhancedData",
    "sentiment_to_score",
    "SourceToggles",
    "AnalyzeRequest",
    "AnalysisPayload",
    "AggregateResult",
    "StreamSessionCreate",
    "StreamSessionResponse",
    "StructuredSummary",
    "NewsletterSummary",
    "Summary",
    "resolve_summary",
    "ReportResponse",
    "ReportListResponse",
    "AnalyzeResponse",
    "EnhancedResponse",
    "TrackedCompetitorCreate",
    "TrackedCompetitorResponse",
    "TrackedCompetitorListResponse",
    "TrackedAnalyzeRequest",
    "DigestRequest",
    "DigestEnqueueResponse",
]
