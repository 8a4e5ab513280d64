"""Report Pydantic schemas and the summary variant type."""
import json
from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from competitor_signals.schemas.signals import EnhancedData


class StructuredSummary(BaseModel):
    """JSON report produced by the summarizer."""

    kind: Literal["structured"] = "structured"
    data: dict[str, Any]


class NewsletterSummary(BaseModel):
    """Markdown newsletter produced by the tracked-competitor digest."""

    kind: Literal["newsletter"] = "newsletter"
    markdown: str


Summary = Union[StructuredSummary, NewsletterSummary]


def resolve_summary(raw: Union[str, dict, None], metadata: Optional[dict] = None) -> Summary:
    """Decide once, at the read boundary, which kind of summary a stored report holds.

    Newsletter reports are identified by ``metadata.type``; anything else that
    parses to a JSON object is structured, and the rest is treated as Markdown.
    """
    if isinstance(raw, dict):
        return StructuredSummary(data=raw)
    text = raw or ""
    if (metadata or {}).get("type") == "newsletter_summary":
        return NewsletterSummary(markdown=text)
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return NewsletterSummary(markdown=text)
    if isinstance(parsed, dict):
        return StructuredSummary(data=parsed)
    return NewsletterSummary(markdown=text)


class ReportResponse(BaseModel):
    id: str
    user_id: str
    title: str
    competitors: list[str]
    signals: list[dict[str, Any]]
    summary: Summary = Field(..., discriminator="kind")
    metadata: dict[str, Any]
    created_at: Optional[datetime] = None


class ReportListResponse(BaseModel):
    items: list[ReportResponse]
    total: int


class AnalyzeResponse(ReportResponse):
    stream_session_id: Optional[str] = None
    cached: bool = False


class EnhancedResponse(BaseModel):
    report_id: str
    stale: bool
    last_updated: Optional[datetime] = None
    payload: list[EnhancedData]
