"""Analysis request and result Pydantic schemas."""
from typing import Literal, Optional

from pydantic import BaseModel, Field

from competitor_signals.schemas.signals import CompetitorSignalBundle, EnhancedData

PlanMode = Literal["free", "premium"]


class SourceToggles(BaseModel):
    news: bool = True
    funding: bool = True
    social: bool = True
    products: bool = False

    def enabled(self) -> list[str]:
        return [name for name, on in self.model_dump().items() if on]


class AnalyzeRequest(BaseModel):
    competitors: str = Field(..., min_length=1, description="Newline-separated; 'Name, domain.com' per line allowed")
    urls: str = ""
    sources: SourceToggles = Field(default_factory=SourceToggles)
    mode: PlanMode = "free"
    no_cache: bool = False
    session_id: Optional[str] = None
    stream_session_id: Optional[str] = None
    user_id: Optional[str] = None


class StreamSessionCreate(BaseModel):
    session_id: str = Field(..., min_length=1)


class StreamSessionResponse(BaseModel):
    stream_session_id: str


class AnalysisPayload(BaseModel):
    """What the analysis cache stores for one canonical request."""

    competitors: list[str] = Field(default_factory=list)
    domains: dict[str, str] = Field(default_factory=dict)
    signals: list[CompetitorSignalBundle] = Field(default_factory=list)
    enhanced_data: list[EnhancedData] = Field(default_factory=list)
    summary: str
    has_review_data: bool = False
    has_sentiment_data: bool = False


class AggregateResult(BaseModel):
    traditional: list[CompetitorSignalBundle] = Field(default_factory=list)
    enhanced: list[EnhancedData] = Field(default_factory=list)

    def signal_count(self) -> int:
        return sum(len(b.items) for b in self.traditional)
