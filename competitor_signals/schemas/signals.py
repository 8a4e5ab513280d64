"""Signal, sentiment, and competitor identity schemas."""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SignalType = Literal["news", "funding", "social", "product", "review", "sentiment"]
SourceType = Literal["news", "asknews", "rss", "trustpilot", "hackernews"]
Sentiment = Literal["positive", "neutral", "negative"]

SENTIMENT_SCORES: dict[str, int] = {"positive": 75, "neutral": 50, "negative": 25}


def sentiment_to_score(sentiment: str, rating: Optional[float] = None) -> int:
    """0-100 score: from a 1-5 rating when one exists, else from the sentiment label."""
    if rating is not None:
        return round(rating / 5 * 100)
    return SENTIMENT_SCORES.get(sentiment, 50)


class CompetitorIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    display_name: str
    domain: Optional[str] = None
    canonical_key: str


class SignalItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    content: str = ""
    url: Optional[str] = None
    published_at: Optional[str] = None
    type: SignalType = "news"
    source_type: Optional[SourceType] = None


class CompetitorSignalBundle(BaseModel):
    source: str
    competitor: str
    items: list[SignalItem] = Field(default_factory=list)


class Quote(BaseModel):
    text: str
    author: Optional[str] = None
    url: Optional[str] = None
    rating: Optional[float] = None


class ReviewSentimentData(BaseModel):
    platform: Literal["trustpilot", "hackernews"]
    average_rating: Optional[float] = None
    total_reviews: Optional[int] = None
    total_mentions: Optional[int] = None
    sentiment: Sentiment = "neutral"
    sentiment_score: int = Field(50, ge=0, le=100)
    top_quotes: list[Quote] = Field(default_factory=list)
    summary: str = ""


class EnhancedData(BaseModel):
    """Review and forum sentiment for one competitor. A field is None when its provider failed or was skipped."""

    competitor: str
    domain: Optional[str] = None
    review_sentiment: Optional[ReviewSentimentData] = None
    forum_sentiment: Optional[ReviewSentimentData] = None
