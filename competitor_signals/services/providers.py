"""Signal provider contracts shared by the adapters and the aggregators."""
from dataclasses import dataclass, field
from typing import Optional, Protocol

from competitor_signals.schemas.analysis import PlanMode, SourceToggles
from competitor_signals.schemas.signals import ReviewSentimentData, SignalItem

USER_AGENT = "Competitor-Signals/1.0"


@dataclass
class ProviderContext:
    """Per-call inputs an adapter may need beyond the competitor name."""

    sources: SourceToggles = field(default_factory=SourceToggles)
    mode: PlanMode = "free"
    domain: Optional[str] = None
    competitors: list[str] = field(default_factory=list)


class NewsProvider(Protocol):
    """Returns recent items about one competitor. May raise; callers time-box it."""

    source_name: str

    async def fetch(self, competitor: str, context: ProviderContext) -> list[SignalItem]:
        ...


class FeedSource(Protocol):
    """Reads one user-supplied feed URL and keeps items about any requested competitor."""

    async def fetch(self, url: str, context: ProviderContext) -> list[SignalItem]:
        ...


class SentimentProvider(Protocol):
    """Review-platform or forum sentiment for one competitor, or None when nothing is known."""

    platform: str

    async def fetch(self, competitor: str, context: ProviderContext) -> Optional[ReviewSentimentData]:
        ...
