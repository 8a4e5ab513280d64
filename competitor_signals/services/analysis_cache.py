"""Time-bounded cache of analysis payloads keyed by the canonical request."""
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from competitor_signals.config import settings
from competitor_signals.schemas.analysis import AnalysisPayload, SourceToggles

logger = logging.getLogger(__name__)

SOURCE_FLAGS = ("news", "funding", "social", "products")


def _sorted_lower(values: Iterable[Optional[str]]) -> list[str]:
    return sorted(v.strip().lower() for v in values if v and v.strip())


def make_key(
    competitors: Iterable[str],
    domains: Iterable[Optional[str]] = (),
    urls: Iterable[str] = (),
    sources: Optional[SourceToggles] = None,
    mode: str = "free",
) -> str:
    """Order-independent key: every list is lower-cased and sorted before joining."""
    sources = sources or SourceToggles()
    flags = ",".join(f"{name}={int(getattr(sources, name))}" for name in SOURCE_FLAGS)
    return "|".join([
        "c:" + ",".join(_sorted_lower(competitors)),
        "d:" + ",".join(_sorted_lower(domains)),
        "u:" + ",".join(_sorted_lower(urls)),
        "s:" + flags,
        "m:" + (mode or "free").lower(),
    ])


@dataclass(frozen=True)
class AnalysisCacheEntry:
    key: str
    payload: AnalysisPayload
    expires: float


class AnalysisCache:
    """Entries are replaced whole, never mutated. Expired entries are ignored on read and overwritten on write."""

    def __init__(self, ttl: Optional[float] = None):
        self.ttl = ttl if ttl is not None else settings.ANALYSIS_CACHE_TTL_SECONDS
        self._entries: dict[str, AnalysisCacheEntry] = {}

    def get(self, key: str) -> Optional[AnalysisPayload]:
        entry = self._entries.get(key)
        if entry is None or entry.expires <= time.time():
            return None
        return entry.payload

    def put(self, key: str, payload: AnalysisPayload, ttl: Optional[float] = None) -> AnalysisCacheEntry:
        entry = AnalysisCacheEntry(
            key=key,
            payload=payload,
            expires=time.time() + (self.ttl if ttl is None else ttl),
        )
        self._entries[key] = entry
        logger.debug("Cached analysis %s until %.0f", key, entry.expires)
        return entry

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class CachePolicy:
    """Decides when a request must skip the analysis cache."""

    bypass_premium_with_domains: bool = True

    @classmethod
    def from_settings(cls) -> "CachePolicy":
        return cls(bypass_premium_with_domains=settings.CACHE_BYPASS_PREMIUM_WITH_DOMAINS)

    def should_bypass(self, no_cache: bool, mode: str, domains: Iterable[Optional[str]]) -> bool:
        if no_cache:
            return True
        return self.bypass_premium_with_domains and mode == "premium" and any(domains)
