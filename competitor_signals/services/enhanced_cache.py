"""Stale-while-revalidate cache of per-report enhanced (review/forum) data."""
import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from competitor_signals.config import settings
from competitor_signals.exceptions import ReportNotFoundError
from competitor_signals.schemas.signals import EnhancedData
from competitor_signals.services.enhanced_aggregator import AggregateOptions, EnhancedSignalAggregator
from competitor_signals.services.feeds import parse_published
from competitor_signals.services.report_store import ReportStore
from competitor_signals.services.streaming import LiveUpdateHub

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnhancedCacheItem:
    payload: list[EnhancedData]
    last_updated: float
    expires: float


@dataclass(frozen=True)
class EnhancedRead:
    payload: list[EnhancedData]
    stale: bool
    last_updated: Optional[datetime] = None


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _timestamp(value: Any) -> Optional[float]:
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return dt.timestamp()
    if isinstance(value, (int, float)):
        # epoch millis when large enough
        return value / 1000 if value > 1e11 else float(value)
    if isinstance(value, str):
        dt = parse_published(value)
        return dt.timestamp() if dt else None
    return None


def seed_from_report(report: Any, ttl: float) -> Optional[EnhancedCacheItem]:
    """Cold-start entry from ``metadata.enhanced``.

    Age comes from ``metadata.enhancedUpdatedAt``, then ``metadata.generatedAt``,
    then the report's ``created_at``. Returns None when the report holds no seed.
    """
    meta = getattr(report, "report_metadata", None) or {}
    raw = meta.get("enhanced")
    if not raw:
        return None
    try:
        payload = [EnhancedData.model_validate(e) for e in raw]
    except ValidationError as e:
        logger.warning("Ignoring malformed enhanced seed on report %s: %s", getattr(report, "id", "?"), e)
        return None
    updated = (
        _timestamp(meta.get("enhancedUpdatedAt"))
        or _timestamp(meta.get("generatedAt"))
        or _timestamp(getattr(report, "created_at", None))
        or 0.0
    )
    return EnhancedCacheItem(payload=payload, last_updated=updated, expires=updated + ttl)


class EnhancedCache:
    """Serves enhanced data immediately and refreshes stale entries in the background.

    At most one refresh per report id is in flight. A finished refresh replaces
    the entry, writes the payload back to the report metadata, and is published
    to the report's live subscribers.
    """

    def __init__(
        self,
        store: ReportStore,
        aggregator: EnhancedSignalAggregator,
        hub: LiveUpdateHub,
        ttl: Optional[float] = None,
    ):
        self.store = store
        self.aggregator = aggregator
        self.hub = hub
        self.ttl = ttl if ttl is not None else settings.ENHANCED_CACHE_TTL_SECONDS
        self._entries: dict[str, EnhancedCacheItem] = {}
        self._pending: dict[str, asyncio.Task] = {}

    async def get_enhanced(self, report_id: str) -> EnhancedRead:
        entry = self._entries.get(report_id)
        if entry is None:
            report = await self.store.get_by_id(report_id)
            if report is None:
                raise ReportNotFoundError(report_id)
            entry = seed_from_report(report, self.ttl)
            if entry is not None:
                self._entries[report_id] = entry
        stale = entry is None or entry.expires <= time.time()
        if stale:
            self.schedule_refresh(report_id)
        if entry is None:
            return EnhancedRead(payload=[], stale=True)
        return EnhancedRead(
            payload=entry.payload,
            stale=stale,
            last_updated=datetime.fromtimestamp(entry.last_updated, tz=timezone.utc) if entry.last_updated else None,
        )

    def schedule_refresh(self, report_id: str) -> bool:
        """Start a background refresh unless one is already pending for this report."""
        task = self._pending.get(report_id)
        if task is not None and not task.done():
            logger.debug("Refresh already pending for report %s", report_id)
            return False
        task = asyncio.create_task(self._refresh(report_id))
        self._pending[report_id] = task
        task.add_done_callback(lambda t, rid=report_id: self._on_refresh_done(rid, t))
        return True

    def is_refreshing(self, report_id: str) -> bool:
        task = self._pending.get(report_id)
        return task is not None and not task.done()

    def _on_refresh_done(self, report_id: str, task: asyncio.Task) -> None:
        if self._pending.get(report_id) is task:
            del self._pending[report_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Enhanced refresh for report %s failed: %s", report_id, exc, exc_info=exc)

    async def _refresh(self, report_id: str) -> None:
        report = await self.store.get_by_id(report_id)
        if report is None:
            logger.warning("Report %s vanished before refresh", report_id)
            return
        meta = report.report_metadata or {}
        options = AggregateOptions(
            mode=meta.get("mode", "free"),
            compute_sentiment=True,
            domain_by_competitor=meta.get("domains") or {},
        )
        payload = await self.aggregator.collect_enhanced(list(report.competitors or []), options)
        now = time.time()
        self._entries[report_id] = EnhancedCacheItem(payload=payload, last_updated=now, expires=now + self.ttl)
        dumped = [p.model_dump() for p in payload]
        await self.store.update_metadata(report_id, {"enhanced": dumped, "enhancedUpdatedAt": _iso(now)})
        delivered = self.hub.publish(report_id, {
            "type": "enhanced_update",
            "reportId": report_id,
            "payload": dumped,
            "lastUpdated": _iso(now),
        })
        logger.info("Refreshed enhanced data for report %s (%d subscribers)", report_id, delivered)

    async def drain(self) -> None:
        """Wait for in-flight refreshes (tests and shutdown)."""
        while self._pending:
            await asyncio.gather(*list(self._pending.values()), return_exceptions=True)
            for rid, task in list(self._pending.items()):
                if task.done():
                    self._pending.pop(rid, None)
