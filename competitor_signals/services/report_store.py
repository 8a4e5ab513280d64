"""Report and tracked-competitor persistence over an async session factory."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from competitor_signals.database import AsyncSessionLocal, session_scope
from competitor_signals.models import CompetitorReport, TrackedCompetitor

logger = logging.getLogger(__name__)


@dataclass
class ReportDraft:
    user_id: str
    title: str
    competitors: list[str]
    signals: list[dict[str, Any]]
    summary: str
    metadata: dict[str, Any] = field(default_factory=dict)


class ReportStore:
    """Each call runs in its own committed session; returned rows are detached but fully loaded."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory

    async def create(self, draft: ReportDraft) -> CompetitorReport:
        report = CompetitorReport(
            user_id=draft.user_id,
            title=draft.title,
            competitors=draft.competitors,
            signals=draft.signals,
            summary=draft.summary,
            report_metadata=draft.metadata,
        )
        async with session_scope(self.session_factory) as db:
            db.add(report)
            await db.flush()
            await db.refresh(report)
        logger.info("Stored report %s for %s", report.id, draft.user_id)
        return report

    async def get_by_id(self, report_id: str) -> Optional[CompetitorReport]:
        async with session_scope(self.session_factory) as db:
            return await db.get(CompetitorReport, report_id)

    async def list_for_user(self, user_id: str, limit: int = 20) -> list[CompetitorReport]:
        async with session_scope(self.session_factory) as db:
            result = await db.execute(
                select(CompetitorReport)
                .where(CompetitorReport.user_id == user_id)
                .order_by(CompetitorReport.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def update_metadata(self, report_id: str, patch: dict[str, Any]) -> Optional[CompetitorReport]:
        """Merge ``patch`` into the stored metadata (JSON columns are replaced, not mutated)."""
        async with session_scope(self.session_factory) as db:
            report = await db.get(CompetitorReport, report_id)
            if report is None:
                return None
            report.report_metadata = {**(report.report_metadata or {}), **patch}
            await db.flush()
            return report

    async def has_report_since(self, user_id: str, report_type: str, since: datetime) -> bool:
        if since.tzinfo is not None:
            # SQLite stores naive UTC
            since = since.astimezone(timezone.utc).replace(tzinfo=None)
        async with session_scope(self.session_factory) as db:
            result = await db.execute(
                select(CompetitorReport)
                .where(CompetitorReport.user_id == user_id, CompetitorReport.created_at >= since)
                .order_by(CompetitorReport.created_at.desc())
            )
            return any(
                (r.report_metadata or {}).get("type") == report_type for r in result.scalars().all()
            )

    # Tracked competitors

    async def list_tracked(self, user_id: str) -> list[TrackedCompetitor]:
        async with session_scope(self.session_factory) as db:
            result = await db.execute(
                select(TrackedCompetitor)
                .where(TrackedCompetitor.user_id == user_id, TrackedCompetitor.is_active.is_(True))
                .order_by(TrackedCompetitor.added_at)
            )
            return list(result.scalars().all())

    async def add_tracked(
        self,
        user_id: str,
        competitor_name: str,
        domain: Optional[str],
        canonical_key: str,
    ) -> TrackedCompetitor:
        row = TrackedCompetitor(
            user_id=user_id,
            competitor_name=competitor_name,
            domain=domain,
            canonical_key=canonical_key,
            is_active=True,
        )
        async with session_scope(self.session_factory) as db:
            db.add(row)
            await db.flush()
            await db.refresh(row)
        return row

    async def remove_tracked(self, user_id: str, tracked_id: str) -> bool:
        async with session_scope(self.session_factory) as db:
            result = await db.execute(
                delete(TrackedCompetitor).where(
                    TrackedCompetitor.id == tracked_id,
                    TrackedCompetitor.user_id == user_id,
                )
            )
            return (result.rowcount or 0) > 0

    async def mark_tracked_analyzed(self, user_id: str, when: datetime) -> None:
        async with session_scope(self.session_factory) as db:
            result = await db.execute(
                select(TrackedCompetitor).where(TrackedCompetitor.user_id == user_id)
            )
            for row in result.scalars().all():
                row.last_analyzed_at = when

    async def users_with_tracked(self) -> list[str]:
        async with session_scope(self.session_factory) as db:
            result = await db.execute(
                select(TrackedCompetitor.user_id)
                .where(TrackedCompetitor.is_active.is_(True))
                .group_by(TrackedCompetitor.user_id)
                .having(func.count(TrackedCompetitor.id) > 0)
            )
            return [row[0] for row in result.all()]
