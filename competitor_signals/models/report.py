"""Competitor report model."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.sql import func

from competitor_signals.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompetitorReport(Base):
    __tablename__ = "competitor_reports"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(255), nullable=False, index=True)
    title = Column(String(512), nullable=False)
    competitors = Column(JSON, nullable=False, default=list)
    signals = Column(JSON, nullable=False, default=list)
    summary = Column(Text, nullable=False, default="")
    # "metadata" is reserved on declarative classes
    report_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)
