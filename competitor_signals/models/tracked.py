"""Tracked competitor model."""
from sqlalchemy import Column, String, Boolean, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from competitor_signals.database import Base
from competitor_signals.models.report import _utcnow, _uuid


class TrackedCompetitor(Base):
    __tablename__ = "tracked_competitors"
    __table_args__ = (UniqueConstraint("user_id", "canonical_key", name="uq_tracked_user_key"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(255), nullable=False, index=True)
    competitor_name = Column(String(255), nullable=False)
    domain = Column(String(255), nullable=True)
    canonical_key = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    added_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    last_analyzed_at = Column(DateTime(timezone=True), nullable=True)
