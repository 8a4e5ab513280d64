"""SQLAlchemy ORM models."""
from competitor_signals.database import Base
from competitor_signals.models.report import CompetitorReport
from competitor_signals.models.tracked import TrackedCompetitor

__all__ = [
    "Base",
    "CompetitorReport",
    "TrackedCompetitor",
]
