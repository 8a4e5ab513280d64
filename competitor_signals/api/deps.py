"""Shared router dependencies and error translation."""
from fastapi import HTTPException, Request

from competitor_signals.exceptions import (
    CompetitorSignalsError,
    DuplicateCompetitorError,
    InvalidRequestError,
    ReportNotFoundError,
    TrackingLimitError,
)
from competitor_signals.models import CompetitorReport
from competitor_signals.schemas.report import ReportResponse, resolve_summary
from competitor_signals.services.intelligence import GENERIC_FAILURE, IntelligenceService


def get_intelligence(request: Request) -> IntelligenceService:
    """The service built in the app lifespan."""
    return request.app.state.intelligence


def http_error(exc: CompetitorSignalsError) -> HTTPException:
    if isinstance(exc, ReportNotFoundError):
        return HTTPException(status_code=404, detail="Report not found")
    if isinstance(exc, (InvalidRequestError, TrackingLimitError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DuplicateCompetitorError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=500, detail=GENERIC_FAILURE)


def report_to_response(report: CompetitorReport) -> ReportResponse:
    metadata = report.report_metadata or {}
    return ReportResponse(
        id=report.id,
        user_id=report.user_id,
        title=report.title,
        competitors=list(report.competitors or []),
        signals=list(report.signals or []),
        summary=resolve_summary(report.summary, metadata),
        metadata=metadata,
        created_at=report.created_at,
    )
