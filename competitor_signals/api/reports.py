"""Reports API: history, single report, enhanced data and its live updates."""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from competitor_signals.api.analysis import SSE_HEADERS
from competitor_signals.api.deps import get_intelligence, http_error, report_to_response
from competitor_signals.exceptions import CompetitorSignalsError
from competitor_signals.schemas.report import EnhancedResponse, ReportListResponse, ReportResponse
from competitor_signals.services.intelligence import IntelligenceService
from competitor_signals.services.streaming import sse_stream

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("", response_model=ReportListResponse)
async def list_reports(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    svc: IntelligenceService = Depends(get_intelligence),
):
    """A user's reports, newest first."""
    reports = await svc.list_reports(user_id, limit)
    items = [report_to_response(r) for r in reports]
    return ReportListResponse(items=items, total=len(items))


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: str,
    svc: IntelligenceService = Depends(get_intelligence),
):
    try:
        report = await svc.get_report(report_id)
    except CompetitorSignalsError as e:
        raise http_error(e)
    return report_to_response(report)


@router.get("/{report_id}/enhanced", response_model=EnhancedResponse)
async def get_enhanced(
    report_id: str,
    svc: IntelligenceService = Depends(get_intelligence),
):
    """Cached review/forum sentiment, served immediately; a stale read starts a background refresh."""
    try:
        read = await svc.get_enhanced(report_id)
    except CompetitorSignalsError as e:
        raise http_error(e)
    return EnhancedResponse(
        report_id=report_id,
        stale=read.stale,
        last_updated=read.last_updated,
        payload=read.payload,
    )


@router.get("/{report_id}/enhanced/stream")
async def stream_enhanced(
    report_id: str,
    svc: IntelligenceService = Depends(get_intelligence),
):
    """Server-sent ``enhanced_update`` events whenever this report's enhanced data is refreshed."""
    try:
        await svc.get_report(report_id)
    except CompetitorSignalsError as e:
        raise http_error(e)
    channel = svc.hub.subscribe(report_id)
    return StreamingResponse(
        sse_stream(channel, on_close=lambda: svc.hub.unsubscribe(report_id, channel)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
