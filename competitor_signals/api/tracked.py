"""Tracked competitors API: list, add, remove, analyze, and newsletter digests."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from competitor_signals.api.deps import get_intelligence, http_error, report_to_response
from competitor_signals.exceptions import CompetitorSignalsError
from competitor_signals.schemas.report import AnalyzeResponse
from competitor_signals.schemas.tracked import (
    DigestEnqueueResponse,
    DigestRequest,
    TrackedAnalyzeRequest,
    TrackedCompetitorCreate,
    TrackedCompetitorListResponse,
    TrackedCompetitorResponse,
)
from competitor_signals.services.intelligence import IntelligenceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/competitors/tracked", tags=["tracked"])


@router.get("", response_model=TrackedCompetitorListResponse)
async def list_tracked(
    user_id: str = Query(..., min_length=1),
    svc: IntelligenceService = Depends(get_intelligence),
):
    rows = await svc.list_tracked(user_id)
    return TrackedCompetitorListResponse(
        competitors=[TrackedCompetitorResponse.model_validate(r) for r in rows],
        count=len(rows),
        limit=svc.tracked_limit,
    )


@router.post("", response_model=TrackedCompetitorResponse)
async def add_tracked(
    payload: TrackedCompetitorCreate,
    svc: IntelligenceService = Depends(get_intelligence),
):
    """Track a competitor; 'Name, domain.com' is accepted."""
    try:
        row = await svc.add_tracked(payload.user_id, payload.competitor_name)
    except CompetitorSignalsError as e:
        raise http_error(e)
    return row


@router.delete("/{tracked_id}")
async def remove_tracked(
    tracked_id: str,
    user_id: str = Query(..., min_length=1),
    svc: IntelligenceService = Depends(get_intelligence),
):
    if not await svc.remove_tracked(user_id, tracked_id):
        raise HTTPException(status_code=404, detail="Tracked competitor not found")
    return {"deleted": True, "id": tracked_id}


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_tracked(
    payload: TrackedAnalyzeRequest,
    svc: IntelligenceService = Depends(get_intelligence),
):
    """Run a full analysis over every tracked competitor."""
    try:
        outcome = await svc.analyze_tracked(payload.user_id, payload.session_id, payload.stream_session_id)
    except CompetitorSignalsError as e:
        raise http_error(e)
    base = report_to_response(outcome.report)
    return AnalyzeResponse(**base.model_dump(), stream_session_id=outcome.stream_session_id, cached=outcome.cached)


@router.post("/digest", response_model=DigestEnqueueResponse)
async def enqueue_digest(payload: DigestRequest):
    """Enqueue a newsletter digest for one user (needs a Celery worker)."""
    from competitor_signals.tasks.digest_tasks import send_newsletter

    try:
        send_newsletter.delay(payload.user_id, payload.force)
    except Exception as e:
        logger.warning("Celery enqueue failed (Redis not running?): %s", e)
        return DigestEnqueueResponse(user_id=payload.user_id, enqueued=False)
    return DigestEnqueueResponse(user_id=payload.user_id, enqueued=True)
