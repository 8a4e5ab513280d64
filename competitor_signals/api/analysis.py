"""Analysis API: stream sessions, SSE progress, and running an analysis."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from competitor_signals.api.deps import get_intelligence, http_error, report_to_response
from competitor_signals.exceptions import CompetitorSignalsError
from competitor_signals.schemas.analysis import AnalyzeRequest, StreamSessionCreate, StreamSessionResponse
from competitor_signals.schemas.report import AnalyzeResponse
from competitor_signals.services.intelligence import IntelligenceService
from competitor_signals.services.streaming import sse_stream

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analysis"])

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


@router.post("/sessions", response_model=StreamSessionResponse)
async def create_stream_session(
    payload: StreamSessionCreate,
    svc: IntelligenceService = Depends(get_intelligence),
):
    """Allocate a stream session id for one analysis run on this connection."""
    return StreamSessionResponse(stream_session_id=svc.create_stream_session(payload.session_id))


@router.get("/stream/{stream_session_id}")
async def stream_progress(
    stream_session_id: str,
    svc: IntelligenceService = Depends(get_intelligence),
):
    """Server-sent progress events until the analysis completes or the client disconnects."""
    channel = svc.open_stream(stream_session_id)
    return StreamingResponse(
        sse_stream(channel, on_close=lambda: svc.streams.close(stream_session_id)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("", response_model=AnalyzeResponse)
async def analyze(
    payload: AnalyzeRequest,
    svc: IntelligenceService = Depends(get_intelligence),
):
    """Run signal aggregation and summarization, persist the report, and return it."""
    try:
        outcome = await svc.analyze(payload)
    except CompetitorSignalsError as e:
        raise http_error(e)
    base = report_to_response(outcome.report)
    return AnalyzeResponse(
        **base.model_dump(),
        stream_session_id=outcome.stream_session_id,
        cached=outcome.cached,
    )
