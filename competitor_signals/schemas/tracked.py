"""Tracked competitor Pydantic schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TrackedCompetitorCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    competitor_name: str = Field(..., min_length=1, max_length=255)


class TrackedCompetitorResponse(BaseModel):
    id: str
    user_id: str
    competitor_name: str
    domain: Optional[str] = None
    canonical_key: str
    is_active: bool
    added_at: Optional[datetime] = None
    last_analyzed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TrackedCompetitorListResponse(BaseModel):
    competitors: list[TrackedCompetitorResponse]
    count: int
    limit: int


class DigestEnqueueResponse(BaseModel):
    user_id: str
    enqueued: bool


class TrackedAnalyzeRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    session_id: Optional[str] = None
    stream_session_id: Optional[str] = None


class DigestRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    force: bool = False
