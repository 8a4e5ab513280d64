from fastapi import APIRouter

from competitor_signals.config import settings

router = APIRouter()


@router.get("/health")
def health():
    """Health check for load balancers and monitoring."""
    return {"status": "ok", "version": settings.APP_VERSION}


@router.get("/")
def root():
    """Root API message."""
    return {"message": settings.APP_NAME, "docs": "/docs"}
