"""Competitor Signals API - FastAPI application."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from competitor_signals.config import settings
from competitor_signals.database import init_db, close_db
from competitor_signals.api import routes, analysis, reports, tracked
from competitor_signals.services.intelligence import IntelligenceService

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def configure_logging() -> None:
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def create_app(intelligence: Optional[IntelligenceService] = None) -> FastAPI:
    """Build the app. Passing ``intelligence`` skips database setup (used by tests)."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if intelligence is None:
            await init_db()
            app.state.intelligence = IntelligenceService.build_default()
        else:
            app.state.intelligence = intelligence
        yield
        await app.state.intelligence.shutdown()
        if intelligence is None:
            await close_db()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Competitive-intelligence signal aggregation, caching and streaming",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(routes.router, prefix="/api", tags=["api"])
    app.include_router(analysis.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")
    app.include_router(tracked.router, prefix="/api")

    @app.get("/")
    def root():
        return {
            "message": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "api": "/api",
        }

    return app


app = create_app()
