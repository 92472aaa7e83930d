"""Realtime Blog API - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map BlogError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and event channel initialized on startup via lifespan context manager,
      and released on shutdown (open event streams are ended first)

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import health, posts, realtime
from app.config import get_settings
from app.infrastructure.database import close_db, init_db
from app.infrastructure.event_channel import close_event_channel, init_event_channel
from app.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_event_channel(settings.realtime_queue_size)
    logger.info("Blog API started")
    yield
    logger.info("Blog API shutting down")
    close_event_channel()
    await close_db()


app = FastAPI(
    title="Realtime Blog API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(posts.router)
app.include_router(realtime.router)

register_error_handlers(app)
