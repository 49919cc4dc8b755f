import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..analyze.analyzer import Analyzer
from ..config import Settings, get_settings
from ..errors import CreatorIQError
from .middleware.error_handler import (
    creatoriq_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .middleware.rate_limit import MemoryRateLimitStore
from .middleware.request_id import RequestIDMiddleware
from .routes import analysis, health, usage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    store: MemoryRateLimitStore = app.state.rate_limit_store
    sweeper = asyncio.create_task(store.run_sweeper(settings.rate_limit_sweep_interval_seconds))
    logger.info("Configured AI providers: %s", settings.configured_providers() or "none")
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


def create_app(
    settings: Optional[Settings] = None,
    analyzer: Optional[Analyzer] = None,
    rate_limit_store: Optional[MemoryRateLimitStore] = None,
) -> FastAPI:
    """Composition root: build services once and hang them on ``app.state``."""
    settings = settings or get_settings()

    app = FastAPI(
        title="CreatorIQ AI Services",
        version=__version__,
        docs_url="/docs",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.analyzer = analyzer or Analyzer.from_settings(settings)
    app.state.rate_limit_store = rate_limit_store or MemoryRateLimitStore()

    # Exception handlers
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(CreatorIQError, creatoriq_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Middleware (order matters - last added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )
    app.add_middleware(RequestIDMiddleware)

    # Routes
    app.include_router(health.router, tags=["Health"])
    app.include_router(analysis.router, prefix="/api/v1", tags=["Analysis"])
    app.include_router(usage.router, prefix="/api/v1", tags=["Usage"])

    return app


app = create_app()
