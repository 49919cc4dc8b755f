from fastapi import APIRouter, Depends, Request
import logging

from ...analyze.analyzer import Analyzer
from ...analyze.providers import PROVIDER_PRIORITY
from ..dependencies import get_analyzer

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health():
    """Basic liveness check."""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    analyzer: Analyzer = Depends(get_analyzer),
):
    """
    Readiness check - reports which AI providers have credentials.

    Without any configured provider the service stays in rotation (usage and
    estimate endpoints still work) but reports degraded readiness.
    """
    configured = set(analyzer.available_providers())
    checks = {name: ("ok" if name in configured else "not_configured") for name in PROVIDER_PRIORITY}

    if not configured:
        logger.warning(
            "Readiness degraded: no AI providers configured (request_id=%s)",
            getattr(request.state, "request_id", "unknown"),
        )

    status = "ready" if configured else "degraded"
    return {"status": status, "checks": checks}
