from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from ...analyze.analyzer import Analyzer
from ...analyze.providers import PROVIDER_PRIORITY
from ...errors import status_for_code
from ...models import CostEstimate, ServiceResult
from ..dependencies import get_analyzer
from ..middleware.rate_limit import RateLimitHit, subscription_rate_limit
from ..schemas.analysis import (
    BatchAnalysisRequest,
    CreateAnalysisRequest,
    EstimateRequest,
    ProviderInfo,
    ProvidersResponse,
)
from ..schemas.errors import ERROR_RESPONSES

router = APIRouter()


@router.post("/analysis", response_model=ServiceResult, responses=ERROR_RESPONSES)
async def create_analysis(
    request: Request,
    payload: CreateAnalysisRequest,
    analyzer: Analyzer = Depends(get_analyzer),
    _limit: RateLimitHit = Depends(subscription_rate_limit),
):
    """
    Run a single channel analysis.

    Rate limit depends on the caller's subscription tier (anonymous callers
    get the FREE tier). A failed analysis is returned as an error envelope
    with the status matching its error code.
    """
    result = await analyzer.analyze_channel(
        payload.to_domain(),
        provider=payload.provider,
        model=payload.model,
        fallback_provider=payload.fallback_provider,
    )
    if not result.success:
        error = result.error
        raise HTTPException(
            status_code=status_for_code(error.code if error else ""),
            detail={
                "error": {
                    "code": error.code if error else "ANALYSIS_FAILED",
                    "message": error.message if error else "Analysis failed",
                    "details": {
                        "provider": error.provider if error else None,
                        "analysis_request_id": result.metadata.request_id,
                    },
                    "request_id": request.state.request_id,
                }
            },
        )
    return result


@router.post("/analysis/batch", response_model=List[ServiceResult], responses=ERROR_RESPONSES)
async def create_batch_analysis(
    payload: BatchAnalysisRequest,
    analyzer: Analyzer = Depends(get_analyzer),
    _limit: RateLimitHit = Depends(subscription_rate_limit),
):
    """
    Analyze several channels with bounded concurrency.

    Always 200; each entry carries its own success or error, in input order.
    """
    requests = [item.to_domain() for item in payload.requests]
    return await analyzer.analyze_multiple_channels(requests, provider=payload.provider)


@router.post("/analysis/estimate", response_model=CostEstimate, responses=ERROR_RESPONSES)
async def estimate_analysis_cost(
    payload: EstimateRequest,
    analyzer: Analyzer = Depends(get_analyzer),
    _limit: RateLimitHit = Depends(subscription_rate_limit),
):
    """Advisory cost preview; no provider call is made."""
    return analyzer.estimate_cost(payload.to_domain(), payload.provider, payload.model)


@router.get("/analysis/providers", response_model=ProvidersResponse)
async def list_providers(
    analyzer: Analyzer = Depends(get_analyzer),
    _limit: RateLimitHit = Depends(subscription_rate_limit),
):
    configured = set(analyzer.available_providers())
    return ProvidersResponse(
        providers=[
            ProviderInfo(
                name=name,
                configured=name in configured,
                default_model=analyzer.default_model(name),
                models=analyzer.available_models(name),
            )
            for name in PROVIDER_PRIORITY
        ]
    )
