from typing import List

from fastapi import APIRouter, Depends, Query

from ...analyze.analyzer import Analyzer
from ...config import Settings
from ...models import DailyCost, ProviderComparison, UsageRecord, UsageStats, UsageWindow
from ..dependencies import get_analyzer, get_app_settings
from ..middleware.rate_limit import api_rate_limit
from ..schemas.usage import BudgetReport

router = APIRouter(dependencies=[Depends(api_rate_limit)])


@router.get("/usage/stats", response_model=UsageStats)
async def get_usage_stats(
    window: UsageWindow = Query(default="today"),
    analyzer: Analyzer = Depends(get_analyzer),
):
    """Aggregate usage for today (UTC), the last 7 days, or the last calendar month."""
    return analyzer.get_usage_stats(window)


@router.get("/usage/breakdown", response_model=List[DailyCost])
async def get_cost_breakdown(
    days: int = Query(default=30, ge=1, le=365),
    analyzer: Analyzer = Depends(get_analyzer),
):
    return analyzer.cost_tracker.get_cost_breakdown(days)


@router.get("/usage/budget", response_model=BudgetReport)
async def get_budget(
    analyzer: Analyzer = Depends(get_analyzer),
    settings: Settings = Depends(get_app_settings),
):
    """Spend against the configured caps plus a 30-day projection from the last week."""
    tracker = analyzer.cost_tracker
    return BudgetReport(
        daily_limit_cents=settings.daily_budget_cents,
        monthly_limit_cents=settings.monthly_budget_cents,
        status=tracker.check_budget_limits(settings.daily_budget_cents, settings.monthly_budget_cents),
        projection=tracker.estimate_monthly_budget(),
    )


@router.get("/usage/providers", response_model=List[ProviderComparison])
async def get_provider_comparison(analyzer: Analyzer = Depends(get_analyzer)):
    return analyzer.cost_tracker.get_provider_comparison()


@router.get("/usage/recent", response_model=List[UsageRecord])
async def get_recent_usage(
    limit: int = Query(default=50, ge=1, le=500),
    analyzer: Analyzer = Depends(get_analyzer),
):
    return analyzer.cost_tracker.get_recent_usage(limit)
