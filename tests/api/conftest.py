import io
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from creatoriq.analyze.analyzer import Analyzer
from creatoriq.analyze.cost_tracker import CostTracker
from creatoriq.api.main import create_app
from creatoriq.api.middleware.rate_limit import MemoryRateLimitStore
from creatoriq.config import Settings
from creatoriq.logging import ServiceLogger
from creatoriq.models import (
    AnalysisResult,
    OpportunitiesSection,
    ResultMetadata,
    Scores,
    ServiceResult,
    StrengthsSection,
    WeaknessesSection,
)


class FakeMsClock:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def _ok_result(provider: str = "openai", cost: int = 4) -> ServiceResult:
    return ServiceResult.ok(
        AnalysisResult(
            strengths=StrengthsSection(summary="Great hooks", details=["a"], score=80),
            weaknesses=WeaknessesSection(summary="Few uploads"),
            opportunities=OpportunitiesSection(summary="Shorts"),
            scores=Scores(overall=75, content_quality=80, engagement=70, growth_potential=72),
        ),
        ResultMetadata(request_id=f"{provider}_1_abc", processing_time=30, tokens_used=900, cost_cents=cost),
    )


def _failed_result(provider: str = "openai", code: str = "PROVIDER_HTTP_ERROR") -> ServiceResult:
    return ServiceResult.failed(
        code=code,
        message="OpenAI API Error: upstream unavailable",
        provider=provider,
        request_id=f"{provider}_1_x",
    )


@pytest.fixture
def ok_result():
    return _ok_result


@pytest.fixture
def failed_result():
    return _failed_result


@pytest.fixture
def openai_provider():
    return SimpleNamespace(analyze_channel=AsyncMock(return_value=_ok_result()))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        anthropic_api_key="",
        api_rate_limit_max=3,
        daily_budget_cents=10,
        monthly_budget_cents=1000,
    )


@pytest.fixture
def ms_clock() -> FakeMsClock:
    return FakeMsClock()


@pytest.fixture
def app(settings: Settings, openai_provider, ms_clock: FakeMsClock):
    analyzer = Analyzer(
        {"openai": openai_provider},
        CostTracker(),
        logger=ServiceLogger("analyzer", stream=io.StringIO()),
    )
    return create_app(
        settings=settings,
        analyzer=analyzer,
        rate_limit_store=MemoryRateLimitStore(clock=ms_clock),
    )


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client

    app.dependency_overrides.clear()


@pytest.fixture
def analysis_body() -> dict:
    return {
        "channel": {
            "id": "UC123",
            "title": "Bread Lab",
            "description": "Weekly sourdough experiments",
            "subscriber_count": 1234567,
            "video_count": 240,
            "view_count": 98765432,
            "content_type": "Education",
            "topics": ["baking"],
        },
        "analysis_type": "QUICK_SCAN",
    }
