from __future__ import annotations

import json
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from creatoriq.constants import AnalysisType
from creatoriq.models import AnalysisRequest, ChannelSnapshot, RecentVideo


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture
def channel() -> ChannelSnapshot:
    return ChannelSnapshot(
        id="UC123",
        title="Bread Lab",
        description="Weekly sourdough experiments",
        subscriber_count=1234567,
        video_count=240,
        view_count=98765432,
        content_type="Education",
        topics=("baking", "sourdough"),
        recent_videos=(
            RecentVideo(
                title="Rye starter from scratch",
                views=52000,
                likes=3100,
                comments=410,
                published_at="2024-05-01T12:00:00Z",
            ),
        ),
        published_at="2016-03-14T00:00:00Z",
    )


@pytest.fixture
def make_request(channel: ChannelSnapshot):
    def _make(analysis_type: AnalysisType = AnalysisType.QUICK_SCAN) -> AnalysisRequest:
        return AnalysisRequest(channel=channel, analysis_type=analysis_type)

    return _make


@pytest.fixture
def analysis_payload() -> dict:
    """A complete provider answer in the documented JSON shape."""
    return {
        "strengths": {
            "summary": "Consistent, well-researched uploads",
            "details": ["Clear teaching", "Strong niche", "Loyal audience"],
            "score": 82,
        },
        "weaknesses": {
            "summary": "Slow upload cadence",
            "details": ["Irregular schedule", "Long intros"],
            "areas": ["Scheduling"],
        },
        "opportunities": {
            "summary": "Short-form cross-posting",
            "recommendations": [
                {
                    "title": "Post Shorts",
                    "description": "Cut highlights into Shorts",
                    "priority": "HIGH",
                    "estimatedImpact": "+15% reach",
                }
            ],
        },
        "scores": {"overall": 78, "contentQuality": 85, "engagement": 70, "growthPotential": 74},
    }


@pytest.fixture
def analysis_json(analysis_payload: dict) -> str:
    return json.dumps(analysis_payload)
