from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple

from .constants import AnalysisType

ProviderName = Literal["openai", "claude"]
UsageWindow = Literal["today", "week", "month"]
Priority = Literal["HIGH", "MEDIUM", "LOW"]
SubscriptionTier = Literal["FREE", "CREATOR", "PRO"]


@dataclass(frozen=True)
class RecentVideo:
    title: str
    views: int
    likes: int
    comments: int
    published_at: str


@dataclass(frozen=True)
class ChannelSnapshot:
    id: str
    title: str
    description: str
    subscriber_count: int
    video_count: int
    view_count: int
    content_type: str
    topics: Tuple[str, ...] = ()
    recent_videos: Optional[Tuple[RecentVideo, ...]] = None
    published_at: Optional[str] = None


@dataclass(frozen=True)
class AnalysisOptions:
    include_competitor_analysis: bool = False
    include_growth_strategy: bool = False
    focus_areas: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AnalysisRequest:
    channel: ChannelSnapshot
    analysis_type: AnalysisType
    options: AnalysisOptions = field(default_factory=AnalysisOptions)


@dataclass(frozen=True)
class StrengthsSection:
    summary: str = ""
    details: List[str] = field(default_factory=list)
    score: int = 0


@dataclass(frozen=True)
class WeaknessesSection:
    summary: str = ""
    details: List[str] = field(default_factory=list)
    areas: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Recommendation:
    title: str = ""
    description: str = ""
    priority: Priority = "MEDIUM"
    estimated_impact: str = ""


@dataclass(frozen=True)
class OpportunitiesSection:
    summary: str = ""
    recommendations: List[Recommendation] = field(default_factory=list)


@dataclass(frozen=True)
class SimilarChannel:
    channel_id: str = ""
    name: str = ""
    subscribers: int = 0
    why_relevant: str = ""


@dataclass(frozen=True)
class CompetitorSection:
    similar_channels: List[SimilarChannel] = field(default_factory=list)
    competitive_advantages: List[str] = field(default_factory=list)
    gaps: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ContentStrategySection:
    recommended_topics: List[str] = field(default_factory=list)
    content_gaps: List[str] = field(default_factory=list)
    optimization_tips: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Scores:
    overall: int = 0
    content_quality: int = 0
    engagement: int = 0
    growth_potential: int = 0


@dataclass(frozen=True)
class AnalysisMetadata:
    ai_model: str
    prompt_version: str
    processing_time: int
    confidence: float
    cost_cents: int


@dataclass(frozen=True)
class AnalysisResult:
    strengths: StrengthsSection
    weaknesses: WeaknessesSection
    opportunities: OpportunitiesSection
    scores: Scores
    competitors: Optional[CompetitorSection] = None
    content_strategy: Optional[ContentStrategySection] = None
    metadata: Optional[AnalysisMetadata] = None


@dataclass(frozen=True)
class PromptTemplate:
    id: str
    name: str
    version: str
    analysis_type: AnalysisType
    template: str
    variables: Tuple[str, ...]
    estimated_tokens: int
    is_active: bool = True


@dataclass(frozen=True)
class ModelConfig:
    provider: ProviderName
    model: str
    max_tokens: int
    temperature: float
    cost_per_input_token: float
    cost_per_output_token: float


@dataclass(frozen=True)
class CostEstimate:
    provider: ProviderName
    model: str
    estimated_input_tokens: int
    estimated_output_tokens: int
    estimated_cost_cents: int


@dataclass(frozen=True)
class ServiceError:
    code: str
    message: str
    provider: Optional[str] = None


@dataclass(frozen=True)
class ResultMetadata:
    request_id: str
    processing_time: int
    tokens_used: int = 0
    cost_cents: int = 0


@dataclass(frozen=True)
class ServiceResult:
    """Tagged success/failure outcome of an analysis call."""

    success: bool
    metadata: ResultMetadata
    data: Optional[AnalysisResult] = None
    error: Optional[ServiceError] = None

    @classmethod
    def ok(cls, data: AnalysisResult, metadata: ResultMetadata) -> "ServiceResult":
        return cls(success=True, metadata=metadata, data=data)

    @classmethod
    def failed(
        cls,
        *,
        code: str,
        message: str,
        request_id: str,
        provider: Optional[str] = None,
        processing_time: int = 0,
    ) -> "ServiceResult":
        return cls(
            success=False,
            metadata=ResultMetadata(request_id=request_id, processing_time=processing_time),
            error=ServiceError(code=code, message=message, provider=provider),
        )


@dataclass(frozen=True)
class UsageRecord:
    provider: str
    model: str
    analysis_type: str
    tokens_used: int
    cost_cents: int
    processing_time: int
    success: bool
    error: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class UsageStats:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_cost_cents: int = 0
    total_tokens_used: int = 0
    average_processing_time: int = 0
    cost_by_provider: Dict[str, int] = field(default_factory=dict)
    cost_by_analysis_type: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class DailyCost:
    date: str
    cost_cents: int
    requests: int


@dataclass(frozen=True)
class BudgetProjection:
    estimated_monthly_cost_cents: int
    current_daily_average: int
    projected_daily_usage: int


@dataclass(frozen=True)
class BudgetStatus:
    within_daily_limit: bool
    within_monthly_limit: bool
    daily_used: int
    monthly_used: int


@dataclass(frozen=True)
class ProviderComparison:
    provider: str
    avg_cost_cents: int
    avg_processing_time: int
    success_rate: int
    total_requests: int
