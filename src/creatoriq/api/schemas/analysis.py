from typing import List, Optional

from pydantic import BaseModel, Field

from ...constants import AnalysisType
from ...errors import UnknownAnalysisType
from ...models import (
    AnalysisOptions,
    AnalysisRequest,
    ChannelSnapshot,
    ProviderName,
    RecentVideo,
)

MAX_BATCH_SIZE = 10


class RecentVideoIn(BaseModel):
    title: str
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    published_at: str = ""


class ChannelIn(BaseModel):
    id: str
    title: str
    description: str = ""
    subscriber_count: int = Field(default=0, ge=0)
    video_count: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)
    content_type: str = ""
    topics: List[str] = Field(default_factory=list)
    recent_videos: Optional[List[RecentVideoIn]] = None
    published_at: Optional[str] = None

    def to_domain(self) -> ChannelSnapshot:
        return ChannelSnapshot(
            id=self.id,
            title=self.title,
            description=self.description,
            subscriber_count=self.subscriber_count,
            video_count=self.video_count,
            view_count=self.view_count,
            content_type=self.content_type,
            topics=tuple(self.topics),
            recent_videos=(
                tuple(
                    RecentVideo(
                        title=video.title,
                        views=video.views,
                        likes=video.likes,
                        comments=video.comments,
                        published_at=video.published_at,
                    )
                    for video in self.recent_videos
                )
                if self.recent_videos is not None
                else None
            ),
            published_at=self.published_at,
        )


class AnalysisOptionsIn(BaseModel):
    include_competitor_analysis: bool = False
    include_growth_strategy: bool = False
    focus_areas: List[str] = Field(default_factory=list)


class AnalysisRequestIn(BaseModel):
    channel: ChannelIn
    # Validated in to_domain so an unknown kind maps to UNKNOWN_ANALYSIS_TYPE (400).
    analysis_type: str
    options: AnalysisOptionsIn = Field(default_factory=AnalysisOptionsIn)

    def to_domain(self) -> AnalysisRequest:
        try:
            analysis_type = AnalysisType(self.analysis_type.strip().upper())
        except ValueError as exc:
            raise UnknownAnalysisType(
                f"Unknown analysis type: {self.analysis_type}",
                details={"allowed": [kind.value for kind in AnalysisType]},
            ) from exc
        return AnalysisRequest(
            channel=self.channel.to_domain(),
            analysis_type=analysis_type,
            options=AnalysisOptions(
                include_competitor_analysis=self.options.include_competitor_analysis,
                include_growth_strategy=self.options.include_growth_strategy,
                focus_areas=tuple(self.options.focus_areas),
            ),
        )


class CreateAnalysisRequest(AnalysisRequestIn):
    provider: Optional[ProviderName] = None
    model: Optional[str] = None
    fallback_provider: Optional[ProviderName] = None


class BatchAnalysisRequest(BaseModel):
    requests: List[AnalysisRequestIn] = Field(min_length=1, max_length=MAX_BATCH_SIZE)
    provider: Optional[ProviderName] = None


class EstimateRequest(AnalysisRequestIn):
    provider: ProviderName
    model: Optional[str] = None


class ProviderInfo(BaseModel):
    name: str
    configured: bool
    default_model: str
    models: List[str]


class ProvidersResponse(BaseModel):
    providers: List[ProviderInfo]
