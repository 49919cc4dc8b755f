from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence

from ..constants import AnalysisType, Limits, TokenEstimates
from ..errors import CreatorIQError, NoProviderAvailable, UnsupportedModel
from ..logging import ServiceLogger
from ..models import (
    AnalysisRequest,
    CostEstimate,
    ProviderName,
    ServiceResult,
    UsageRecord,
    UsageStats,
    UsageWindow,
)
from ..utils import epoch_ms, to_cents
from .cost_tracker import CostTracker
from .prompt_store import PromptStore
from .providers import PROVIDER_PRIORITY, PROVIDERS, ProviderClient

if TYPE_CHECKING:
    from ..config import Settings

# Claude for detailed analyses, OpenAI for quick scans.
PREFERRED_PROVIDER: Dict[AnalysisType, ProviderName] = {
    AnalysisType.DEEP_DIVE: "claude",
    AnalysisType.GROWTH_STRATEGY: "claude",
    AnalysisType.QUICK_SCAN: "openai",
}


class Analyzer:
    """Routes analysis requests to a provider, records usage and handles fallback."""

    def __init__(
        self,
        providers: Mapping[str, ProviderClient],
        cost_tracker: Optional[CostTracker] = None,
        *,
        default_models: Optional[Mapping[str, str]] = None,
        batch_concurrency: int = Limits.BATCH_CONCURRENCY,
        batch_delay_ms: int = Limits.BATCH_DELAY_MS,
        logger: Optional[ServiceLogger] = None,
    ) -> None:
        self.providers: Dict[str, ProviderClient] = dict(providers)
        self.cost_tracker = cost_tracker or CostTracker()
        self.default_models = {name: cls.DEFAULT_MODEL for name, cls in PROVIDERS.items()}
        self.default_models.update(default_models or {})
        self.batch_concurrency = batch_concurrency
        self.batch_delay_ms = batch_delay_ms
        self.logger = logger or ServiceLogger("analyzer")

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        cost_tracker: Optional[CostTracker] = None,
        logger: Optional[ServiceLogger] = None,
    ) -> "Analyzer":
        """Build provider clients for every provider configured with credentials."""
        prompt_store = PromptStore()
        keys = {
            "openai": settings.openai_api_key.get_secret_value(),
            "claude": settings.anthropic_api_key.get_secret_value(),
        }
        providers = {
            name: PROVIDERS[name](
                keys[name],
                prompt_store=prompt_store,
                timeout_seconds=settings.provider_timeout_seconds,
            )
            for name in settings.configured_providers()
        }
        return cls(
            providers,
            cost_tracker or CostTracker(max_history=settings.max_usage_history),
            default_models={
                "openai": settings.default_openai_model,
                "claude": settings.default_claude_model,
            },
            batch_concurrency=settings.batch_concurrency,
            batch_delay_ms=settings.batch_delay_ms,
            logger=logger,
        )

    async def analyze_channel(
        self,
        request: AnalysisRequest,
        *,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        fallback_provider: Optional[str] = None,
    ) -> ServiceResult:
        """
        Run one analysis.

        Flow:
        1. Select provider (caller choice, else preference table, else priority order)
        2. Estimate cost (advisory only, logged)
        3. Invoke provider; record one usage record for the invocation
        4. On failure, retry once with a different caller-supplied fallback provider
        """
        try:
            selected = provider or self.select_provider(request.analysis_type)
        except NoProviderAvailable as exc:
            self.logger.error("provider_unavailable", analysis_type=request.analysis_type.value, error=str(exc))
            return ServiceResult.failed(code=exc.code, message=str(exc), request_id=f"failed_{epoch_ms()}")

        try:
            selected_model = model or self.default_model(selected)
        except UnsupportedModel as exc:
            return ServiceResult.failed(
                code=exc.code, message=str(exc), provider=selected, request_id=f"failed_{epoch_ms()}"
            )
        self.logger.info("provider_selected", provider=selected, model=selected_model)
        self._log_estimate(request, selected, selected_model)

        with self.logger.stage("invoke", provider=selected, model=selected_model):
            result = await self._invoke(selected, request, selected_model)

        if result.success:
            self._record(request, selected, selected_model, result)
            return result

        error_message = result.error.message if result.error else "unknown error"
        self._record(request, selected, selected_model, result, error=error_message)

        if fallback_provider and fallback_provider != selected:
            self.logger.warning(
                "provider_fallback",
                provider=selected,
                fallback_provider=fallback_provider,
                error=error_message,
            )
            return await self.analyze_channel(request, provider=fallback_provider)

        self.logger.error("analysis_failed", provider=selected, model=selected_model, error=error_message)
        return ServiceResult.failed(
            code=result.error.code if result.error else "ANALYSIS_FAILED",
            message=error_message,
            provider=selected,
            request_id=f"failed_{epoch_ms()}",
            processing_time=result.metadata.processing_time,
        )

    async def analyze_multiple_channels(
        self,
        requests: Sequence[AnalysisRequest],
        *,
        provider: Optional[str] = None,
        concurrency: Optional[int] = None,
        delay_ms: Optional[int] = None,
    ) -> List[ServiceResult]:
        """
        Analyze requests in groups of ``concurrency``.

        Calls within a group run concurrently; ``delay_ms`` is waited between
        groups only. Results keep the input order.
        """
        group_size = max(1, concurrency if concurrency is not None else self.batch_concurrency)
        delay = self.batch_delay_ms if delay_ms is None else delay_ms
        results: List[ServiceResult] = []

        for start in range(0, len(requests), group_size):
            group = requests[start:start + group_size]
            results.extend(
                await asyncio.gather(
                    *(self.analyze_channel(request, provider=provider) for request in group)
                )
            )
            if start + group_size < len(requests) and delay > 0:
                await asyncio.sleep(delay / 1000)

        return results

    def estimate_cost(
        self,
        request: AnalysisRequest,
        provider: str,
        model: Optional[str] = None,
    ) -> CostEstimate:
        provider_cls = PROVIDERS.get(provider)
        if provider_cls is None:
            raise UnsupportedModel(f"Unsupported provider: {provider}")
        selected_model = model or self.default_model(provider)
        config = provider_cls.MODEL_CONFIGS.get(selected_model)
        if config is None:
            raise UnsupportedModel(
                f"Unknown model: {selected_model} for provider: {provider}", provider=provider
            )

        input_tokens = self.estimate_input_tokens(request)
        output_tokens = TokenEstimates.OUTPUT_BY_TYPE[request.analysis_type]
        input_cost = (input_tokens / 1000) * config.cost_per_input_token
        output_cost = (output_tokens / 1000) * config.cost_per_output_token

        return CostEstimate(
            provider=provider,  # type: ignore[arg-type]
            model=selected_model,
            estimated_input_tokens=input_tokens,
            estimated_output_tokens=output_tokens,
            estimated_cost_cents=to_cents(input_cost + output_cost),
        )

    @staticmethod
    def estimate_input_tokens(request: AnalysisRequest) -> int:
        channel = request.channel
        tokens = TokenEstimates.BASE_PROMPT
        tokens += math.ceil(len(channel.title) / TokenEstimates.CHARS_PER_TOKEN)
        tokens += math.ceil(len(channel.description or "") / TokenEstimates.CHARS_PER_TOKEN)
        tokens += TokenEstimates.METADATA
        if channel.recent_videos:
            tokens += len(channel.recent_videos) * TokenEstimates.PER_RECENT_VIDEO
        return tokens + TokenEstimates.INPUT_BY_TYPE[request.analysis_type]

    def get_usage_stats(self, window: UsageWindow = "today") -> UsageStats:
        return self.cost_tracker.get_usage_stats(window)

    def select_provider(self, analysis_type: AnalysisType) -> str:
        preferred = PREFERRED_PROVIDER.get(analysis_type)
        if preferred and preferred in self.providers:
            return preferred

        for name in PROVIDER_PRIORITY:
            if name in self.providers:
                return name

        raise NoProviderAvailable("No AI services available. Check API keys.")

    def default_model(self, provider: str) -> str:
        model = self.default_models.get(provider)
        if model is None:
            raise UnsupportedModel(f"Unknown provider: {provider}")
        return model

    def available_providers(self) -> List[str]:
        return [name for name in PROVIDER_PRIORITY if name in self.providers]

    @staticmethod
    def available_models(provider: str) -> List[str]:
        provider_cls = PROVIDERS.get(provider)
        return provider_cls.available_models() if provider_cls else []

    async def _invoke(self, provider: str, request: AnalysisRequest, model: str) -> ServiceResult:
        client = self.providers.get(provider)
        if client is None:
            exc = NoProviderAvailable(f"{provider} service not initialized. Check API key.")
            return ServiceResult.failed(
                code=exc.code, message=str(exc), provider=provider, request_id=f"failed_{epoch_ms()}"
            )
        try:
            return await client.analyze_channel(request, model)
        except Exception as exc:
            self.logger.error("provider_exception", provider=provider, error=repr(exc))
            return ServiceResult.failed(
                code="ANALYSIS_FAILED",
                message=str(exc) or exc.__class__.__name__,
                provider=provider,
                request_id=f"failed_{epoch_ms()}",
            )

    def _record(
        self,
        request: AnalysisRequest,
        provider: str,
        model: str,
        result: ServiceResult,
        error: Optional[str] = None,
    ) -> None:
        self.cost_tracker.record_usage(
            UsageRecord(
                provider=provider,
                model=model,
                analysis_type=request.analysis_type.value,
                tokens_used=result.metadata.tokens_used if result.success else 0,
                cost_cents=result.metadata.cost_cents if result.success else 0,
                processing_time=result.metadata.processing_time,
                success=result.success,
                error=error,
            )
        )

    def _log_estimate(self, request: AnalysisRequest, provider: str, model: str) -> None:
        try:
            estimate = self.estimate_cost(request, provider, model)
        except CreatorIQError as exc:
            self.logger.warning("cost_estimate_unavailable", provider=provider, model=model, error=str(exc))
            return
        self.logger.info(
            "cost_estimate",
            provider=provider,
            model=model,
            analysis_type=request.analysis_type.value,
            estimated_cost_cents=estimate.estimated_cost_cents,
        )
