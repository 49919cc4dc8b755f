from __future__ import annotations

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Callable, ClassVar, Dict, List, Optional

from ...constants import Limits
from ...errors import ConfigError, CreatorIQError, ProviderHTTPError, UnsupportedModel
from ...models import (
    AnalysisMetadata,
    AnalysisRequest,
    AnalysisResult,
    ModelConfig,
    ResultMetadata,
    ServiceResult,
)
from ...utils import elapsed_ms, epoch_ms, to_cents
from ..prompt_store import PromptStore, channel_variables
from ..response_parser import parse_analysis_response

SYSTEM_PROMPT = (
    "You are an expert YouTube channel analyst. Provide detailed, actionable insights "
    "in valid JSON format only. Do not include any text outside the JSON response."
)


@dataclass(frozen=True)
class ProviderResponse:
    content: str
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class ConfidenceTable:
    """Completeness heuristic: a base value plus increments per non-trivial section."""

    base: float
    strengths_detail: float
    weaknesses_detail: float
    recommendation: float
    overall_score: float
    content_strategy: float

    def score(self, result: AnalysisResult) -> float:
        confidence = self.base
        if len(result.strengths.details) >= 3:
            confidence += self.strengths_detail
        if len(result.weaknesses.details) >= 2:
            confidence += self.weaknesses_detail
        if len(result.opportunities.recommendations) >= 1:
            confidence += self.recommendation
        if result.scores.overall > 0:
            confidence += self.overall_score
        if result.content_strategy is not None:
            confidence += self.content_strategy
        return round(max(0.0, min(1.0, confidence)), 4)


def provider_error_message(exc: BaseException) -> str:
    """Best-effort extraction of the provider's own error message from an SDK exception."""
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    message = getattr(exc, "message", None) or str(exc)
    return message or "Unknown error"


class ProviderClient(ABC):
    """One LLM vendor: renders the prompt, makes a single call, validates the answer."""

    name: ClassVar[str]
    label: ClassVar[str]
    DEFAULT_MODEL: ClassVar[str]
    MODEL_CONFIGS: ClassVar[Dict[str, ModelConfig]]
    CONFIDENCE: ClassVar[ConfidenceTable]
    # Published prices differ in granularity: cost = tokens / TOKEN_UNIT * price * PRICE_SCALE
    TOKEN_UNIT: ClassVar[int]
    PRICE_SCALE: ClassVar[float] = 1.0

    def __init__(
        self,
        api_key: str,
        *,
        prompt_store: Optional[PromptStore] = None,
        timeout_seconds: int = Limits.PROVIDER_TIMEOUT_SECONDS,
        client_getter: Optional[Callable[[], Any]] = None,
    ) -> None:
        if not api_key and client_getter is None:
            raise ConfigError(f"{self.label} API key is required")
        self.api_key = api_key
        self.prompt_store = prompt_store or PromptStore()
        self.timeout = timeout_seconds
        self._client_getter = client_getter
        self._client = None

    @property
    def client(self):
        if self._client_getter is not None:
            return self._client_getter()
        if self._client is None:
            self._client = self._create_client()
        return self._client

    @abstractmethod
    def _create_client(self) -> Any:
        """Build the vendor SDK client."""

    @abstractmethod
    async def _send(self, prompt: str, config: ModelConfig) -> ProviderResponse:
        """Make a single LLM call. Returns content + token usage."""

    async def analyze_channel(
        self,
        request: AnalysisRequest,
        model: Optional[str] = None,
    ) -> ServiceResult:
        start = time.perf_counter()
        request_id = f"{self.name}_{epoch_ms()}_{uuid.uuid4().hex[:9]}"
        model = model or self.DEFAULT_MODEL

        try:
            template = self.prompt_store.get_template(request.analysis_type)
            prompt = self.prompt_store.render(template, channel_variables(request.channel))
            config = self.get_model_config(model)
            response = await self._call(prompt, config)
            parsed = parse_analysis_response(response.content)
        except CreatorIQError as exc:
            return ServiceResult.failed(
                code=exc.code,
                message=str(exc),
                provider=self.name,
                request_id=request_id,
                processing_time=elapsed_ms(start),
            )

        cost_cents = self.calculate_cost_cents(response.input_tokens, response.output_tokens, config)
        processing_time = elapsed_ms(start)
        result = replace(
            parsed,
            metadata=AnalysisMetadata(
                ai_model=model,
                prompt_version=template.version,
                processing_time=processing_time,
                confidence=self.CONFIDENCE.score(parsed),
                cost_cents=cost_cents,
            ),
        )
        return ServiceResult.ok(
            result,
            ResultMetadata(
                request_id=request_id,
                processing_time=processing_time,
                tokens_used=response.total_tokens,
                cost_cents=cost_cents,
            ),
        )

    async def _call(self, prompt: str, config: ModelConfig) -> ProviderResponse:
        try:
            return await asyncio.wait_for(self._send(prompt, config), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderHTTPError(
                f"{self.label} API Error: timeout after {self.timeout}s", provider=self.name
            ) from exc
        except CreatorIQError:
            raise
        except Exception as exc:
            raise ProviderHTTPError(
                f"{self.label} API Error: {provider_error_message(exc)}", provider=self.name
            ) from exc

    def calculate_cost(self, input_tokens: int, output_tokens: int, config: ModelConfig) -> float:
        input_cost = (input_tokens / self.TOKEN_UNIT) * config.cost_per_input_token * self.PRICE_SCALE
        output_cost = (output_tokens / self.TOKEN_UNIT) * config.cost_per_output_token * self.PRICE_SCALE
        return input_cost + output_cost

    def calculate_cost_cents(self, input_tokens: int, output_tokens: int, config: ModelConfig) -> int:
        return to_cents(self.calculate_cost(input_tokens, output_tokens, config))

    @classmethod
    def get_model_config(cls, model: str) -> ModelConfig:
        config = cls.MODEL_CONFIGS.get(model)
        if config is None:
            raise UnsupportedModel(f"Unsupported model: {model}", provider=cls.name)
        return config

    @classmethod
    def available_models(cls) -> List[str]:
        return list(cls.MODEL_CONFIGS)
