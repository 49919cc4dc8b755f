from __future__ import annotations

from typing import Any

from ...models import ModelConfig
from .base import ConfidenceTable, ProviderClient, ProviderResponse, SYSTEM_PROMPT


class OpenAIProvider(ProviderClient):
    """OpenAI Chat Completions provider (JSON mode)."""

    name = "openai"
    label = "OpenAI"
    DEFAULT_MODEL = "gpt-4-turbo"
    # Prices per 1K tokens.
    TOKEN_UNIT = 1_000
    MODEL_CONFIGS = {
        "gpt-4": ModelConfig(
            provider="openai",
            model="gpt-4",
            max_tokens=8192,
            temperature=0.7,
            cost_per_input_token=0.003,
            cost_per_output_token=0.006,
        ),
        "gpt-4-turbo": ModelConfig(
            provider="openai",
            model="gpt-4-turbo-preview",
            max_tokens=4096,
            temperature=0.7,
            cost_per_input_token=0.001,
            cost_per_output_token=0.003,
        ),
        "gpt-3.5-turbo": ModelConfig(
            provider="openai",
            model="gpt-3.5-turbo",
            max_tokens=4096,
            temperature=0.7,
            cost_per_input_token=0.0005,
            cost_per_output_token=0.0015,
        ),
    }
    CONFIDENCE = ConfidenceTable(
        base=0.5,
        strengths_detail=0.1,
        weaknesses_detail=0.1,
        recommendation=0.1,
        overall_score=0.1,
        content_strategy=0.1,
    )

    def _create_client(self) -> Any:
        from openai import AsyncOpenAI

        # One analysis is one request; fallback is decided by the orchestrator.
        return AsyncOpenAI(api_key=self.api_key, max_retries=0)

    async def _send(self, prompt: str, config: ModelConfig) -> ProviderResponse:
        response = await self.client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            response_format={"type": "json_object"},
        )

        text = ""
        choices = getattr(response, "choices", None) or []
        if choices:
            message = getattr(choices[0], "message", None)
            text = getattr(message, "content", "") if message is not None else ""
            text = text or ""

        usage = getattr(response, "usage", None)
        input_tokens = int(getattr(usage, "prompt_tokens", 0) or 0) if usage else 0
        output_tokens = int(getattr(usage, "completion_tokens", 0) or 0) if usage else 0

        return ProviderResponse(
            content=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
