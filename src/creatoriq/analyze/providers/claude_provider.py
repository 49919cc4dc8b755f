from __future__ import annotations

from typing import Any

from ...models import ModelConfig
from .base import ConfidenceTable, ProviderClient, ProviderResponse, SYSTEM_PROMPT


class ClaudeProvider(ProviderClient):
    """Anthropic Messages API provider."""

    name = "claude"
    label = "Claude"
    DEFAULT_MODEL = "claude-3-sonnet"
    # Prices are published per 1M tokens; PRICE_SCALE converts them to the same unit as OpenAI.
    TOKEN_UNIT = 1_000_000
    PRICE_SCALE = 1000.0
    MODEL_CONFIGS = {
        "claude-3-opus": ModelConfig(
            provider="claude",
            model="claude-3-opus-20240229",
            max_tokens=4096,
            temperature=0.7,
            cost_per_input_token=0.015,
            cost_per_output_token=0.075,
        ),
        "claude-3-sonnet": ModelConfig(
            provider="claude",
            model="claude-3-sonnet-20240229",
            max_tokens=4096,
            temperature=0.7,
            cost_per_input_token=0.003,
            cost_per_output_token=0.015,
        ),
        "claude-3-haiku": ModelConfig(
            provider="claude",
            model="claude-3-haiku-20240307",
            max_tokens=4096,
            temperature=0.7,
            cost_per_input_token=0.00025,
            cost_per_output_token=0.00125,
        ),
    }
    # Claude answers tend to be more thorough, so the baseline is higher.
    CONFIDENCE = ConfidenceTable(
        base=0.6,
        strengths_detail=0.1,
        weaknesses_detail=0.1,
        recommendation=0.1,
        overall_score=0.05,
        content_strategy=0.05,
    )

    def _create_client(self) -> Any:
        try:
            import anthropic
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(
                "Install `anthropic` package to use Claude provider"
            ) from exc
        return anthropic.AsyncAnthropic(api_key=self.api_key, max_retries=0)

    async def _send(self, prompt: str, config: ModelConfig) -> ProviderResponse:
        response = await self.client.messages.create(
            model=config.model,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )

        # content is a list of blocks; first block is usually text.
        content_blocks = getattr(response, "content", None) or []
        text = ""
        if content_blocks:
            first = content_blocks[0]
            text = getattr(first, "text", "") or ""

        usage = getattr(response, "usage", None)
        input_tokens = int(getattr(usage, "input_tokens", 0) or 0) if usage else 0
        output_tokens = int(getattr(usage, "output_tokens", 0) or 0) if usage else 0

        return ProviderResponse(
            content=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
