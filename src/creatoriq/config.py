from __future__ import annotations

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, SecretStr, conint, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .analyze.providers import PROVIDER_PRIORITY, ClaudeProvider, OpenAIProvider
from .constants import Limits

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Service configuration loaded from the environment and ``.env.local``."""

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        frozen=True,
        extra="ignore",
        protected_namespaces=(),
    )

    # Provider credentials (BYO). A provider without a key is not offered.
    openai_api_key: SecretStr = Field(default="", description="OpenAI API key")
    anthropic_api_key: SecretStr = Field(default="", description="Anthropic API key for Claude")

    # Model defaults
    default_openai_model: str = Field(default=OpenAIProvider.DEFAULT_MODEL)
    default_claude_model: str = Field(default=ClaudeProvider.DEFAULT_MODEL)
    provider_timeout_seconds: conint(ge=1) = Field(
        default=Limits.PROVIDER_TIMEOUT_SECONDS,
        description="Upper bound for a single provider call",
    )

    # Batch analysis
    batch_concurrency: conint(ge=1) = Field(default=Limits.BATCH_CONCURRENCY)
    batch_delay_ms: conint(ge=0) = Field(default=Limits.BATCH_DELAY_MS)

    # Usage history / budgets
    max_usage_history: conint(ge=1) = Field(default=Limits.MAX_USAGE_HISTORY)
    daily_budget_cents: conint(ge=0) = Field(default=5_000)
    monthly_budget_cents: conint(ge=0) = Field(default=100_000)

    # Rate limits
    api_rate_limit_window_ms: conint(ge=1) = Field(default=15 * 60 * 1000)
    api_rate_limit_max: conint(ge=1) = Field(default=100)
    rate_limit_sweep_interval_seconds: conint(ge=1) = Field(default=Limits.RATE_LIMIT_SWEEP_SECONDS)

    # HTTP
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    @field_validator("default_openai_model")
    @classmethod
    def _validate_openai_model(cls, value: str) -> str:
        if value not in OpenAIProvider.MODEL_CONFIGS:
            raise ValueError(f"default_openai_model must be one of {OpenAIProvider.available_models()}")
        return value

    @field_validator("default_claude_model")
    @classmethod
    def _validate_claude_model(cls, value: str) -> str:
        if value not in ClaudeProvider.MODEL_CONFIGS:
            raise ValueError(f"default_claude_model must be one of {ClaudeProvider.available_models()}")
        return value

    @model_validator(mode="after")
    def _warn_without_providers(self) -> "Settings":
        # Local/dev: allow no keys. Analysis endpoints report NO_PROVIDER_AVAILABLE.
        if not self.configured_providers():
            logger.warning("No AI provider API keys configured; analysis requests will fail")
        return self

    def configured_providers(self) -> List[str]:
        """Providers with credentials, in priority order."""
        keys = {
            "openai": self.openai_api_key.get_secret_value(),
            "claude": self.anthropic_api_key.get_secret_value(),
        }
        return [name for name in PROVIDER_PRIORITY if keys.get(name)]


@lru_cache
def get_settings() -> Settings:
    return Settings()
