from __future__ import annotations

from typing import Dict, Type

from .base import ConfidenceTable, ProviderClient, ProviderResponse, provider_error_message
from .claude_provider import ClaudeProvider
from .openai_provider import OpenAIProvider


PROVIDERS: Dict[str, Type[ProviderClient]] = {
    "openai": OpenAIProvider,
    "claude": ClaudeProvider,
}

# Checked in this order when no preference applies.
PROVIDER_PRIORITY = ("openai", "claude")


__all__ = [
    "ClaudeProvider",
    "ConfidenceTable",
    "OpenAIProvider",
    "PROVIDERS",
    "PROVIDER_PRIORITY",
    "ProviderClient",
    "ProviderResponse",
    "provider_error_message",
]
