from __future__ import annotations

from typing import Any, Dict, Optional


class CreatorIQError(Exception):
    """Base exception for all CreatorIQ errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "",
        *,
        provider: Optional[str] = None,
        details: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.provider = provider
        self.details = details
        self.headers = headers


class ConfigError(CreatorIQError):
    """Configuration validation failed."""

    code = "CONFIG_ERROR"


class UnknownAnalysisType(CreatorIQError):
    """Analysis type is not one of the supported kinds."""

    code = "UNKNOWN_ANALYSIS_TYPE"
    status_code = 400


class UnsupportedModel(CreatorIQError):
    """Model is not configured for the provider."""

    code = "UNSUPPORTED_MODEL"
    status_code = 400


class ProviderHTTPError(CreatorIQError):
    """Provider call failed at the transport level or returned non-2xx."""

    code = "PROVIDER_HTTP_ERROR"
    status_code = 502


class MalformedResponse(CreatorIQError):
    """Provider answer had no JSON object or lacked required sections."""

    code = "MALFORMED_RESPONSE"
    status_code = 502


class NoProviderAvailable(CreatorIQError):
    """No AI provider is configured with credentials."""

    code = "NO_PROVIDER_AVAILABLE"
    status_code = 503


class RateLimitExceeded(CreatorIQError):
    """Too many requests in the current window."""

    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429


_ERROR_TYPES = (
    ConfigError,
    UnknownAnalysisType,
    UnsupportedModel,
    ProviderHTTPError,
    MalformedResponse,
    NoProviderAvailable,
    RateLimitExceeded,
)
STATUS_BY_CODE: Dict[str, int] = {cls.code: cls.status_code for cls in _ERROR_TYPES}


def status_for_code(code: str, default: int = 502) -> int:
    """HTTP status for a failed result's error code."""
    return STATUS_BY_CODE.get(code, default)
