from __future__ import annotations

import asyncio
import builtins
import json
import sys
import types
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from creatoriq.analyze.providers import ClaudeProvider, OpenAIProvider
from creatoriq.analyze.providers.base import SYSTEM_PROMPT, ProviderResponse, provider_error_message
from creatoriq.constants import AnalysisType
from creatoriq.errors import ConfigError, UnsupportedModel
from creatoriq.models import (
    AnalysisResult,
    ContentStrategySection,
    OpportunitiesSection,
    Recommendation,
    Scores,
    StrengthsSection,
    WeaknessesSection,
)


def _openai_client(content: str, prompt_tokens: int = 1000, completion_tokens: int = 500):
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )
    create_mock = AsyncMock(return_value=response)
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create_mock)))
    return client, create_mock


def _claude_client(content: str, input_tokens: int = 1000, output_tokens: int = 500):
    response = SimpleNamespace(
        content=[SimpleNamespace(text=content)],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )
    create_mock = AsyncMock(return_value=response)
    return SimpleNamespace(messages=SimpleNamespace(create=create_mock)), create_mock


@pytest.mark.anyio
async def test_openai_provider_success(make_request, analysis_json: str) -> None:
    client, create_mock = _openai_client(analysis_json)
    provider = OpenAIProvider(api_key="sk-test", client_getter=lambda: client)

    result = await provider.analyze_channel(make_request(AnalysisType.QUICK_SCAN))

    assert result.success is True
    kwargs = create_mock.call_args.kwargs
    assert kwargs["model"] == "gpt-4-turbo-preview"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert "Channel: Bread Lab" in kwargs["messages"][1]["content"]
    assert kwargs["max_tokens"] == 4096
    assert kwargs["temperature"] == 0.7

    assert result.metadata.request_id.startswith("openai_")
    assert result.metadata.tokens_used == 1500
    # (1000/1000)*0.001 + (500/1000)*0.003 = 0.0025 USD -> 0.25 cents -> 0
    assert result.metadata.cost_cents == 0
    assert result.data is not None
    assert result.data.metadata is not None
    assert result.data.metadata.ai_model == "gpt-4-turbo"
    assert result.data.metadata.prompt_version == "1.0"
    # 0.5 + strengths(3) + weaknesses(2) + recommendation + overall
    assert result.data.metadata.confidence == pytest.approx(0.9)


@pytest.mark.anyio
async def test_openai_cost_for_gpt4(make_request, analysis_json: str) -> None:
    client, _ = _openai_client(analysis_json, prompt_tokens=100_000, completion_tokens=50_000)
    provider = OpenAIProvider(api_key="sk-test", client_getter=lambda: client)

    result = await provider.analyze_channel(make_request(), model="gpt-4")

    # (100000/1000)*0.003 + (50000/1000)*0.006 = 0.6 USD -> 60 cents
    assert result.metadata.cost_cents == 60
    assert result.data.metadata.cost_cents == 60


@pytest.mark.anyio
async def test_claude_provider_success(make_request, analysis_json: str) -> None:
    client, create_mock = _claude_client(analysis_json, input_tokens=1000, output_tokens=1000)
    provider = ClaudeProvider(api_key="sk-ant", client_getter=lambda: client)

    result = await provider.analyze_channel(make_request(AnalysisType.DEEP_DIVE))

    assert result.success is True
    kwargs = create_mock.call_args.kwargs
    assert kwargs["model"] == "claude-3-sonnet-20240229"
    assert kwargs["system"] == SYSTEM_PROMPT
    assert kwargs["messages"][0]["role"] == "user"
    assert "Rye starter from scratch" in kwargs["messages"][0]["content"]

    # (1000/1e6)*0.003*1000 + (1000/1e6)*0.015*1000 = 0.018 USD -> 1.8 cents -> 2
    assert result.metadata.cost_cents == 2
    assert result.metadata.request_id.startswith("claude_")
    # 0.6 + 0.1 + 0.1 + 0.1 + 0.05
    assert result.data.metadata.confidence == pytest.approx(0.95)


def test_confidence_capped_at_one() -> None:
    result = AnalysisResult(
        strengths=StrengthsSection(details=["a", "b", "c"]),
        weaknesses=WeaknessesSection(details=["a", "b"]),
        opportunities=OpportunitiesSection(recommendations=[Recommendation(title="x")]),
        scores=Scores(overall=50),
        content_strategy=ContentStrategySection(),
    )
    assert OpenAIProvider.CONFIDENCE.score(result) == 1.0
    assert ClaudeProvider.CONFIDENCE.score(result) == 1.0


def test_confidence_base_for_sparse_result() -> None:
    result = AnalysisResult(
        strengths=StrengthsSection(),
        weaknesses=WeaknessesSection(),
        opportunities=OpportunitiesSection(),
        scores=Scores(),
    )
    assert OpenAIProvider.CONFIDENCE.score(result) == 0.5
    assert ClaudeProvider.CONFIDENCE.score(result) == 0.6


@pytest.mark.anyio
async def test_malformed_answer_becomes_failed_result(make_request) -> None:
    client, _ = _openai_client("Sorry, I can't do that.")
    provider = OpenAIProvider(api_key="sk-test", client_getter=lambda: client)

    result = await provider.analyze_channel(make_request())

    assert result.success is False
    assert result.error.code == "MALFORMED_RESPONSE"
    assert result.error.provider == "openai"
    assert result.data is None


@pytest.mark.anyio
async def test_oversized_scores_never_escape_provider(make_request, analysis_json: str) -> None:
    huge = "1" + "0" * 400
    client, _ = _openai_client(analysis_json.replace('"overall": 78', f'"overall": {huge}'))
    provider = OpenAIProvider(api_key="sk-test", client_getter=lambda: client)

    result = await provider.analyze_channel(make_request())

    assert result.success is True
    assert result.data.scores.overall == 100
    assert 0 <= result.data.metadata.confidence <= 1


@pytest.mark.skipif(
    getattr(sys, "get_int_max_str_digits", lambda: 0)() == 0,
    reason="interpreter has no integer digit limit",
)
@pytest.mark.anyio
async def test_undecodable_integer_becomes_failed_result(make_request, analysis_json: str) -> None:
    too_long = "9" * (sys.get_int_max_str_digits() + 1)
    client, _ = _openai_client(analysis_json.replace('"overall": 78', f'"overall": {too_long}'))
    provider = OpenAIProvider(api_key="sk-test", client_getter=lambda: client)

    result = await provider.analyze_channel(make_request())

    assert result.success is False
    assert result.error.code == "MALFORMED_RESPONSE"
    assert result.error.provider == "openai"


@pytest.mark.anyio
async def test_http_error_carries_provider_message(make_request) -> None:
    class _APIError(Exception):
        def __init__(self) -> None:
            super().__init__("Error code: 429")
            self.body = {"error": {"message": "Rate limit reached for requests"}}

    client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(side_effect=_APIError())))
    )
    provider = OpenAIProvider(api_key="sk-test", client_getter=lambda: client)

    result = await provider.analyze_channel(make_request())

    assert result.success is False
    assert result.error.code == "PROVIDER_HTTP_ERROR"
    assert result.error.message == "OpenAI API Error: Rate limit reached for requests"


@pytest.mark.anyio
async def test_timeout_becomes_http_error(make_request) -> None:
    async def _slow(**kwargs):
        await asyncio.sleep(5)

    client = SimpleNamespace(messages=SimpleNamespace(create=_slow))
    provider = ClaudeProvider(api_key="sk-ant", client_getter=lambda: client)
    provider.timeout = 0.01

    result = await provider.analyze_channel(make_request())

    assert result.success is False
    assert result.error.code == "PROVIDER_HTTP_ERROR"
    assert "timeout" in result.error.message


@pytest.mark.anyio
async def test_unsupported_model_fails_without_calling_provider(make_request, analysis_json: str) -> None:
    client, create_mock = _openai_client(analysis_json)
    provider = OpenAIProvider(api_key="sk-test", client_getter=lambda: client)

    result = await provider.analyze_channel(make_request(), model="gpt-5-ultra")

    assert result.success is False
    assert result.error.code == "UNSUPPORTED_MODEL"
    assert result.error.message == "Unsupported model: gpt-5-ultra"
    create_mock.assert_not_awaited()


def test_get_model_config_raises_for_unknown_model() -> None:
    with pytest.raises(UnsupportedModel):
        ClaudeProvider.get_model_config("claude-2")


def test_available_models() -> None:
    assert OpenAIProvider.available_models() == ["gpt-4", "gpt-4-turbo", "gpt-3.5-turbo"]
    assert ClaudeProvider.available_models() == ["claude-3-opus", "claude-3-sonnet", "claude-3-haiku"]


def test_missing_api_key_raises() -> None:
    with pytest.raises(ConfigError, match="OpenAI API key is required"):
        OpenAIProvider(api_key="")


def test_missing_anthropic_sdk_raises_clear_error(monkeypatch: pytest.MonkeyPatch) -> None:
    real_import = builtins.__import__

    def fake_import(name, globals=None, locals=None, fromlist=(), level=0):
        if name == "anthropic":
            raise ImportError("nope")
        return real_import(name, globals, locals, fromlist, level)

    monkeypatch.setattr(builtins, "__import__", fake_import)
    provider = ClaudeProvider(api_key="x")
    with pytest.raises(RuntimeError, match=r"Install `anthropic` package"):
        _ = provider.client


def test_claude_sdk_client_created_without_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    created = {}

    class _AsyncAnthropic:
        def __init__(self, **kwargs):
            created.update(kwargs)

    fake_anthropic = types.SimpleNamespace(AsyncAnthropic=_AsyncAnthropic)
    monkeypatch.setitem(__import__("sys").modules, "anthropic", fake_anthropic)

    provider = ClaudeProvider(api_key="sk-ant")
    _ = provider.client

    assert created == {"api_key": "sk-ant", "max_retries": 0}


def test_provider_error_message_fallbacks() -> None:
    assert provider_error_message(ValueError("boom")) == "boom"
    assert provider_error_message(SimpleNamespace(message="from attr")) == "from attr"


def test_provider_response_total_tokens() -> None:
    response = ProviderResponse(content=json.dumps({}), input_tokens=3, output_tokens=4)
    assert response.total_tokens == 7
