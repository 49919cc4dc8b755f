from __future__ import annotations

import io
import json

import pytest

from creatoriq.errors import (
    MalformedResponse,
    NoProviderAvailable,
    RateLimitExceeded,
    UnknownAnalysisType,
    status_for_code,
)
from creatoriq.logging import ServiceLogger


def test_logger_emits_json(capsys) -> None:
    logger = ServiceLogger("analyzer")
    logger.info("hello", detail="world")
    captured = capsys.readouterr()

    payload = json.loads(captured.err.strip().splitlines()[0])
    assert payload["component"] == "analyzer"
    assert payload["level"] == "info"
    assert payload["message"] == "hello"
    assert payload["detail"] == "world"


def test_logger_redacts_sensitive_keys() -> None:
    stream = io.StringIO()
    logger = ServiceLogger("analyzer", stream=stream)
    logger.info("secret", api_key="sk-test", token="t", tokens_used=42, client_secret="s")

    payload = json.loads(stream.getvalue().splitlines()[0])
    assert payload["api_key"] == "***"
    assert payload["token"] == "***"
    assert payload["client_secret"] == "***"
    assert payload["tokens_used"] == 42


def test_stage_reports_status() -> None:
    stream = io.StringIO()
    logger = ServiceLogger("analyzer", stream=stream)

    with logger.stage("invoke", provider="openai"):
        pass
    with pytest.raises(RuntimeError):
        with logger.stage("invoke", provider="claude"):
            raise RuntimeError("boom")

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    ends = [line for line in lines if line["message"] == "stage_end"]
    assert [end["status"] for end in ends] == ["ok", "error"]
    assert all(end["duration_ms"] >= 0 for end in ends)
    assert ends[0]["provider"] == "openai"


def test_error_codes_and_statuses() -> None:
    assert UnknownAnalysisType().status_code == 400
    assert MalformedResponse().code == "MALFORMED_RESPONSE"
    assert NoProviderAvailable().status_code == 503
    assert RateLimitExceeded("slow down").status_code == 429
    assert str(RateLimitExceeded("slow down")) == "slow down"
    assert status_for_code("UNSUPPORTED_MODEL") == 400
    assert status_for_code("PROVIDER_HTTP_ERROR") == 502
    assert status_for_code("SOMETHING_ELSE") == 502
