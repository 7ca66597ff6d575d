"""
Tests for the provider adapters with mocked vendor clients.
"""

import json
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from readiness_analytics.schemas import HealthStatus, ProviderErrorKind
from readiness_analytics.services.llm.exceptions import ProviderError
from readiness_analytics.services.llm.providers import GeminiAdapter, OpenAIAdapter, get_provider
from readiness_analytics.tests.fakes import make_request
from readiness_analytics.tests.services.test_response_parser import valid_payload

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _openai_response(content, total_tokens=1000):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


@pytest.fixture
def openai_adapter():
    adapter = OpenAIAdapter({"api_key": "test-api-key", "model": "gpt-4o"})
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_openai_response(json.dumps(valid_payload())))
    adapter._client = client
    return adapter


@pytest.fixture
def gemini_adapter():
    adapter = GeminiAdapter({"api_key": "test-api-key"})
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(
            text=json.dumps(valid_payload()),
            usage_metadata=SimpleNamespace(total_token_count=2000),
        )
    )
    adapter._client = client
    return adapter


def test_get_provider_by_name():
    assert isinstance(get_provider("openai", {"api_key": "k"}), OpenAIAdapter)
    assert isinstance(get_provider("Gemini", {"api_key": "k"}), GeminiAdapter)
    with pytest.raises(ValueError, match="Unknown LLM provider"):
        get_provider("mystery")


def test_adapter_defaults_and_clamping():
    adapter = OpenAIAdapter({"api_key": "k", "temperature": 5, "max_tokens": 10})
    info = adapter.get_model_info()

    assert info["provider"] == "openai"
    assert info["model"] == "gpt-4o"
    assert info["temperature"] == 2.0
    assert info["max_tokens"] >= 100


@pytest.mark.asyncio
async def test_openai_analyze_prices_and_parses(openai_adapter):
    response = await openai_adapter.analyze(make_request("r1"))

    assert response.tokens_used == 1000
    assert response.cost_cents == Decimal("0.3000")
    assert response.model == "gpt-4o"
    assert response.result.item_id == "r1"

    kwargs = openai_adapter._client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"][0]["role"] == "system"
    assert "Manual reporting" in kwargs["messages"][1]["content"]


@pytest.mark.asyncio
async def test_openai_malformed_output_carries_cost(openai_adapter):
    openai_adapter._client.chat.completions.create.return_value = _openai_response("{}", total_tokens=500)

    with pytest.raises(ProviderError) as exc_info:
        await openai_adapter.analyze(make_request("r1"))

    assert exc_info.value.kind == ProviderErrorKind.MALFORMED_RESPONSE
    assert exc_info.value.tokens_used == 500
    assert exc_info.value.cost_cents == Decimal("0.1500")


@pytest.mark.asyncio
async def test_openai_rate_limit_is_mapped(openai_adapter):
    request = httpx.Request("POST", OPENAI_URL)
    openai_adapter._client.chat.completions.create.side_effect = openai.RateLimitError(
        "Rate limit reached", response=httpx.Response(429, request=request), body=None
    )

    with pytest.raises(ProviderError) as exc_info:
        await openai_adapter.analyze(make_request("r1"))

    assert exc_info.value.kind == ProviderErrorKind.RATE_LIMITED
    assert exc_info.value.retryable
    assert exc_info.value.status_code == 429


@pytest.mark.asyncio
async def test_openai_auth_error_is_not_retryable(openai_adapter):
    request = httpx.Request("POST", OPENAI_URL)
    openai_adapter._client.chat.completions.create.side_effect = openai.AuthenticationError(
        "Incorrect API key provided", response=httpx.Response(401, request=request), body=None
    )

    with pytest.raises(ProviderError) as exc_info:
        await openai_adapter.analyze(make_request("r1"))

    assert exc_info.value.kind == ProviderErrorKind.AUTH
    assert not exc_info.value.retryable


@pytest.mark.asyncio
async def test_openai_timeout_is_mapped(openai_adapter):
    openai_adapter._client.chat.completions.create.side_effect = openai.APITimeoutError(
        request=httpx.Request("POST", OPENAI_URL)
    )

    with pytest.raises(ProviderError) as exc_info:
        await openai_adapter.analyze(make_request("r1"))

    assert exc_info.value.kind == ProviderErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_missing_api_key_is_auth_error(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    adapter = OpenAIAdapter({})

    with pytest.raises(ProviderError) as exc_info:
        await adapter.analyze(make_request("r1"))

    assert exc_info.value.kind == ProviderErrorKind.AUTH


@pytest.mark.asyncio
async def test_gemini_analyze(gemini_adapter):
    response = await gemini_adapter.analyze(make_request("r2"))

    assert response.model == "gemini-2.5-flash"
    assert response.tokens_used == 2000
    assert response.cost_cents == Decimal("0.0600")
    assert response.result.item_id == "r2"

    kwargs = gemini_adapter._client.aio.models.generate_content.call_args.kwargs
    assert kwargs["config"].response_mime_type == "application/json"


@pytest.mark.asyncio
async def test_gemini_api_error_is_mapped(gemini_adapter):
    gemini_adapter._client.aio.models.generate_content.side_effect = genai_errors.APIError(
        503, {"error": {"code": 503, "message": "The model is overloaded", "status": "UNAVAILABLE"}}
    )

    with pytest.raises(ProviderError) as exc_info:
        await gemini_adapter.analyze(make_request("r2"))

    assert exc_info.value.kind == ProviderErrorKind.UNAVAILABLE
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_gemini_connection_error_is_retryable(gemini_adapter):
    gemini_adapter._client.aio.models.generate_content.side_effect = httpx.ConnectError(
        "connection refused"
    )

    with pytest.raises(ProviderError) as exc_info:
        await gemini_adapter.analyze(make_request("r2"))

    assert exc_info.value.kind == ProviderErrorKind.UNAVAILABLE
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_gemini_transport_timeout_is_mapped(gemini_adapter):
    gemini_adapter._client.aio.models.generate_content.side_effect = httpx.ReadTimeout(
        "read timed out"
    )

    with pytest.raises(ProviderError) as exc_info:
        await gemini_adapter.analyze(make_request("r2"))

    assert exc_info.value.kind == ProviderErrorKind.TIMEOUT
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_health_check_reports_status(openai_adapter):
    health = await openai_adapter.health_check()
    assert health.status == HealthStatus.HEALTHY
    assert health.provider == "openai"

    openai_adapter._client.chat.completions.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", OPENAI_URL)
    )
    health = await openai_adapter.health_check()
    assert health.status == HealthStatus.UNHEALTHY
    assert health.error.startswith("unavailable")
