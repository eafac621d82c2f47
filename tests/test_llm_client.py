"""
LLM Client Tests
================
JSON parsing and transport error mapping. No network calls.
"""
import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.core.config import Settings
from app.llm.client import (
    LLMClient,
    LLMError,
    ProviderConfig,
    parse_json_object,
    strip_code_fences,
)


def _provider(api_key: str = "sk-test") -> ProviderConfig:
    return ProviderConfig(
        name="openai", api_key=api_key, base_url="https://api.example/v1", model="gpt-4.1",
    )


def _completion(content, status_code: int = 200) -> httpx.Response:
    request = httpx.Request("POST", "https://api.example/v1/chat/completions")
    body = {"choices": [{"message": {"content": content}}]}
    return httpx.Response(status_code, json=body, request=request)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_json_object_accepts_fenced_object():
    assert parse_json_object('```\n{"files": []}\n```') == {"files": []}


@pytest.mark.parametrize("raw", ["", "   ", "not json", "[1, 2]", '"text"'])
def test_parse_json_object_rejects(raw):
    with pytest.raises(LLMError):
        parse_json_object(raw)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------
def test_provider_from_settings_strips_trailing_slash():
    settings = Settings(openai_api_key="sk", openai_base_url="https://api.example/v1/")
    provider = ProviderConfig.from_settings(settings)
    assert provider.base_url == "https://api.example/v1"
    assert provider.model == "gpt-4.1"


def test_client_without_key_is_unavailable():
    client = LLMClient(_provider(api_key=""))
    assert client.available is False
    with pytest.raises(LLMError):
        asyncio.run(client.complete("system", "user"))


def test_complete_json_requests_json_mode():
    client = LLMClient(_provider())
    with patch(
        "httpx.AsyncClient.post",
        new_callable=AsyncMock,
        return_value=_completion('{"files": ["src/a.js"]}'),
    ) as mock_post:
        data = asyncio.run(client.complete_json("system", "user"))

    assert data == {"files": ["src/a.js"]}
    args, kwargs = mock_post.call_args
    assert args[0] == "https://api.example/v1/chat/completions"
    assert kwargs["json"]["response_format"] == {"type": "json_object"}
    assert kwargs["json"]["messages"][0] == {"role": "system", "content": "system"}
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"


def test_http_error_maps_to_llm_error():
    client = LLMClient(_provider())
    with patch(
        "httpx.AsyncClient.post",
        new_callable=AsyncMock,
        return_value=_completion("{}", status_code=429),
    ):
        with pytest.raises(LLMError, match="429"):
            asyncio.run(client.complete("s", "u"))


def test_timeout_maps_to_llm_error():
    client = LLMClient(_provider())
    with patch(
        "httpx.AsyncClient.post",
        new_callable=AsyncMock,
        side_effect=httpx.ReadTimeout("slow"),
    ):
        with pytest.raises(LLMError, match="timed out"):
            asyncio.run(client.complete("s", "u"))


def test_missing_content_maps_to_llm_error():
    client = LLMClient(_provider())
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=_completion(None)):
        with pytest.raises(LLMError):
            asyncio.run(client.complete("s", "u"))
