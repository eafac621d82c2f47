"""
LLM Client
==========
Asynchronous client for an OpenAI-compatible chat completion endpoint.

JSON Mode:
    - Every request asks for ``response_format = {"type": "json_object"}``
    - Responses are stripped of markdown code fences before parsing
    - Anything that is not a JSON object is a failure (LLMError)

Failure Policy:
    - No retries. A failed call is a one-shot signal for the caller to
      degrade to its deterministic fallback.
    - HTTP errors, timeouts, empty bodies and malformed JSON all surface as
      LLMError so callers only catch one type.

Availability:
    - A client without an API key reports ``available == False`` and callers
      skip it entirely (no network traffic).
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The model could not be reached or returned an unusable response."""


# ---------------------------------------------------------------------------
# Provider Configuration
# ---------------------------------------------------------------------------
@dataclass
class ProviderConfig:
    """Configuration for the completion provider."""
    name: str
    api_key: str
    base_url: str
    model: str
    temperature: float = 0.2
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderConfig":
        return cls(
            name="openai",
            api_key=settings.openai_api_key or "",
            base_url=settings.openai_base_url.rstrip("/"),
            model=settings.openai_model,
            timeout_seconds=settings.http_timeout_seconds,
        )


# ---------------------------------------------------------------------------
# Response Parsing
# ---------------------------------------------------------------------------
def strip_code_fences(raw: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        if first_newline != -1:
            cleaned = cleaned[first_newline + 1:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3].rstrip()
    return cleaned


def parse_json_object(raw: str) -> Dict[str, Any]:
    """
    Parse a model response that must be a single JSON object.

    Raises
    ------
    LLMError
        If the text is empty, not valid JSON, or not an object.
    """
    if not raw or not raw.strip():
        raise LLMError("Empty response from LLM")

    try:
        data = json.loads(strip_code_fences(raw))
    except (json.JSONDecodeError, ValueError) as e:
        raise LLMError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise LLMError(f"Expected JSON object, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# LLM Client
# ---------------------------------------------------------------------------
class LLMClient:
    """
    Async HTTP client for JSON-mode chat completions.

    Usage:
        client = LLMClient(ProviderConfig.from_settings(settings))
        data = await client.complete_json(system_prompt, user_prompt)
        await client.close()
    """

    def __init__(self, provider: Optional[ProviderConfig] = None) -> None:
        self.provider = provider
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def available(self) -> bool:
        return bool(self.provider and self.provider.api_key)

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            timeout = self.provider.timeout_seconds if self.provider else 60.0
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Send one chat completion request and return the message text.

        Raises
        ------
        LLMError
            If no provider is configured or the request fails.
        """
        if not self.available:
            raise LLMError("No LLM provider configured")

        provider = self.provider
        http = await self._get_http()
        url = f"{provider.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {provider.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": provider.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": provider.temperature,
        }

        try:
            resp = await http.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise LLMError(f"{provider.name} request timed out") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"{provider.name} returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise LLMError(f"{provider.name} request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (IndexError, KeyError, TypeError) as e:
            raise LLMError("Completion response has no message content") from e

        if not isinstance(content, str):
            raise LLMError("Completion message content is not text")
        return content

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        """Run a completion and parse the reply as a JSON object."""
        raw = await self.complete(system_prompt, user_prompt)
        return parse_json_object(raw)
