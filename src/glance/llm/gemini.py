"""
Google Gemini provider for Glance.

Talks to the Generative Language REST API (``generateContent`` and
``countTokens``) through httpx.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from glance.config.defaults import GEMINI_BASE_URL
from glance.errors import ConfigError, ProviderError
from glance.llm.base import ClientOptions
from glance.llm.http import build_async_client, check_response

logger = logging.getLogger(__name__)


def _contents(prompt: str) -> list[dict]:
    return [{"role": "user", "parts": [{"text": prompt}]}]


class GeminiClient:
    """A single Gemini model behind the provider capability."""

    provider = "gemini"

    def __init__(
        self,
        options: ClientOptions,
        *,
        name: Optional[str] = None,
        base_url: str = GEMINI_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not options.api_key:
            raise ConfigError(
                f"Gemini API key missing for model {options.model}",
                suggestion="set GEMINI_API_KEY",
            )
        if not options.model:
            raise ConfigError("Gemini model name must not be empty")
        self.options = options
        self.name = name or f"gemini:{options.model}"
        self._client = build_async_client(
            options,
            base_url,
            headers={"x-goog-api-key": options.api_key},
            transport=transport,
        )

    async def generate(self, prompt: str) -> str:
        """
        Call ``generateContent`` once.

        Raises:
            ProviderError: On HTTP errors or a response with no text.
            httpx.TransportError: On network failures.
        """
        payload = {
            "contents": _contents(prompt),
            "generationConfig": {
                "temperature": self.options.temperature,
                "maxOutputTokens": self.options.max_output_tokens,
            },
        }
        response = await self._client.post(
            f"/models/{self.options.model}:generateContent", json=payload
        )
        data = check_response(response, self.name)

        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise ProviderError(
                    f"{self.name}: prompt blocked ({block_reason})", provider=self.name
                )
            raise ProviderError(f"{self.name}: empty response", provider=self.name, retryable=True)

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts)
        if not text.strip():
            raise ProviderError(
                f"{self.name}: response contained no text", provider=self.name, retryable=True
            )

        usage = data.get("usageMetadata", {})
        logger.debug(
            "%s: %s prompt tokens, %s output tokens",
            self.name,
            usage.get("promptTokenCount", "?"),
            usage.get("candidatesTokenCount", "?"),
        )
        return text

    async def count_tokens(self, prompt: str) -> int:
        response = await self._client.post(
            f"/models/{self.options.model}:countTokens",
            json={"contents": _contents(prompt)},
        )
        data = check_response(response, self.name)
        try:
            return int(data["totalTokens"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(
                f"{self.name}: countTokens returned no total", provider=self.name
            ) from e

    async def close(self) -> None:
        await self._client.aclose()
