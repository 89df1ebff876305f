"""
OpenRouter provider for Glance.

OpenAI-compatible chat completions; used as the cross-provider tier.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from glance.config.defaults import OPENROUTER_BASE_URL
from glance.errors import ConfigError, ProviderError
from glance.llm.base import ClientOptions
from glance.llm.http import build_async_client, check_response
from glance.llm.prompt import estimate_tokens

logger = logging.getLogger(__name__)


class OpenRouterClient:
    """A single OpenRouter model behind the provider capability."""

    provider = "openrouter"

    def __init__(
        self,
        options: ClientOptions,
        *,
        name: Optional[str] = None,
        base_url: str = OPENROUTER_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not options.api_key:
            raise ConfigError(
                f"OpenRouter API key missing for model {options.model}",
                suggestion="set OPENROUTER_API_KEY",
            )
        self.options = options
        self.name = name or f"openrouter:{options.model}"
        self._client = build_async_client(
            options,
            base_url,
            headers={
                "Authorization": f"Bearer {options.api_key}",
                "X-Title": "glance",
            },
            transport=transport,
        )

    async def generate(self, prompt: str) -> str:
        payload = {
            "model": self.options.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.options.max_output_tokens,
            "temperature": self.options.temperature,
        }
        response = await self._client.post("/chat/completions", json=payload)
        data = check_response(response, self.name)

        if data.get("error"):
            err = data["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            code = err.get("code") if isinstance(err, dict) else None
            raise ProviderError(
                f"{self.name}: {message}",
                provider=self.name,
                status_code=code if isinstance(code, int) else None,
                retryable=not isinstance(code, int) or code >= 500 or code == 429,
            )

        choices = data.get("choices") or []
        if not choices:
            raise ProviderError(f"{self.name}: empty response", provider=self.name, retryable=True)
        text = (choices[0].get("message") or {}).get("content") or ""
        if not text.strip():
            raise ProviderError(
                f"{self.name}: response contained no text", provider=self.name, retryable=True
            )

        usage = data.get("usage", {})
        logger.debug(
            "%s: %s prompt tokens, %s output tokens",
            self.name,
            usage.get("prompt_tokens", "?"),
            usage.get("completion_tokens", "?"),
        )
        return text

    async def count_tokens(self, prompt: str) -> int:
        # No counting endpoint; character-based estimate
        return estimate_tokens(prompt)

    async def close(self) -> None:
        await self._client.aclose()
