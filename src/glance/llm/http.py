"""Shared httpx plumbing for the REST providers."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from glance.config.defaults import RETRYABLE_STATUS_CODES
from glance.errors import ProviderError
from glance.llm.base import ClientOptions

# Keep error bodies short in logs
_MAX_ERROR_BODY = 500


def build_async_client(
    options: ClientOptions,
    base_url: str,
    headers: dict[str, str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    One AsyncClient per provider, owned by it and closed through it.

    Passing ``transport`` lets tests swap in ``httpx.MockTransport``.
    """
    kwargs: dict[str, Any] = {
        "base_url": base_url,
        "headers": headers,
        "timeout": httpx.Timeout(options.timeout, connect=options.connect_timeout),
    }
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.AsyncClient(**kwargs)


def check_response(response: httpx.Response, provider: str) -> dict:
    """
    Turn a non-200 response into a ProviderError and decode the JSON body.

    Raises:
        ProviderError: With ``status_code`` set and ``retryable`` true for
            429 and 5xx.
    """
    status = response.status_code
    if status == 401:
        raise ProviderError(f"{provider}: invalid API key (401)", provider=provider, status_code=401)
    if status == 403:
        raise ProviderError(f"{provider}: access denied (403)", provider=provider, status_code=403)
    if status == 429:
        raise ProviderError(
            f"{provider}: rate limit exceeded (429)",
            provider=provider,
            status_code=429,
            retryable=True,
        )
    if status != 200:
        body = response.text[:_MAX_ERROR_BODY]
        raise ProviderError(
            f"{provider}: API error {status}: {body}",
            provider=provider,
            status_code=status,
            retryable=status in RETRYABLE_STATUS_CODES or status >= 500,
        )
    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(
            f"{provider}: malformed JSON response: {e}",
            provider=provider,
            retryable=True,
        ) from e
