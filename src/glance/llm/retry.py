"""
Error classification and backoff for the failover chain.

Features:
- Exponential backoff with jitter, capped
- Retryable vs terminal classification of provider errors
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

import httpx

from glance.config.defaults import (
    BACKOFF_BASE_DELAY,
    BACKOFF_JITTER,
    BACKOFF_MAX_DELAY,
    BACKOFF_MULTIPLIER,
    RETRYABLE_STATUS_CODES,
)
from glance.errors import ConfigError, ProviderError

logger = logging.getLogger(__name__)

# Messages that mean "this tier will not work no matter how often we ask"
PERMANENT_ERROR_PATTERNS = {
    "geo_blocked": [
        "user location not supported",
        "not available in your country",
    ],
    "invalid_key": [
        "invalid api key",
        "api key not valid",
        "authentication failed",
        "unauthorized",
    ],
    "quota_exceeded": [
        "quota exceeded",
        "insufficient credits",
        "billing required",
        "out of credits",
    ],
}

TERMINAL_STATUS_CODES = (400, 401, 402, 403, 404)


@dataclass
class BackoffConfig:
    """Delay between failover passes, in seconds."""
    base_delay: float = BACKOFF_BASE_DELAY
    max_delay: float = BACKOFF_MAX_DELAY
    multiplier: float = BACKOFF_MULTIPLIER
    jitter: float = BACKOFF_JITTER  # 20% either way


def calculate_backoff(attempt: int, config: BackoffConfig) -> float:
    """
    Delay before pass ``attempt + 1`` (``attempt`` is zero-based).

    Formula: min(base * multiplier ** attempt, max) +/- jitter, never above
    max and never negative.
    """
    delay = config.base_delay * (config.multiplier ** attempt)
    delay = min(delay, config.max_delay)

    jitter_range = delay * config.jitter
    delay += random.uniform(-jitter_range, jitter_range)

    return max(0.0, min(delay, config.max_delay))


def is_permanent_error(error: BaseException) -> bool:
    message = str(error).lower()
    for category, patterns in PERMANENT_ERROR_PATTERNS.items():
        if any(p in message for p in patterns):
            logger.debug("Permanent error detected: %s - %s", category, error)
            return True
    return False


def is_retryable(error: BaseException) -> bool:
    """
    Decide whether another pass could succeed.

    Timeouts, transport failures, 429 and 5xx are retryable. Credential,
    quota and request errors are terminal.
    """
    if isinstance(error, ConfigError):
        return False
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, httpx.TransportError)):
        return True

    status = getattr(error, "status_code", None)
    if status is None and isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code

    if is_permanent_error(error):
        return False
    if isinstance(error, ProviderError) and status is None:
        return error.retryable
    if status is not None:
        if status in TERMINAL_STATUS_CODES:
            return False
        return status in RETRYABLE_STATUS_CODES or status >= 500

    if isinstance(error, (ConnectionError, OSError)):
        return True

    message = str(error).lower()
    return any(kw in message for kw in ("timeout", "connection", "temporarily", "overloaded"))
