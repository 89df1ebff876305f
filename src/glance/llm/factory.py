"""Build the failover chain from settings.

Tier order: primary Gemini model, stable Gemini model, then OpenRouter as
the cross-provider fallback. Gemini tiers need ``GEMINI_API_KEY``; the
OpenRouter tier is added only when ``OPENROUTER_API_KEY`` is set. Missing
credentials fail here, before any call is attempted.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from glance.config.settings import GlanceConfig
from glance.errors import ConfigError
from glance.llm.base import ClientOptions, Tier
from glance.llm.fallback import FailoverClient
from glance.llm.gemini import GeminiClient
from glance.llm.openrouter import OpenRouterClient
from glance.llm.retry import BackoffConfig

logger = logging.getLogger(__name__)


def _options(config: GlanceConfig, model: str, api_key: str) -> ClientOptions:
    return ClientOptions(
        model=model,
        api_key=api_key,
        max_output_tokens=config.max_output_tokens,
        timeout=config.request_timeout,
        max_retries=0,
    )


def build_tiers(
    config: GlanceConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[Tier]:
    """
    Create one client per tier.

    Raises:
        ConfigError: If no tier can be built from the available credentials.
    """
    tiers: list[Tier] = []

    if config.gemini_api_key:
        models = [config.primary_model]
        if config.stable_model and config.stable_model != config.primary_model:
            models.append(config.stable_model)
        for model in models:
            client = GeminiClient(
                _options(config, model, config.gemini_api_key),
                transport=transport,
            )
            tiers.append(
                Tier(name=client.name, client=client, priority=len(tiers), timeout=config.request_timeout)
            )
    else:
        logger.warning("GEMINI_API_KEY not set; Gemini tiers disabled")

    if config.openrouter_api_key:
        client = OpenRouterClient(
            _options(config, config.fallback_model, config.openrouter_api_key),
            transport=transport,
        )
        tiers.append(
            Tier(name=client.name, client=client, priority=len(tiers), timeout=config.request_timeout)
        )
    else:
        logger.debug("OPENROUTER_API_KEY not set; OpenRouter tier disabled")

    if not tiers:
        raise ConfigError(
            "no provider tiers could be configured",
            suggestion="set GEMINI_API_KEY and/or OPENROUTER_API_KEY",
        )
    return tiers


def build_failover_client(
    config: GlanceConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    log: Optional[logging.Logger] = None,
) -> FailoverClient:
    tiers = build_tiers(config, transport=transport)
    client = FailoverClient(
        tiers,
        max_outer_attempts=config.max_retries,
        backoff=BackoffConfig(
            base_delay=config.backoff_base_delay,
            max_delay=config.backoff_max_delay,
        ),
        log=log,
    )
    (log or logger).debug("Using %s", client.name)
    return client
