"""Provider capability and the records the failover chain works with."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from glance.config.defaults import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TEMPERATURE,
)


@runtime_checkable
class ProviderClient(Protocol):
    """What every tier must offer."""

    name: str

    async def generate(self, prompt: str) -> str: ...

    async def count_tokens(self, prompt: str) -> int: ...

    async def close(self) -> None: ...


@dataclass
class ClientOptions:
    """
    Settings for one provider client.

    ``max_retries`` is always 0 for clients used as failover tiers: the
    failover chain is the single retry owner, and retries at any other layer
    multiply the worst-case number of calls.
    """

    model: str
    api_key: str
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    max_retries: int = 0


@dataclass
class Tier:
    """One provider/model entry in the failover order."""

    name: str
    client: ProviderClient
    priority: int = 0
    timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT


@dataclass
class Attempt:
    """A single failed tier call. Kept only for logging and decisions."""

    tier_index: int
    tier_name: str
    error: BaseException
    retryable: bool
    timestamp: float = field(default_factory=time.time)
