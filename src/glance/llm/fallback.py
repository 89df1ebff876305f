"""Failover across an ordered list of provider tiers.

The failover chain is the only layer that retries. Each outer pass calls
every usable tier once, in priority order; a failed tier always hands over
to the next one. When a whole pass fails the client backs off and starts
another pass, up to ``max_outer_attempts``.

Tiers that fail with a terminal error (bad credentials, rejected request)
are left out of later passes, and the loop stops early once no usable tier
remains.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from glance.config.defaults import DEFAULT_MAX_OUTER_ATTEMPTS
from glance.errors import ConfigError, GenerationError, ProviderCloseError
from glance.llm.base import Attempt, Tier
from glance.llm.retry import BackoffConfig, calculate_backoff, is_retryable

logger = logging.getLogger(__name__)


class FailoverClient:
    """Single generate/count_tokens/close surface over several tiers."""

    def __init__(
        self,
        tiers: Sequence[Tier],
        max_outer_attempts: int = DEFAULT_MAX_OUTER_ATTEMPTS,
        backoff: Optional[BackoffConfig] = None,
        log: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not tiers:
            raise ConfigError("failover client needs at least one tier")
        if max_outer_attempts < 1:
            raise ConfigError(f"max_outer_attempts must be >= 1, got {max_outer_attempts}")

        normalized = []
        for i, tier in enumerate(tiers):
            if tier.client is None:
                raise ConfigError(f"tier {i} ({tier.name or 'unnamed'}) has no client")
            if not tier.name:
                tier.name = f"tier-{i}"
            normalized.append(tier)

        # sorted() is stable, so equal priorities keep their given order
        self.tiers: list[Tier] = sorted(normalized, key=lambda t: t.priority)
        self.max_outer_attempts = max_outer_attempts
        self.backoff = backoff or BackoffConfig()
        self.log = log or logger
        self._sleep = sleep

        self.last_tier: Optional[str] = None
        self.last_attempts: int = 0
        self.failures: list[Attempt] = []

    @property
    def name(self) -> str:
        return "fallback(" + "->".join(t.name for t in self.tiers) + ")"

    async def _call(self, tier: Tier, call: Callable[[], Awaitable]):
        if tier.timeout:
            async with asyncio.timeout(tier.timeout):
                return await call()
        return await call()

    async def generate(self, prompt: str) -> str:
        """
        Generate text from the first tier that succeeds.

        Returns:
            The generated text. ``last_tier`` names the tier that produced it
            and ``last_attempts`` counts every tier call made.

        Raises:
            GenerationError: When every pass failed; chained from the last
                tier's error.
        """
        self.last_tier = None
        self.last_attempts = 0
        self.failures = []

        terminal: set[int] = set()
        last_error: Optional[BaseException] = None
        calls = 0
        passes = 0

        for attempt in range(1, self.max_outer_attempts + 1):
            passes = attempt
            for index, tier in enumerate(self.tiers):
                if index in terminal:
                    continue
                calls += 1
                try:
                    text = await self._call(tier, lambda: tier.client.generate(prompt))
                except Exception as e:
                    retryable = is_retryable(e)
                    self.failures.append(
                        Attempt(tier_index=index, tier_name=tier.name, error=e, retryable=retryable)
                    )
                    last_error = e
                    if not retryable:
                        terminal.add(index)
                    self.log.warning(
                        "Tier %s failed (pass %d/%d, %s): %s",
                        tier.name,
                        attempt,
                        self.max_outer_attempts,
                        "retryable" if retryable else "terminal",
                        str(e) or type(e).__name__,
                        extra={"tier": tier.name, "attempt": attempt, "retryable": retryable},
                    )
                    continue

                self.last_tier = tier.name
                self.last_attempts = calls
                if calls > 1:
                    self.log.info("Tier %s succeeded after %d calls", tier.name, calls)
                return text

            if len(terminal) == len(self.tiers):
                self.log.error("Every tier failed with a terminal error; giving up")
                break
            if attempt < self.max_outer_attempts:
                delay = calculate_backoff(attempt - 1, self.backoff)
                self.log.debug("All tiers failed on pass %d; retrying in %.2fs", attempt, delay)
                await self._sleep(delay)

        self.last_attempts = calls
        raise GenerationError(
            f"{self.name} failed after {passes} pass(es) and {calls} call(s): {last_error}",
            attempts=calls,
        ) from last_error

    async def count_tokens(self, prompt: str) -> int:
        """Ask each tier in order until one returns a count. No backoff."""
        last_error: Optional[BaseException] = None
        for tier in self.tiers:
            try:
                return await self._call(tier, lambda: tier.client.count_tokens(prompt))
            except Exception as e:
                self.log.debug("Token count failed on %s: %s", tier.name, e)
                last_error = e
        raise GenerationError(f"{self.name}: no tier could count tokens: {last_error}") from last_error

    async def close(self) -> None:
        """
        Close every tier's client, even when some closes fail.

        Raises:
            ProviderCloseError: Listing every close failure.
        """
        errors: list[BaseException] = []
        closed: set[int] = set()
        for tier in self.tiers:
            if id(tier.client) in closed:
                continue
            closed.add(id(tier.client))
            try:
                await tier.client.close()
            except Exception as e:
                self.log.warning("Failed to close tier %s: %s", tier.name, e)
                errors.append(e)
        if errors:
            raise ProviderCloseError(errors)
