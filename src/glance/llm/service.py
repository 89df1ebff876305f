"""Prompt rendering plus the failover call for one directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from glance.errors import GenerationError
from glance.llm.fallback import FailoverClient
from glance.llm.prompt import DEFAULT_PROMPT_TEMPLATE, render_prompt

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    text: str
    attempts: int
    provider: Optional[str]


class Generator:
    """Turns gathered directory content into summary text."""

    def __init__(
        self,
        client: FailoverClient,
        template: str = DEFAULT_PROMPT_TEMPLATE,
        log: Optional[logging.Logger] = None,
        count_tokens: bool = False,
    ):
        self.client = client
        self.template = template
        self.log = log or logger
        self.count_tokens = count_tokens

    def render(self, directory: str, sub_glances: str, file_contents: str) -> str:
        return render_prompt(self.template, directory, sub_glances, file_contents)

    async def generate(self, directory: str, sub_glances: str, file_contents: str) -> GenerationResult:
        """
        Render the prompt and call the failover client.

        ``directory`` should already be relative to the scan root.

        Raises:
            GenerationError: When every tier failed.
        """
        prompt = self.render(directory, sub_glances, file_contents)

        if self.count_tokens:
            try:
                tokens = await self.client.count_tokens(prompt)
                self.log.debug("Prompt for %s: ~%d tokens", directory, tokens)
            except GenerationError as e:
                self.log.debug("Token count unavailable for %s: %s", directory, e)

        text = await self.client.generate(prompt)
        return GenerationResult(
            text=text,
            attempts=self.client.last_attempts,
            provider=self.client.last_tier,
        )

    async def close(self) -> None:
        await self.client.close()
