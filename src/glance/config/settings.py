"""Runtime settings for Glance.

Settings are assembled once at startup (CLI flags over environment over
defaults) and passed explicitly to every component.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from glance.config import defaults
from glance.errors import ConfigError
from glance.llm.prompt import DEFAULT_PROMPT_TEMPLATE

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class GlanceConfig:
    """Settings for a single run."""

    target_dir: Path = Path(".")
    force: bool = False
    verbose: bool = False
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE

    # Outer failover passes; provider clients never retry on their own.
    max_retries: int = defaults.DEFAULT_MAX_OUTER_ATTEMPTS
    max_file_bytes: int = defaults.DEFAULT_MAX_FILE_BYTES

    gemini_api_key: str = ""
    openrouter_api_key: str = ""
    primary_model: str = defaults.DEFAULT_PRIMARY_MODEL
    stable_model: str = defaults.DEFAULT_STABLE_MODEL
    fallback_model: str = defaults.DEFAULT_FALLBACK_MODEL

    request_timeout: float = defaults.DEFAULT_REQUEST_TIMEOUT
    max_output_tokens: int = defaults.DEFAULT_MAX_OUTPUT_TOKENS
    backoff_base_delay: float = defaults.BACKOFF_BASE_DELAY
    backoff_max_delay: float = defaults.BACKOFF_MAX_DELAY

    @classmethod
    def from_env(cls) -> "GlanceConfig":
        """Create config from environment variables."""
        return cls(
            gemini_api_key=os.environ.get(defaults.GEMINI_API_KEY_ENV, "").strip(),
            openrouter_api_key=os.environ.get(defaults.OPENROUTER_API_KEY_ENV, "").strip(),
            primary_model=os.environ.get("GLANCE_PRIMARY_MODEL") or defaults.DEFAULT_PRIMARY_MODEL,
            stable_model=os.environ.get("GLANCE_STABLE_MODEL") or defaults.DEFAULT_STABLE_MODEL,
            fallback_model=os.environ.get("GLANCE_FALLBACK_MODEL") or defaults.DEFAULT_FALLBACK_MODEL,
            request_timeout=_env_float("GLANCE_REQUEST_TIMEOUT", defaults.DEFAULT_REQUEST_TIMEOUT),
            max_retries=_env_int("GLANCE_MAX_RETRIES", defaults.DEFAULT_MAX_OUTER_ATTEMPTS),
            max_file_bytes=_env_int("GLANCE_MAX_FILE_BYTES", defaults.DEFAULT_MAX_FILE_BYTES),
        )

    def with_target_dir(self, target_dir) -> "GlanceConfig":
        return replace(self, target_dir=Path(target_dir))

    def with_force(self, force: bool) -> "GlanceConfig":
        return replace(self, force=force)

    def with_verbose(self, verbose: bool) -> "GlanceConfig":
        return replace(self, verbose=verbose)

    def with_prompt_template(self, template: str) -> "GlanceConfig":
        return replace(self, prompt_template=template)

    def validate(self) -> "GlanceConfig":
        """
        Check the settings and resolve the target directory.

        Returns:
            A copy whose ``target_dir`` is absolute.

        Raises:
            ConfigError: On a missing target, bad limits or no credentials.
        """
        target = Path(self.target_dir).expanduser().resolve()
        if not target.is_dir():
            raise ConfigError(
                f"target {target} is not a directory",
                suggestion="pass an existing directory as the positional argument",
            )
        if self.max_retries < 1:
            raise ConfigError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.max_file_bytes <= 0:
            raise ConfigError(f"max_file_bytes must be > 0, got {self.max_file_bytes}")
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be > 0, got {self.request_timeout}")
        if not self.gemini_api_key and not self.openrouter_api_key:
            raise ConfigError(
                "no provider credentials configured",
                suggestion=(
                    f"set {defaults.GEMINI_API_KEY_ENV} (and optionally "
                    f"{defaults.OPENROUTER_API_KEY_ENV}) in the environment or .env"
                ),
            )
        return replace(self, target_dir=target)


def load_prompt_template(prompt_file: Optional[str] = None, cwd: Optional[Path] = None) -> str:
    """
    Resolve the prompt template.

    Order: explicit ``prompt_file``, then ``prompt.txt`` in the working
    directory, then the built-in default.

    Raises:
        ConfigError: If an explicit prompt file cannot be read.
    """
    if prompt_file:
        try:
            return Path(prompt_file).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"cannot read prompt file {prompt_file}: {e}") from e

    local = (cwd or Path.cwd()) / defaults.PROMPT_FILENAME
    if local.is_file():
        try:
            logger.debug("Using prompt template from %s", local)
            return local.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Ignoring unreadable %s: %s", local, e)

    return DEFAULT_PROMPT_TEMPLATE
