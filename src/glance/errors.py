"""Exception taxonomy for Glance.

Only ScanError (and ConfigError at startup) abort a run. Everything else is
recorded against a single directory and the run continues.
"""

from __future__ import annotations

from typing import Optional, Sequence


class GlanceError(Exception):
    """Base error carrying an optional code and a user-facing suggestion."""

    code: str = "GLANCE"

    def __init__(self, message: str, *, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"[{self.code}] {self.message} (hint: {self.suggestion})"
        return f"[{self.code}] {self.message}"


class ConfigError(GlanceError):
    """Invalid or missing configuration, raised during setup."""

    code = "CFG"


class ScanError(GlanceError):
    """Directory enumeration failed during the scan. Fatal for the run."""

    code = "FS_SCAN"

    def __init__(self, path, cause: Optional[BaseException] = None):
        self.path = path
        super().__init__(
            f"failed to read directory {path}: {cause}",
            suggestion="check that the directory exists and is readable",
        )


class PathValidationError(GlanceError):
    """A candidate path resolves outside its required base directory."""

    code = "VAL_PATH"

    def __init__(self, path, base):
        self.path = path
        self.base = base
        super().__init__(f"path {path} escapes base directory {base}")


class StalenessCheckError(GlanceError):
    """A stat or walk failed while checking staleness. Treated as stale."""

    code = "FS_STAT"


class ProviderError(GlanceError):
    """A single provider call failed."""

    code = "API"

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        status_code: Optional[int] = None,
        retryable: bool = False,
    ):
        self.provider = provider
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class GenerationError(GlanceError):
    """Every tier failed on every outer attempt."""

    code = "API_EXHAUSTED"

    def __init__(self, message: str, *, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class WriteError(GlanceError):
    """Persisting an artifact failed after successful generation."""

    code = "FS_WRITE"

    def __init__(self, path, cause: Optional[BaseException] = None):
        self.path = path
        super().__init__(
            f"failed to write {path}: {cause}",
            suggestion="check disk space and directory permissions",
        )


class ProviderCloseError(GlanceError):
    """One or more tiers failed to close."""

    code = "API_CLOSE"

    def __init__(self, errors: Sequence[BaseException]):
        self.errors = list(errors)
        joined = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} tier(s) failed to close: {joined}")
