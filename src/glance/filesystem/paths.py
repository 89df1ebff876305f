"""Path confinement checks for every read and write under a directory."""

from __future__ import annotations

from pathlib import Path

from glance.errors import PathValidationError


def validate_path_within_base(path, base) -> Path:
    """
    Ensure ``path`` stays inside ``base`` once both are resolved.

    Relative paths are taken relative to ``base``.

    Returns:
        The resolved path.

    Raises:
        PathValidationError: If the resolved path escapes ``base``.
    """
    base_resolved = Path(base).resolve()
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = base_resolved / candidate
    resolved = candidate.resolve()
    if resolved != base_resolved and not resolved.is_relative_to(base_resolved):
        raise PathValidationError(path, base)
    return resolved


def validate_file_path(path, base) -> Path:
    """Like validate_path_within_base, but the result may not be ``base`` itself."""
    resolved = validate_path_within_base(path, base)
    if resolved == Path(base).resolve():
        raise PathValidationError(path, base)
    return resolved
