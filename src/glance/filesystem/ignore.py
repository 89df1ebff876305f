"""Gitignore rules and inherited ignore chains.

A rule is a compiled ``.gitignore`` plus the directory that declared it, and
is only consulted for paths beneath that directory. A chain is the tuple of
rules from the scan root down to a directory. Chains are immutable values:
extending one always produces a new tuple, so sibling branches never see
each other's rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pathspec

from glance.config.defaults import EXCLUDED_DIR_NAMES, IGNORE_FILENAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRule:
    """Patterns from one ignore file, anchored at ``origin_dir``."""

    origin_dir: Path
    spec: pathspec.PathSpec = field(compare=False)
    source: Optional[Path] = None

    @classmethod
    def from_lines(cls, origin_dir: Path, lines, source: Optional[Path] = None) -> "IgnoreRule":
        spec = pathspec.PathSpec.from_lines("gitwildmatch", lines)
        return cls(origin_dir=Path(origin_dir), spec=spec, source=source)

    def decide(self, path: Path, is_dir: bool = False) -> Optional[bool]:
        """
        Evaluate this rule for ``path``.

        Returns:
            True if the last matching pattern excludes the path, False if it
            re-includes it (``!pattern``), None if no pattern matched or the
            path is outside ``origin_dir``.
        """
        try:
            rel = Path(path).relative_to(self.origin_dir)
        except ValueError:
            return None
        rel_str = rel.as_posix()
        if rel_str in ("", "."):
            return None

        # "build/" only matches directories, which the pattern sees as "build/"
        candidates = (rel_str, rel_str + "/") if is_dir else (rel_str,)

        decision: Optional[bool] = None
        for pattern in self.spec.patterns:
            if pattern.include is None:
                continue
            if any(pattern.match_file(c) is not None for c in candidates):
                decision = pattern.include
        return decision


IgnoreChain = tuple[IgnoreRule, ...]

EMPTY_CHAIN: IgnoreChain = ()


def load_ignore_rule(directory: Path) -> Optional[IgnoreRule]:
    """
    Load ``directory/.gitignore`` if present.

    An unreadable ignore file is logged and treated as absent.
    """
    ignore_file = Path(directory) / IGNORE_FILENAME
    if not ignore_file.is_file():
        return None
    try:
        lines = ignore_file.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as e:
        logger.debug("Skipping unreadable ignore file %s: %s", ignore_file, e)
        return None
    try:
        return IgnoreRule.from_lines(Path(directory), lines, source=ignore_file)
    except (ValueError, TypeError) as e:
        logger.debug("Skipping malformed ignore file %s: %s", ignore_file, e)
        return None


def extend_chain(chain: IgnoreChain, rule: Optional[IgnoreRule]) -> IgnoreChain:
    """Return a new chain with ``rule`` appended; ``chain`` is left untouched."""
    if rule is None:
        return tuple(chain)
    return (*chain, rule)


def is_ignored(path: Path, chain: IgnoreChain, is_dir: bool = False) -> bool:
    """
    Check ``path`` against the chain.

    Rules are evaluated root to leaf; the last rule that has an opinion on the
    path wins, so a deeper ``!pattern`` can re-include what a shallower rule
    excluded.
    """
    ignored = False
    for rule in chain:
        decision = rule.decide(path, is_dir=is_dir)
        if decision is not None:
            ignored = decision
    return ignored


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def should_skip_dir_name(name: str) -> bool:
    """Hidden and conventionally excluded directories are never descended."""
    return is_hidden(name) or name in EXCLUDED_DIR_NAMES


def should_ignore_dir(path: Path, chain: IgnoreChain) -> bool:
    path = Path(path)
    return should_skip_dir_name(path.name) or is_ignored(path, chain, is_dir=True)


def should_ignore_file(path: Path, chain: IgnoreChain) -> bool:
    path = Path(path)
    return is_hidden(path.name) or is_ignored(path, chain, is_dir=False)
