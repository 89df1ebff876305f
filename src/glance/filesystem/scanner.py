"""Breadth-first directory scanner.

Produces the ordered list of directories to summarize and, for each one, the
ignore chain inherited from its ancestors plus its own ``.gitignore``.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from glance.errors import ScanError
from glance.filesystem.ignore import (
    EMPTY_CHAIN,
    IgnoreChain,
    extend_chain,
    load_ignore_rule,
    should_ignore_dir,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryRecord:
    path: Path
    chain: IgnoreChain


@dataclass
class ScanResult:
    """Directories in BFS order plus the chain for each of them."""

    root: Path
    directories: list[Path] = field(default_factory=list)
    chains: dict[Path, IgnoreChain] = field(default_factory=dict)

    @property
    def records(self) -> list[DirectoryRecord]:
        return [DirectoryRecord(d, self.chains[d]) for d in self.directories]

    def __len__(self) -> int:
        return len(self.directories)


def list_child_dirs(directory: Path, chain: IgnoreChain) -> list[Path]:
    """
    Immediate subdirectories of ``directory`` that are not hidden, excluded
    or ignored by ``chain``, sorted by name. Symlinked directories are not
    followed.

    Raises:
        OSError: If the directory cannot be enumerated.
    """
    children = []
    with os.scandir(directory) as it:
        for entry in it:
            if not entry.is_dir(follow_symlinks=False):
                continue
            child = Path(directory) / entry.name
            if should_ignore_dir(child, chain):
                continue
            children.append(child)
    children.sort(key=lambda p: p.name)
    return children


def scan(root: Path, log: Optional[logging.Logger] = None) -> ScanResult:
    """
    Walk ``root`` breadth-first.

    Args:
        root: Directory to scan. Resolved to an absolute path.
        log: Optional logger; defaults to this module's logger.

    Returns:
        ScanResult with ``root`` first and deeper directories later.

    Raises:
        ScanError: If any directory cannot be enumerated. No partial result
            is returned.
    """
    log = log or logger
    root = Path(root).resolve()
    result = ScanResult(root=root)

    queue: deque[tuple[Path, IgnoreChain]] = deque([(root, EMPTY_CHAIN)])
    while queue:
        current, inherited = queue.popleft()

        combined = extend_chain(inherited, load_ignore_rule(current))
        result.chains[current] = combined
        result.directories.append(current)

        try:
            children = list_child_dirs(current, combined)
        except OSError as e:
            raise ScanError(current, e) from e

        for child in children:
            queue.append((child, combined))

    log.debug("Scanned %d directories under %s", len(result.directories), root)
    return result
