"""Deciding which directories need a new summary.

A directory is stale when forced, when it has no artifact, when anything
relevant beneath it changed after the artifact was written, or when one of
its descendants was regenerated earlier in the same run.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from glance.config.defaults import ARTIFACT_FILENAMES
from glance.errors import StalenessCheckError
from glance.filesystem.ignore import (
    IgnoreChain,
    extend_chain,
    load_ignore_rule,
    should_ignore_dir,
    should_ignore_file,
)
from glance.filesystem.reader import find_artifact

logger = logging.getLogger(__name__)

RegenerationSignal = dict[Path, bool]


def latest_mod_time(directory: Path, chain: IgnoreChain) -> int:
    """
    Newest mtime (ns) of ``directory`` and everything relevant below it.

    Directory mtimes count, so added or removed entries are noticed.
    Artifact files are skipped at every level. Hidden, excluded and ignored
    entries are pruned, with nested ``.gitignore`` files applied on the way
    down.

    Raises:
        OSError: On a failed stat or listing.
    """
    directory = Path(directory)
    latest = directory.stat().st_mtime_ns

    stack: list[tuple[Path, IgnoreChain]] = [(directory, chain)]
    while stack:
        current, current_chain = stack.pop()
        with os.scandir(current) as it:
            entries = list(it)
        for entry in entries:
            path = current / entry.name
            if entry.is_dir(follow_symlinks=False):
                if should_ignore_dir(path, current_chain):
                    continue
                latest = max(latest, entry.stat().st_mtime_ns)
                stack.append((path, extend_chain(current_chain, load_ignore_rule(path))))
            elif entry.is_file():
                if entry.name in ARTIFACT_FILENAMES or should_ignore_file(path, current_chain):
                    continue
                latest = max(latest, entry.stat().st_mtime_ns)
    return latest


def propagate(directory: Path, root: Path, regen_signal: RegenerationSignal) -> None:
    """
    Mark every ancestor of ``directory`` up to and including ``root``.

    ``directory`` itself is not marked. Nothing is marked when ``directory``
    is not under ``root``.
    """
    directory = Path(directory)
    root = Path(root)
    if directory == root or not directory.is_relative_to(root):
        return
    for parent in directory.parents:
        regen_signal[parent] = True
        if parent == root:
            break


class StalenessTracker:
    """Per-run staleness decisions plus the bubble-up map."""

    def __init__(self, root: Path, log: Optional[logging.Logger] = None):
        self.root = Path(root)
        self.regen_signal: RegenerationSignal = {}
        self.log = log or logger

    def is_stale(
        self,
        directory: Path,
        chain: IgnoreChain,
        global_force: bool = False,
        regen_signal: Optional[RegenerationSignal] = None,
    ) -> bool:
        """
        Decide whether ``directory`` must be regenerated.

        Args:
            directory: Directory to check.
            chain: Its ignore chain, as produced by the scanner.
            global_force: Regenerate everything.
            regen_signal: Bubble-up map; defaults to the tracker's own.

        Raises:
            StalenessCheckError: If a stat or listing fails. Callers treat
                the directory as stale.
        """
        directory = Path(directory)
        signal = self.regen_signal if regen_signal is None else regen_signal

        if global_force:
            return True
        if signal.get(directory, False):
            self.log.debug("%s marked by a regenerated descendant", directory)
            return True

        try:
            artifact = find_artifact(directory)
            if not artifact.exists:
                return True
            latest = latest_mod_time(directory, chain)
        except OSError as e:
            raise StalenessCheckError(
                f"cannot determine modification time for {directory}: {e}"
            ) from e

        if latest > artifact.mtime_ns:
            self.log.debug("%s changed since %s was written", directory, artifact.path.name)
            return True
        return False

    def propagate(self, directory: Path, regen_signal: Optional[RegenerationSignal] = None) -> None:
        signal = self.regen_signal if regen_signal is None else regen_signal
        propagate(directory, self.root, signal)
