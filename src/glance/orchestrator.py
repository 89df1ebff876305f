"""Drives a run: scan, then summarize directories from the leaves up.

A directory's prompt includes its children's artifacts, so directories are
processed in reverse BFS order and strictly one at a time. Per-directory
failures are recorded and the run moves on; only a scan failure aborts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from glance.config.defaults import EMPTY_DIRECTORY_STUB, FILTERED_DIRECTORY_STUB
from glance.config.settings import GlanceConfig
from glance.errors import GenerationError, StalenessCheckError, WriteError
from glance.filesystem.ignore import IgnoreChain
from glance.filesystem.reader import (
    gather_child_summaries,
    gather_local_files,
    list_raw_entries,
    write_artifact,
)
from glance.filesystem.scanner import ScanResult, scan
from glance.filesystem.staleness import StalenessTracker
from glance.llm.prompt import format_file_contents
from glance.llm.service import Generator

logger = logging.getLogger(__name__)


@dataclass
class DirectoryResult:
    """Outcome for one directory."""

    directory: Path
    attempts: int = 0
    success: bool = False
    error: Optional[BaseException] = None
    regenerated: bool = False
    provider: Optional[str] = None
    stub: bool = False


@dataclass
class RunReport:
    root: Path
    results: list[DirectoryResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def regenerated(self) -> int:
        return sum(1 for r in self.results if r.regenerated)

    def failures(self) -> list[DirectoryResult]:
        return [r for r in self.results if not r.success]

    def get(self, directory: Path) -> Optional[DirectoryResult]:
        directory = Path(directory)
        for r in self.results:
            if r.directory == directory:
                return r
        return None


ProgressCallback = Callable[[int, int, DirectoryResult], None]


class Orchestrator:
    """Sequences scanner, staleness tracker and generator for one tree."""

    def __init__(
        self,
        config: GlanceConfig,
        generator: Generator,
        log: Optional[logging.Logger] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.generator = generator
        self.log = log or logger
        self.on_progress = on_progress
        self.root = Path(config.target_dir).resolve()
        self.tracker = StalenessTracker(self.root, log=self.log)

    def display_name(self, directory: Path) -> str:
        """``directory`` relative to the scan root, ``.`` for the root."""
        try:
            rel = Path(directory).relative_to(self.root)
        except ValueError:
            return Path(directory).name
        return rel.as_posix() if rel.parts else "."

    async def process_directory(
        self, directory: Path, chain: IgnoreChain, force_dir: bool
    ) -> DirectoryResult:
        """
        Summarize one directory if it needs it.

        Never raises for per-directory problems; they end up in the result.
        """
        directory = Path(directory)
        result = DirectoryResult(directory=directory)
        name = self.display_name(directory)

        if not force_dir and not self.config.force:
            self.log.debug("%s is up to date", name)
            result.success = True
            return result

        try:
            sub_glances = gather_child_summaries(directory, chain, self.log)
            files = gather_local_files(directory, chain, self.config.max_file_bytes, self.log)
        except OSError as e:
            self.log.error("Cannot read %s: %s", name, e)
            result.error = e
            return result

        if not files and not sub_glances.strip():
            try:
                raw_entries = list_raw_entries(directory)
            except OSError as e:
                self.log.error("Cannot list %s: %s", name, e)
                result.error = e
                return result
            text = FILTERED_DIRECTORY_STUB if raw_entries else EMPTY_DIRECTORY_STUB
            result.stub = True
            self.log.debug("%s has no analyzable content; writing stub", name)
        else:
            try:
                generated = await self.generator.generate(
                    name,
                    sub_glances,
                    format_file_contents((f.name, f.content) for f in files),
                )
            except GenerationError as e:
                self.log.error("Generation failed for %s: %s", name, e)
                result.attempts = e.attempts
                result.error = e
                return result
            text = generated.text
            result.attempts = generated.attempts
            result.provider = generated.provider

        try:
            write_artifact(directory, text)
        except WriteError as e:
            self.log.error("%s", e)
            result.error = e
            return result

        result.success = True
        result.regenerated = True
        if force_dir:
            self.tracker.propagate(directory)
        return result

    def scan(self) -> ScanResult:
        """
        Raises:
            ScanError: If the tree cannot be scanned.
        """
        return scan(self.root, log=self.log)

    async def run(self) -> RunReport:
        """
        Scan and process the whole tree.

        Raises:
            ScanError: If the tree cannot be scanned.
        """
        return await self.process(self.scan())

    async def process(self, scan_result: ScanResult) -> RunReport:
        """Process scanned directories deepest first with a fresh bubble-up map."""
        self.tracker = StalenessTracker(self.root, log=self.log)
        report = RunReport(root=self.root)

        ordered = list(reversed(scan_result.directories))
        total = len(ordered)
        for processed, directory in enumerate(ordered, start=1):
            chain = scan_result.chains[directory]
            try:
                force_dir = self.tracker.is_stale(directory, chain, self.config.force)
            except StalenessCheckError as e:
                self.log.warning("%s; regenerating %s anyway", e, self.display_name(directory))
                force_dir = True

            result = await self.process_directory(directory, chain, force_dir)
            report.results.append(result)
            if self.on_progress is not None:
                self.on_progress(processed, total, result)

        self.log.info(
            "Processed %d directories: %d succeeded, %d failed, %d regenerated",
            report.total,
            report.succeeded,
            report.failed,
            report.regenerated,
        )
        return report


async def run(
    config: GlanceConfig,
    generator: Generator,
    on_progress: Optional[ProgressCallback] = None,
    log: Optional[logging.Logger] = None,
) -> RunReport:
    return await Orchestrator(config, generator, log=log, on_progress=on_progress).run()
