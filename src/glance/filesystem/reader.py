"""Reading directory content for a summary: local files, child artifacts
and the persisted artifact itself.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from glance.config.defaults import (
    ARTIFACT_FILE_MODE,
    ARTIFACT_FILENAME,
    ARTIFACT_FILENAMES,
    BINARY_SNIFF_BYTES,
    DEFAULT_MAX_FILE_BYTES,
    LEGACY_ARTIFACT_FILENAME,
    TRUNCATION_MARKER,
)
from glance.errors import PathValidationError, WriteError
from glance.filesystem.ignore import IgnoreChain, should_ignore_file
from glance.filesystem.paths import validate_file_path
from glance.filesystem.scanner import list_child_dirs

logger = logging.getLogger(__name__)

# Bytes that legitimately appear in text files
_TEXT_CONTROL_BYTES = {0x07, 0x08, 0x09, 0x0A, 0x0C, 0x0D, 0x1B}
_MAX_CONTROL_RATIO = 0.3


@dataclass
class LocalFile:
    name: str
    content: str
    truncated: bool = False


@dataclass
class Artifact:
    """A persisted directory summary."""

    path: Path
    text: str = ""
    exists: bool = False
    mtime_ns: int = 0


def looks_binary(sample: bytes) -> bool:
    """Null bytes, or too many control bytes, mark a sample as binary."""
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    control = sum(1 for b in sample if b < 0x20 and b not in _TEXT_CONTROL_BYTES)
    return control / len(sample) > _MAX_CONTROL_RATIO


def is_text_file(path: Path) -> bool:
    """
    Sniff the first bytes of ``path``.

    Raises:
        OSError: If the file cannot be opened.
    """
    with open(path, "rb") as f:
        sample = f.read(BINARY_SNIFF_BYTES)
    return not looks_binary(sample)


def truncate_content(data: bytes, max_bytes: int) -> tuple[bytes, bool]:
    if len(data) <= max_bytes:
        return data, False
    return data[:max_bytes], True


def read_text_file(path: Path, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> LocalFile:
    """
    Read at most ``max_bytes`` of ``path`` as UTF-8.

    Invalid sequences are replaced. Oversized content is cut and the
    truncation marker appended.
    """
    path = Path(path)
    with open(path, "rb") as f:
        data = f.read(max_bytes + 1)
    data, truncated = truncate_content(data, max_bytes)
    content = data.decode("utf-8", errors="replace")
    if truncated:
        content = f"{content}\n{TRUNCATION_MARKER}"
    return LocalFile(name=path.name, content=content, truncated=truncated)


def gather_local_files(
    directory: Path,
    chain: IgnoreChain,
    max_bytes: int = DEFAULT_MAX_FILE_BYTES,
    log: Optional[logging.Logger] = None,
) -> list[LocalFile]:
    """
    Collect the immediate text files of ``directory``, sorted by name.

    Hidden files, artifacts, ignored files, binary files and paths escaping
    ``directory`` are skipped. Unreadable files are skipped with a warning.

    Raises:
        OSError: If the directory itself cannot be listed.
    """
    log = log or logger
    directory = Path(directory)
    files: list[LocalFile] = []

    with os.scandir(directory) as it:
        entries = sorted((e for e in it if e.is_file()), key=lambda e: e.name)

    for entry in entries:
        path = directory / entry.name
        if entry.name in ARTIFACT_FILENAMES or should_ignore_file(path, chain):
            continue
        try:
            validate_file_path(path, directory)
        except PathValidationError as e:
            log.warning("Skipping %s: %s", path, e)
            continue
        try:
            if not is_text_file(path):
                log.debug("Skipping binary file %s", path)
                continue
            local = read_text_file(path, max_bytes)
        except OSError as e:
            log.warning("Skipping unreadable file %s: %s", path, e)
            continue
        if local.truncated:
            log.debug("Truncated %s to %d bytes", path, max_bytes)
        files.append(local)

    return files


def list_raw_entries(directory: Path) -> list[str]:
    """Every entry name in ``directory`` except our own artifacts."""
    with os.scandir(directory) as it:
        return sorted(e.name for e in it if e.name not in ARTIFACT_FILENAMES)


def find_artifact(directory: Path) -> Artifact:
    """
    Locate the artifact for ``directory``, preferring the current filename
    and falling back to the legacy one. Text is not loaded.
    """
    directory = Path(directory)
    for name in ARTIFACT_FILENAMES:
        path = directory / name
        try:
            st = path.stat()
        except FileNotFoundError:
            continue
        if path.is_file():
            return Artifact(path=path, exists=True, mtime_ns=st.st_mtime_ns)
    return Artifact(path=directory / ARTIFACT_FILENAME)


def read_artifact(directory: Path, log: Optional[logging.Logger] = None) -> Artifact:
    log = log or logger
    artifact = find_artifact(directory)
    if not artifact.exists:
        return artifact
    try:
        artifact.text = artifact.path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        log.warning("Cannot read %s: %s", artifact.path, e)
        return Artifact(path=artifact.path)
    if artifact.path.name == LEGACY_ARTIFACT_FILENAME:
        log.debug("Using legacy artifact %s", artifact.path)
    return artifact


def gather_child_summaries(
    directory: Path,
    chain: IgnoreChain,
    log: Optional[logging.Logger] = None,
) -> str:
    """
    Concatenate the artifacts of the immediate, non-ignored subdirectories.

    Children without an artifact contribute nothing.

    Raises:
        OSError: If ``directory`` cannot be listed.
    """
    log = log or logger
    parts = []
    for child in list_child_dirs(Path(directory), chain):
        artifact = read_artifact(child, log)
        if artifact.exists and artifact.text.strip():
            parts.append(artifact.text.strip())
    return "\n\n".join(parts)


def write_artifact(directory: Path, text: str) -> Path:
    """
    Persist ``text`` as ``directory``'s artifact with owner-only permissions.

    The file is written in place so that the directory entry set, and with it
    the directory mtime, does not change on rewrites.

    Raises:
        WriteError: If the path escapes ``directory`` or the write fails.
    """
    directory = Path(directory)
    try:
        target = validate_file_path(directory / ARTIFACT_FILENAME, directory)
    except PathValidationError as e:
        raise WriteError(directory / ARTIFACT_FILENAME, e) from e

    try:
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, ARTIFACT_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        # O_CREAT's mode only applies to new files
        os.chmod(target, ARTIFACT_FILE_MODE)
    except OSError as e:
        raise WriteError(target, e) from e
    return target
