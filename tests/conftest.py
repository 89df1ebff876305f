"""Pytest configuration for glance tests."""
import os
import sys
import time
from pathlib import Path

import pytest

# Add src to path for the tests - conftest is in tests/, so parent.parent is project root
project_root = Path(__file__).resolve().parent.parent
src_path = project_root / "src"

# Insert at the very beginning to override any other paths
sys.path.insert(0, str(src_path))


def _write_tree(root: Path, layout: dict) -> None:
    for name, value in layout.items():
        path = root / name
        if isinstance(value, dict):
            path.mkdir(parents=True, exist_ok=True)
            _write_tree(path, value)
        elif isinstance(value, bytes):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(value)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(value, encoding="utf-8")


@pytest.fixture
def make_tree(tmp_path):
    """Build a directory tree from a nested dict: dict = dir, str/bytes = file."""

    def _make(layout: dict) -> Path:
        root = tmp_path / "project"
        root.mkdir(exist_ok=True)
        _write_tree(root, layout)
        return root.resolve()

    return _make


@pytest.fixture
def age_tree():
    """Set every mtime under a root (root included) to the same past instant."""

    def _age(root: Path, seconds: float = 1000.0) -> float:
        stamp = time.time() - seconds
        for dirpath, dirnames, filenames in os.walk(root):
            for name in filenames:
                os.utime(os.path.join(dirpath, name), (stamp, stamp))
            for name in dirnames:
                os.utime(os.path.join(dirpath, name), (stamp, stamp))
        os.utime(root, (stamp, stamp))
        return stamp

    return _age
