"""Tests for glance.orchestrator."""

import os
import stat
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from glance.config.defaults import (
    ARTIFACT_FILENAME,
    EMPTY_DIRECTORY_STUB,
    FILTERED_DIRECTORY_STUB,
    LEGACY_ARTIFACT_FILENAME,
)
from glance.config.settings import GlanceConfig
from glance.errors import GenerationError, ProviderError, ScanError, StalenessCheckError, WriteError
from glance.filesystem.reader import write_artifact as real_write
from glance.llm.base import Tier
from glance.llm.fallback import FailoverClient
from glance.llm.service import GenerationResult, Generator
from glance.orchestrator import Orchestrator, RunReport, run


def _fake_generator():
    generator = MagicMock()

    async def generate(directory, sub_glances, file_contents):
        return GenerationResult(text=f"summary of {directory}\n", attempts=1, provider="fake")

    generator.generate = AsyncMock(side_effect=generate)
    return generator


def _artifact_mtime(directory):
    return (directory / ARTIFACT_FILENAME).stat().st_mtime_ns


def _regenerated(report: RunReport):
    return {r.directory for r in report.results if r.regenerated}


@pytest.fixture
def sample_tree(make_tree):
    return make_tree({
        "a": {
            "b": {"file.txt": "leaf content"},
            "d": {"notes.md": "untouched"},
        },
        "c": {"other.txt": "sibling"},
        "README.md": "# root",
    })


class TestRun:
    """End-to-end runs with a fake generator."""

    @pytest.mark.asyncio
    async def test_first_run_writes_every_artifact(self, sample_tree):
        root = sample_tree
        generator = _fake_generator()

        report = await run(GlanceConfig(target_dir=root), generator)

        dirs = [root, root / "a", root / "a" / "b", root / "a" / "d", root / "c"]
        assert report.total == 5
        assert report.failed == 0
        assert _regenerated(report) == set(dirs)
        for d in dirs:
            artifact = d / ARTIFACT_FILENAME
            assert artifact.is_file()
            assert stat.S_IMODE(artifact.stat().st_mode) == 0o600

    @pytest.mark.asyncio
    async def test_leaves_processed_before_parents(self, sample_tree):
        root = sample_tree

        report = await run(GlanceConfig(target_dir=root), _fake_generator())

        order = [r.directory for r in report.results]
        assert order[-1] == root
        assert order.index(root / "a" / "b") < order.index(root / "a")
        assert order.index(root / "a" / "d") < order.index(root / "a")

    @pytest.mark.asyncio
    async def test_parent_prompt_contains_child_summaries(self, sample_tree):
        root = sample_tree
        generator = _fake_generator()

        await run(GlanceConfig(target_dir=root), generator)

        calls = {c.args[0]: c.args for c in generator.generate.await_args_list}
        assert "summary of a/b" in calls["a"][1]
        assert "summary of a/d" in calls["a"][1]
        assert "=== file: README.md ===" in calls["."][2]

    @pytest.mark.asyncio
    async def test_prompt_paths_are_relative(self, sample_tree):
        root = sample_tree
        generator = _fake_generator()

        await run(GlanceConfig(target_dir=root), generator)

        names = {c.args[0] for c in generator.generate.await_args_list}
        assert names == {".", "a", "a/b", "a/d", "c"}
        assert not any(str(root) in n for n in names)

    @pytest.mark.asyncio
    async def test_idempotent_second_run(self, sample_tree, age_tree):
        """No changes and no force: nothing regenerates, no timestamps move."""
        root = sample_tree
        await run(GlanceConfig(target_dir=root), _fake_generator())
        age_tree(root)
        before = {d: _artifact_mtime(d) for d in (root, root / "a", root / "a" / "b", root / "c")}
        generator = _fake_generator()

        report = await run(GlanceConfig(target_dir=root), generator)

        assert report.regenerated == 0
        assert all(r.success and r.attempts == 0 for r in report.results)
        generator.generate.assert_not_awaited()
        assert {d: _artifact_mtime(d) for d in before} == before

    @pytest.mark.asyncio
    async def test_leaf_change_bubbles_to_root(self, sample_tree, age_tree):
        """Touching a/b/file.txt regenerates b, a and root, but not c or a/d."""
        root = sample_tree
        await run(GlanceConfig(target_dir=root), _fake_generator())
        age_tree(root)
        untouched = {d: _artifact_mtime(d) for d in (root / "c", root / "a" / "d")}
        now = time.time()
        os.utime(root / "a" / "b" / "file.txt", (now, now))

        report = await run(GlanceConfig(target_dir=root), _fake_generator())

        assert _regenerated(report) == {root / "a" / "b", root / "a", root}
        assert {d: _artifact_mtime(d) for d in untouched} == untouched
        for d in untouched:
            result = report.get(d)
            assert result.success is True
            assert result.attempts == 0

    @pytest.mark.asyncio
    async def test_global_force_regenerates_everything(self, sample_tree, age_tree):
        root = sample_tree
        await run(GlanceConfig(target_dir=root), _fake_generator())
        age_tree(root)

        report = await run(GlanceConfig(target_dir=root, force=True), _fake_generator())

        assert report.regenerated == 5

    @pytest.mark.asyncio
    async def test_legacy_artifact_counts_as_present(self, make_tree, age_tree):
        root = make_tree({"f.txt": "x", LEGACY_ARTIFACT_FILENAME: "old summary"})
        age_tree(root)
        generator = _fake_generator()

        report = await run(GlanceConfig(target_dir=root), generator)

        assert report.regenerated == 0
        generator.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generation_failure_is_isolated(self, sample_tree):
        root = sample_tree
        generator = _fake_generator()
        original = generator.generate.side_effect

        async def flaky(directory, sub_glances, file_contents):
            if directory == "c":
                raise GenerationError("all tiers failed", attempts=6)
            return await original(directory, sub_glances, file_contents)

        generator.generate.side_effect = flaky

        report = await run(GlanceConfig(target_dir=root), generator)

        failed = report.failures()
        assert [r.directory for r in failed] == [root / "c"]
        assert failed[0].attempts == 6
        assert isinstance(failed[0].error, GenerationError)
        assert not (root / "c" / ARTIFACT_FILENAME).exists()
        assert (root / ARTIFACT_FILENAME).exists()
        assert report.succeeded == 4

    @pytest.mark.asyncio
    async def test_write_failure_is_isolated(self, sample_tree):
        root = sample_tree

        def failing_write(directory, text):
            if directory == root / "c":
                raise WriteError(directory / ARTIFACT_FILENAME, OSError("disk full"))
            return real_write(directory, text)

        with patch("glance.orchestrator.write_artifact", side_effect=failing_write):
            report = await run(GlanceConfig(target_dir=root), _fake_generator())

        failed = report.failures()
        assert [r.directory for r in failed] == [root / "c"]
        assert isinstance(failed[0].error, WriteError)
        assert failed[0].attempts == 1

    @pytest.mark.asyncio
    async def test_staleness_error_treated_as_stale(self, make_tree, age_tree):
        root = make_tree({"f.txt": "x", ARTIFACT_FILENAME: "s"})
        age_tree(root)
        generator = _fake_generator()

        with patch(
            "glance.orchestrator.StalenessTracker.is_stale",
            side_effect=StalenessCheckError("stat failed"),
        ):
            report = await run(GlanceConfig(target_dir=root), generator)

        assert report.regenerated == 1
        generator.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_scan_error_aborts(self, make_tree):
        root = make_tree({"a": {}})

        with patch("glance.orchestrator.scan", side_effect=ScanError(root, OSError("denied"))):
            with pytest.raises(ScanError):
                await run(GlanceConfig(target_dir=root), _fake_generator())

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, sample_tree):
        seen = []

        await run(
            GlanceConfig(target_dir=sample_tree),
            _fake_generator(),
            on_progress=lambda processed, total, result: seen.append((processed, total)),
        )

        assert [p for p, _ in seen] == [1, 2, 3, 4, 5]
        assert {t for _, t in seen} == {5}


class TestProcessDirectory:
    """Tests for the per-directory contract."""

    @pytest.mark.asyncio
    async def test_cache_hit(self, make_tree):
        root = make_tree({"f.txt": "x"})
        generator = _fake_generator()
        orchestrator = Orchestrator(GlanceConfig(target_dir=root), generator)

        result = await orchestrator.process_directory(root, (), force_dir=False)

        assert result.success is True
        assert result.attempts == 0
        assert result.regenerated is False
        generator.generate.assert_not_awaited()
        assert orchestrator.tracker.regen_signal == {}

    @pytest.mark.asyncio
    async def test_success_propagates_to_ancestors(self, make_tree):
        root = make_tree({"a": {"b": {"f.txt": "x"}}})
        orchestrator = Orchestrator(GlanceConfig(target_dir=root), _fake_generator())

        result = await orchestrator.process_directory(root / "a" / "b", (), force_dir=True)

        assert result.success is True
        assert orchestrator.tracker.regen_signal == {root / "a": True, root: True}

    @pytest.mark.asyncio
    async def test_failure_does_not_propagate(self, make_tree):
        root = make_tree({"a": {"f.txt": "x"}})
        generator = _fake_generator()
        generator.generate.side_effect = GenerationError("down", attempts=3)
        orchestrator = Orchestrator(GlanceConfig(target_dir=root), generator)

        result = await orchestrator.process_directory(root / "a", (), force_dir=True)

        assert result.success is False
        assert orchestrator.tracker.regen_signal == {}

    @pytest.mark.asyncio
    async def test_hidden_only_directory_never_calls_generator(self, make_tree):
        """Only a hidden file plus a child with an empty summary: stub, no call."""
        root = make_tree({
            "parent": {".hidden": "secret", "sub": {ARTIFACT_FILENAME: ""}},
            "empty": {},
        })
        generator = _fake_generator()
        orchestrator = Orchestrator(GlanceConfig(target_dir=root), generator)

        filtered = await orchestrator.process_directory(root / "parent", (), force_dir=True)
        empty = await orchestrator.process_directory(root / "empty", (), force_dir=True)

        generator.generate.assert_not_awaited()
        assert filtered.stub is True and empty.stub is True
        filtered_text = (root / "parent" / ARTIFACT_FILENAME).read_text()
        empty_text = (root / "empty" / ARTIFACT_FILENAME).read_text()
        assert filtered_text == FILTERED_DIRECTORY_STUB
        assert empty_text == EMPTY_DIRECTORY_STUB
        assert filtered_text != empty_text

    @pytest.mark.asyncio
    async def test_empty_directory_stub_survives_rerun(self, make_tree):
        """The directory's own artifact does not turn it into a 'filtered' one."""
        root = make_tree({"empty": {}})
        orchestrator = Orchestrator(GlanceConfig(target_dir=root), _fake_generator())

        await orchestrator.process_directory(root / "empty", (), force_dir=True)
        await orchestrator.process_directory(root / "empty", (), force_dir=True)

        assert (root / "empty" / ARTIFACT_FILENAME).read_text() == EMPTY_DIRECTORY_STUB

    @pytest.mark.asyncio
    async def test_binary_only_directory_gets_filtered_stub(self, make_tree):
        root = make_tree({"bin": {"blob.dat": b"\x00\x01\x02"}})
        generator = _fake_generator()
        orchestrator = Orchestrator(GlanceConfig(target_dir=root), generator)

        result = await orchestrator.process_directory(root / "bin", (), force_dir=True)

        assert result.stub is True
        generator.generate.assert_not_awaited()
        assert (root / "bin" / ARTIFACT_FILENAME).read_text() == FILTERED_DIRECTORY_STUB


class ScriptedTier:
    def __init__(self, name, outcome, calls):
        self.name = name
        self.outcome = outcome
        self.calls = calls

    async def generate(self, prompt):
        self.calls.append(self.name)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def count_tokens(self, prompt):
        return 0

    async def close(self):
        pass


class TestWithFailoverClient:
    """Orchestrator wired to a real FailoverClient."""

    @pytest.mark.asyncio
    async def test_provider_reflects_succeeding_tier(self, make_tree):
        root = make_tree({"f.txt": "x"})
        calls = []
        client = FailoverClient(
            [
                Tier(name="primary", client=ScriptedTier("primary", ProviderError("boom", status_code=500), calls)),
                Tier(name="backup", client=ScriptedTier("backup", "from backup", calls)),
            ],
            sleep=AsyncMock(),
        )

        report = await run(GlanceConfig(target_dir=root), Generator(client))

        result = report.get(root)
        assert result.success is True
        assert result.provider == "backup"
        assert result.attempts == 2
        assert calls == ["primary", "backup"]
        assert (root / ARTIFACT_FILENAME).read_text() == "from backup"
