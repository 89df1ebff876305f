"""Tests for glance.filesystem.ignore."""

from pathlib import Path

from glance.filesystem.ignore import (
    IgnoreRule,
    extend_chain,
    is_ignored,
    load_ignore_rule,
    should_ignore_dir,
    should_ignore_file,
    should_skip_dir_name,
)


ROOT = Path("/repo")


class TestIgnoreRule:
    """Tests for IgnoreRule.decide."""

    def test_matches_relative_to_origin(self):
        """Patterns are evaluated relative to the declaring directory."""
        rule = IgnoreRule.from_lines(ROOT / "pkg", ["*.log"])

        assert rule.decide(ROOT / "pkg" / "debug.log") is True
        assert rule.decide(ROOT / "pkg" / "deep" / "debug.log") is True
        assert rule.decide(ROOT / "pkg" / "main.py") is None

    def test_outside_origin_has_no_opinion(self):
        """A rule never applies outside its own subtree."""
        rule = IgnoreRule.from_lines(ROOT / "pkg", ["*.log"])

        assert rule.decide(ROOT / "other" / "debug.log") is None

    def test_directory_only_pattern(self):
        """'build/' matches a directory named build but not a file."""
        rule = IgnoreRule.from_lines(ROOT, ["build/"])

        assert rule.decide(ROOT / "build", is_dir=True) is True
        assert rule.decide(ROOT / "build", is_dir=False) is None
        assert rule.decide(ROOT / "build" / "out.o") is True

    def test_anchored_pattern(self):
        """A leading slash anchors the pattern at the origin."""
        rule = IgnoreRule.from_lines(ROOT, ["/dist"])

        assert rule.decide(ROOT / "dist", is_dir=True) is True
        assert rule.decide(ROOT / "web" / "dist", is_dir=True) is None

    def test_negation_in_same_rule(self):
        """The last matching pattern in a file decides."""
        rule = IgnoreRule.from_lines(ROOT, ["*.log", "!keep.log"])

        assert rule.decide(ROOT / "debug.log") is True
        assert rule.decide(ROOT / "keep.log") is False

    def test_comments_and_blank_lines(self):
        """Comments and blank lines produce no opinion."""
        rule = IgnoreRule.from_lines(ROOT, ["# comment", "", "   "])

        assert rule.decide(ROOT / "anything.txt") is None

    def test_origin_itself(self):
        """The origin directory is never matched by its own rule."""
        rule = IgnoreRule.from_lines(ROOT, ["*"])

        assert rule.decide(ROOT, is_dir=True) is None


class TestChain:
    """Tests for chain construction and evaluation."""

    def test_extend_does_not_mutate(self):
        """Extending returns a new tuple and leaves the parent chain alone."""
        parent = (IgnoreRule.from_lines(ROOT, ["*.tmp"]),)
        left = extend_chain(parent, IgnoreRule.from_lines(ROOT / "a", ["x"]))
        right = extend_chain(parent, IgnoreRule.from_lines(ROOT / "b", ["y"]))

        assert len(parent) == 1
        assert len(left) == 2
        assert len(right) == 2
        assert left[1].origin_dir == ROOT / "a"
        assert right[1].origin_dir == ROOT / "b"

    def test_extend_with_none(self):
        """No local rule means an equal chain."""
        parent = (IgnoreRule.from_lines(ROOT, ["*.tmp"]),)

        assert extend_chain(parent, None) == parent

    def test_later_rule_negates_earlier(self):
        """A deeper '!keep.log' re-includes what '*.log' excluded."""
        chain = (
            IgnoreRule.from_lines(ROOT, ["*.log"]),
            IgnoreRule.from_lines(ROOT / "logs", ["!keep.log"]),
        )

        assert is_ignored(ROOT / "logs" / "keep.log", chain) is False
        assert is_ignored(ROOT / "logs" / "other.log", chain) is True
        assert is_ignored(ROOT / "keep.log", chain) is True

    def test_later_rule_adds_exclusion(self):
        """Deeper rules can add exclusions for their subtree."""
        chain = (
            IgnoreRule.from_lines(ROOT, ["*.log"]),
            IgnoreRule.from_lines(ROOT / "src", ["*.gen.py"]),
        )

        assert is_ignored(ROOT / "src" / "a.gen.py", chain) is True
        assert is_ignored(ROOT / "a.gen.py", chain) is False

    def test_empty_chain(self):
        """Nothing is ignored by an empty chain."""
        assert is_ignored(ROOT / "x.log", ()) is False


class TestShouldIgnore:
    """Tests for name-based filtering helpers."""

    def test_hidden_and_excluded_dirs(self):
        assert should_skip_dir_name(".git") is True
        assert should_skip_dir_name("node_modules") is True
        assert should_skip_dir_name("__pycache__") is True
        assert should_skip_dir_name("src") is False

    def test_should_ignore_dir_uses_chain(self):
        chain = (IgnoreRule.from_lines(ROOT, ["build/"]),)

        assert should_ignore_dir(ROOT / "build", chain) is True
        assert should_ignore_dir(ROOT / "src", chain) is False
        assert should_ignore_dir(ROOT / ".venv", ()) is True

    def test_should_ignore_file(self):
        chain = (IgnoreRule.from_lines(ROOT, ["*.pyc"]),)

        assert should_ignore_file(ROOT / "a.pyc", chain) is True
        assert should_ignore_file(ROOT / ".env", chain) is True
        assert should_ignore_file(ROOT / "a.py", chain) is False


class TestLoadIgnoreRule:
    """Tests for load_ignore_rule."""

    def test_missing_file(self, tmp_path):
        assert load_ignore_rule(tmp_path) is None

    def test_loads_patterns(self, tmp_path):
        (tmp_path / ".gitignore").write_text("*.log\n!keep.log\n")

        rule = load_ignore_rule(tmp_path)

        assert rule is not None
        assert rule.origin_dir == tmp_path
        assert rule.decide(tmp_path / "a.log") is True
        assert rule.decide(tmp_path / "keep.log") is False
