"""Tests for the pattern scanner: traversal rules, matching policy, skips."""

from __future__ import annotations

import os
import sys
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from cmdscan.exceptions import TraversalError
from cmdscan.models import LineMatch
from cmdscan.scanner import (
    DEFAULT_PATTERNS,
    PatternScanner,
    ScanConfig,
    first_matching_pattern,
    scan,
)

CMD = 'x := exec.Command("ls")\n'


def _files(matches) -> list[str]:
    return [Path(m.file_path).name for m in matches]


def _stack_depth() -> int:
    frame, depth = sys._getframe(), 0
    while frame is not None:
        depth += 1
        frame = frame.f_back
    return depth


# ── line matching ────────────────────────────────────────────────────────


class TestLineMatching:
    def test_command_and_cmd_lines(self, make_tree, tmp_path):
        make_tree({"pkg/a.go": 'x.Command("a")\n// x.Cmd(b)\nplain text\n'})
        matches = scan(str(tmp_path), [".Command(", ".Cmd("])

        assert len(matches) == 1
        assert list(matches[0].lines) == [
            LineMatch(1, 'x.Command("a")', ".Command("),
            LineMatch(2, "// x.Cmd(b)", ".Cmd("),
        ]

    def test_first_pattern_in_list_wins(self, make_tree, tmp_path):
        make_tree({"a.go": "a.Cmd(x).Command(y)\n"})

        first = scan(str(tmp_path), [".Command(", ".Cmd("])
        assert [lm.pattern for lm in first[0].lines] == [".Command("]

        reordered = scan(str(tmp_path), [".Cmd(", ".Command("])
        assert [lm.pattern for lm in reordered[0].lines] == [".Cmd("]

    def test_one_match_per_line(self, make_tree, tmp_path):
        make_tree({"a.go": "exec.Command(a); exec.Command(b); r.RunCommand(c)\n"})
        matches = scan(str(tmp_path))
        assert len(matches[0].lines) == 1

    def test_trailing_whitespace_stripped_indentation_kept(self, make_tree, tmp_path):
        make_tree({"a.go": "\t\tcmd := exec.Command(\"ls\")   \t\n"})
        line = scan(str(tmp_path))[0].lines[0]
        assert line.content == '\t\tcmd := exec.Command("ls")'

    def test_crlf_line_endings(self, tmp_path):
        (tmp_path / "a.go").write_bytes(b"package a\r\nc := exec.Command(x)\r\n")
        line = scan(str(tmp_path))[0].lines[0]
        assert line.line_number == 2
        assert line.content == "c := exec.Command(x)"

    def test_last_line_without_newline(self, tmp_path):
        (tmp_path / "a.go").write_bytes(b"package a\nexec.Command(x)")
        assert scan(str(tmp_path))[0].lines[0].line_number == 2

    def test_invalid_utf8_is_tolerated(self, tmp_path):
        (tmp_path / "a.go").write_bytes(b"\xff\xfe bad\nexec.Command(x) // \xe9\n")
        matches = scan(str(tmp_path))
        assert matches[0].lines[0].line_number == 2

    def test_file_without_matches_produces_no_record(self, make_tree, tmp_path):
        make_tree({"a.go": "package a\n", "b.go": CMD})
        assert _files(scan(str(tmp_path))) == ["b.go"]

    def test_first_matching_pattern_helper(self):
        assert first_matching_pattern("r.RunCommand(x)", DEFAULT_PATTERNS) == ".RunCommand("
        assert first_matching_pattern("nothing here", DEFAULT_PATTERNS) is None
        assert first_matching_pattern("x.Command(", []) is None


# ── traversal rules ──────────────────────────────────────────────────────


class TestTraversal:
    def test_excluded_directories_never_descended(self, make_tree, tmp_path):
        make_tree(
            {
                "main.go": CMD,
                ".git/hooks/h.go": CMD,
                "testdata/fixture.go": CMD,
                "vendor/dep/dep.go": CMD,
                "internal/.cache/c.go": CMD,
                "internal/deep/testdata/t.go": CMD,
                "internal/deep/vendor/v.go": CMD,
                "internal/deep/ok.go": CMD,
            }
        )
        paths = [m.file_path for m in scan(str(tmp_path))]
        assert sorted(Path(p).name for p in paths) == ["main.go", "ok.go"]
        for p in paths:
            parts = Path(p).relative_to(tmp_path).parts
            assert not {".git", "testdata", "vendor", ".cache"} & set(parts)

    def test_only_go_files_scanned(self, make_tree, tmp_path):
        make_tree({"a.go": CMD, "README.md": CMD, "script.sh": CMD, "a.go.txt": CMD})
        assert _files(scan(str(tmp_path))) == ["a.go"]

    def test_test_files_skipped_by_default(self, make_tree, tmp_path):
        make_tree({"a.go": CMD, "a_test.go": CMD})
        assert _files(scan(str(tmp_path))) == ["a.go"]

    def test_test_files_included_when_requested(self, make_tree, tmp_path):
        make_tree({"a.go": CMD, "a_test.go": CMD})
        assert _files(scan(str(tmp_path), skip_tests=False)) == ["a.go", "a_test.go"]

    def test_sorted_preorder(self, make_tree, tmp_path):
        make_tree({"b.go": CMD, "a/z.go": CMD, "a/b/y.go": CMD, "c/x.go": CMD, "a.go": CMD})
        rel = [str(Path(m.file_path).relative_to(tmp_path)) for m in scan(str(tmp_path))]
        # "a" sorts before "a.go", so the directory is walked first
        assert rel == [
            os.path.join("a", "b", "y.go"),
            os.path.join("a", "z.go"),
            "a.go",
            "b.go",
            os.path.join("c", "x.go"),
        ]

    def test_idempotent(self, make_tree, tmp_path):
        make_tree({"a.go": CMD, "sub/b.go": CMD + CMD, "sub/c.go": "package c\n"})
        assert scan(str(tmp_path)) == scan(str(tmp_path))

    def test_unsorted_mode_finds_same_files(self, make_tree, tmp_path):
        make_tree({"a.go": CMD, "sub/b.go": CMD, "sub/deeper/c.go": CMD})
        unsorted = scan(str(tmp_path), sort_entries=False)
        assert sorted(m.file_path for m in unsorted) == [m.file_path for m in scan(str(tmp_path))]

    def test_root_with_leading_dot_is_scanned(self, make_tree, tmp_path):
        root = tmp_path / ".hidden-root"
        make_tree({"a.go": CMD}, root=root)
        assert _files(scan(str(root))) == ["a.go"]


# ── skips and errors ─────────────────────────────────────────────────────


class TestSkips:
    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(TraversalError, match="cannot open"):
            scan(str(tmp_path / "missing"))

    def test_root_that_is_a_file_is_scanned(self, tmp_path):
        f = tmp_path / "a.go"
        f.write_text("package a\n" + CMD)
        result = PatternScanner().scan(str(f))
        assert [m.file_path for m in result.matches] == [str(f)]
        assert result.matches[0].lines[0].line_number == 2
        assert result.files_scanned == 1

    def test_root_file_not_a_source_file_yields_nothing(self, tmp_path):
        f = tmp_path / "README.md"
        f.write_text(CMD)
        assert scan(str(f)) == []

    def test_root_test_file_skipped_in_strict_mode(self, tmp_path):
        f = tmp_path / "a_test.go"
        f.write_text(CMD)
        assert scan(str(f)) == []
        assert len(scan(str(f), skip_tests=False)) == 1

    def test_unreadable_file_is_skipped_and_recorded(self, make_tree, tmp_path):
        make_tree({"good.go": CMD, "locked.go": CMD})
        locked = os.path.join(str(tmp_path), "locked.go")
        real_open = open

        def fake_open(path, *args, **kwargs):
            if os.fspath(path) == locked:
                raise PermissionError(13, "Permission denied", locked)
            return real_open(path, *args, **kwargs)

        with patch("cmdscan.scanner.open", create=True, side_effect=fake_open):
            result = PatternScanner().scan(str(tmp_path))

        assert _files(result.matches) == ["good.go"]
        assert result.skipped == [locked]
        assert result.files_scanned == 1

    def test_broken_symlink_is_not_a_regular_file(self, make_tree, tmp_path):
        make_tree({"good.go": CMD})
        os.symlink(tmp_path / "nowhere.go", tmp_path / "broken.go")

        result = PatternScanner().scan(str(tmp_path))
        assert _files(result.matches) == ["good.go"]
        assert result.skipped == []

    def test_symlink_to_regular_file_is_scanned(self, make_tree, tmp_path):
        target = make_tree({"real.txt": CMD}, root=tmp_path / "elsewhere") / "real.txt"
        root = tmp_path / "root"
        root.mkdir()
        os.symlink(target, root / "linked.go")
        assert _files(scan(str(root))) == ["linked.go"]

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires os.mkfifo")
    def test_fifo_with_source_suffix_is_never_opened(self, make_tree, tmp_path):
        make_tree({"a.go": CMD})
        os.mkfifo(tmp_path / "pipe.go")

        outcome: dict = {}
        worker = threading.Thread(
            target=lambda: outcome.setdefault("result", PatternScanner().scan(str(tmp_path))),
            daemon=True,
        )
        worker.start()
        worker.join(timeout=5)

        assert not worker.is_alive(), "scan blocked on a FIFO"
        result = outcome["result"]
        assert _files(result.matches) == ["a.go"]
        assert result.skipped == []

    def test_deep_tree_walked_without_recursion(self, tmp_path):
        deep = tmp_path
        for _ in range(300):
            deep = deep / "d"
            deep.mkdir()
        (deep / "deep.go").write_text(CMD)
        (tmp_path / "top.go").write_text(CMD)

        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(_stack_depth() + 100)
        try:
            matches = scan(str(tmp_path))
        finally:
            sys.setrecursionlimit(limit)

        assert _files(matches) == ["deep.go", "top.go"]

    def test_unreadable_directory_is_pruned(self, make_tree, tmp_path):
        make_tree({"a.go": CMD, "locked/b.go": CMD, "open/c.go": CMD})
        locked = os.path.join(str(tmp_path), "locked")
        real_scandir = os.scandir

        def fake_scandir(path):
            if os.fspath(path) == locked:
                raise PermissionError(13, "Permission denied", locked)
            return real_scandir(path)

        with patch("cmdscan.scanner.os.scandir", side_effect=fake_scandir):
            result = PatternScanner().scan(str(tmp_path))

        assert _files(result.matches) == ["a.go", "c.go"]
        assert result.skipped == [locked]

    def test_read_error_mid_file_discards_that_file(self, make_tree, tmp_path):
        make_tree({"a.go": CMD, "b.go": CMD})
        scanner = PatternScanner()
        real_match_file = scanner.match_file

        def flaky(path):
            if path.endswith("a.go"):
                raise OSError("I/O error")
            return real_match_file(path)

        scanner.match_file = flaky
        result = scanner.scan(str(tmp_path))
        assert _files(result.matches) == ["b.go"]
        assert len(result.skipped) == 1

    def test_symlinked_directory_not_followed(self, make_tree, tmp_path):
        outside = tmp_path / "outside"
        make_tree({"x.go": CMD}, root=outside)
        root = tmp_path / "root"
        make_tree({"a.go": CMD}, root=root)
        os.symlink(outside, root / "link")
        assert _files(scan(str(root))) == ["a.go"]


class TestScanConfig:
    def test_defaults(self):
        config = ScanConfig()
        assert config.patterns == (".Command(", ".RunCommand(", ".Cmd(")
        assert config.skip_tests is True
        assert config.sort_entries is True

    def test_empty_pattern_rejected(self):
        with pytest.raises(ValueError):
            ScanConfig(patterns=(".Command(", ""))

    @pytest.mark.parametrize("name", [".git", ".github", "testdata", "vendor"])
    def test_excluded_dir_names(self, name):
        assert ScanConfig().is_excluded_dir(name)

    @pytest.mark.parametrize("name", ["internal", "cmd", "vendored", "test"])
    def test_included_dir_names(self, name):
        assert not ScanConfig().is_excluded_dir(name)

    def test_custom_suffix(self, make_tree, tmp_path):
        make_tree({"a.py": "subprocess.run(x)\n", "a.go": "subprocess.run(x)\n"})
        config = ScanConfig(patterns=("subprocess.",), source_suffix=".py", test_suffix="_test.py")
        result = PatternScanner(config).scan(str(tmp_path))
        assert _files(result.matches) == ["a.py"]
