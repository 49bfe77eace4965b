"""Shared pytest fixtures for cmdscan tests."""

from __future__ import annotations

from pathlib import Path

import pytest


def _write_tree(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return root


@pytest.fixture
def make_tree(tmp_path):
    """Return a helper that writes ``{relative_path: content}`` under a root."""

    def _make(files: dict[str, str], root: Path | None = None) -> Path:
        return _write_tree(root or tmp_path, files)

    return _make


@pytest.fixture
def module_cache(tmp_path):
    """A fake module cache with two modules, one with an escaped path."""
    cache = tmp_path / "modcache"
    _write_tree(
        cache,
        {
            "example.com/!foo/!bar@v1.2.3/run.go": (
                "package bar\n\n"
                "func Run() {\n"
                '\tcmd := exec.Command("ls")\n'
                "\t_ = cmd\n"
                "}\n"
            ),
            "example.com/!foo/!bar@v1.2.3/run_test.go": 'x := exec.Command("true")\n',
            "github.com/clean/lib@v2.0.0/lib.go": "package lib\n\nfunc Noop() {}\n",
            "golang.org/x/sys@v0.1.0/exec.go": 'c := exec.Command("uname")\n',
        },
    )
    return cache
