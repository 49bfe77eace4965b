"""PatternScanner — walk a dependency tree and find literal pattern hits.

Traversal is depth-first, pre-order. Directories whose name starts with
``.`` or is ``testdata`` / ``vendor`` are pruned. Only regular files ending
in the source suffix (``.go``) are read, so FIFOs and devices are never
opened. Test files (``_test.go``) are skipped
unless ``skip_tests`` is off.

Matching policy: each line is tested against the patterns in configured
order and the first pattern contained in the line wins. A line yields at
most one :class:`LineMatch`, even if several patterns occur on it.

Unreadable directories and files never abort a scan. They are recorded in
:attr:`DirectoryScan.skipped` and the walk continues with their siblings.
Only a root that cannot be opened raises :class:`TraversalError`. A root
that is itself a source file is scanned as a single file.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

import structlog

from cmdscan.exceptions import TraversalError
from cmdscan.models import DirectoryScan, FileMatch, LineMatch

log = structlog.get_logger("cmdscan.scanner")

DEFAULT_PATTERNS: tuple[str, ...] = (".Command(", ".RunCommand(", ".Cmd(")

EXCLUDED_DIR_NAMES = frozenset({"testdata", "vendor"})


@dataclass(frozen=True)
class ScanConfig:
    """Everything a scan needs; passed explicitly, never global."""

    patterns: tuple[str, ...] = DEFAULT_PATTERNS
    source_suffix: str = ".go"
    test_suffix: str = "_test.go"
    skip_tests: bool = True
    excluded_dirs: frozenset[str] = EXCLUDED_DIR_NAMES
    sort_entries: bool = True  # False = filesystem encounter order

    def __post_init__(self) -> None:
        if any(p == "" for p in self.patterns):
            raise ValueError("patterns must be non-empty strings")

    def is_excluded_dir(self, name: str) -> bool:
        return name.startswith(".") or name in self.excluded_dirs

    def is_candidate_file(self, name: str) -> bool:
        if not name.endswith(self.source_suffix):
            return False
        return not (self.skip_tests and name.endswith(self.test_suffix))


def first_matching_pattern(line: str, patterns: Iterable[str]) -> str | None:
    """Return the first pattern (in list order) contained in *line*."""
    for pattern in patterns:
        if pattern in line:
            return pattern
    return None


class PatternScanner:
    """Scan directory trees with a fixed :class:`ScanConfig`."""

    def __init__(self, config: ScanConfig | None = None) -> None:
        self.config = config or ScanConfig()

    def scan(self, root: str) -> DirectoryScan:
        result = DirectoryScan(root=root)
        try:
            mode = os.stat(root).st_mode
            entries = self._list_dir(root) if stat.S_ISDIR(mode) else None
        except OSError as e:
            raise TraversalError(f"cannot open {root}: {e}") from e

        if entries is not None:
            self._walk(entries, result)
        elif stat.S_ISREG(mode) and self.config.is_candidate_file(os.path.basename(root)):
            self._scan_file(root, result)

        log.debug(
            "scanner.done",
            root=root,
            files_scanned=result.files_scanned,
            files_matched=len(result.matches),
            skipped=len(result.skipped),
        )
        return result

    def _list_dir(self, path: str) -> list[os.DirEntry]:
        with os.scandir(path) as it:
            entries = list(it)
        if self.config.sort_entries:
            entries.sort(key=lambda e: e.name)
        return entries

    def _walk(self, entries: list[os.DirEntry], result: DirectoryScan) -> None:
        # Explicit stack of directory iterators keeps pre-order without recursion.
        stack: list[Iterator[os.DirEntry]] = [iter(entries)]
        while stack:
            entry = next(stack[-1], None)
            if entry is None:
                stack.pop()
                continue
            if _is_dir(entry):
                if self.config.is_excluded_dir(entry.name):
                    continue
                try:
                    children = self._list_dir(entry.path)
                except OSError as e:
                    log.debug("scanner.dir_skipped", path=entry.path, error=str(e))
                    result.skipped.append(entry.path)
                    continue
                stack.append(iter(children))
            elif self.config.is_candidate_file(entry.name) and _is_regular_file(entry):
                self._scan_file(entry.path, result)

    def _scan_file(self, path: str, result: DirectoryScan) -> None:
        try:
            lines = self.match_file(path)
        except OSError as e:
            log.debug("scanner.file_skipped", path=path, error=str(e))
            result.skipped.append(path)
            return

        result.files_scanned += 1
        if lines:
            result.matches.append(FileMatch(file_path=path, lines=tuple(lines)))

    def match_file(self, path: str) -> list[LineMatch]:
        """Return the matching lines of one file, in file order."""
        patterns = self.config.patterns
        matches: list[LineMatch] = []
        with open(path, "rb") as fh:
            for lineno, raw in enumerate(fh, start=1):
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                pattern = first_matching_pattern(line, patterns)
                if pattern is not None:
                    matches.append(
                        LineMatch(line_number=lineno, content=line.rstrip(), pattern=pattern)
                    )
        return matches


def _is_dir(entry: os.DirEntry) -> bool:
    # Symlinked directories are not followed.
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def _is_regular_file(entry: os.DirEntry) -> bool:
    # FIFOs, sockets and devices are never opened; symlinks to files count.
    try:
        return entry.is_file()
    except OSError:
        return False


def scan(
    root_dir: str,
    patterns: Sequence[str] = DEFAULT_PATTERNS,
    *,
    skip_tests: bool = True,
    sort_entries: bool = True,
) -> list[FileMatch]:
    """Scan *root_dir* and return only the per-file matches."""
    config = ScanConfig(
        patterns=tuple(patterns), skip_tests=skip_tests, sort_entries=sort_entries
    )
    return PatternScanner(config).scan(root_dir).matches
