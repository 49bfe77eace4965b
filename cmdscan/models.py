"""Data models for manifest entries, resolved locations and scan results."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ModuleReference:
    """A single ``require`` entry from go.mod."""

    path: str
    version: str
    indirect: bool = False


@dataclass(frozen=True)
class ReplaceDirective:
    """A ``replace`` entry. An empty ``new_version`` means ``new_path`` is local."""

    old_path: str
    old_version: str
    new_path: str
    new_version: str

    @property
    def is_local(self) -> bool:
        return self.new_version == ""


@dataclass
class GoModFile:
    """Parsed go.mod contents."""

    module_path: str | None = None
    go_version: str | None = None
    requires: list[ModuleReference] = field(default_factory=list)
    replaces: list[ReplaceDirective] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedLocation:
    path: str
    exists: bool
    is_local: bool = False


@dataclass(frozen=True)
class LineMatch:
    line_number: int
    content: str  # trailing whitespace stripped, indentation kept
    pattern: str  # first pattern in list order that matched


@dataclass(frozen=True)
class FileMatch:
    file_path: str
    lines: tuple[LineMatch, ...]


@dataclass
class DirectoryScan:
    """Result of scanning one directory tree."""

    root: str
    matches: list[FileMatch] = field(default_factory=list)
    files_scanned: int = 0
    skipped: list[str] = field(default_factory=list)  # unreadable dirs/files


@dataclass
class DependencyOutcome:
    """What happened to one require/replace entry."""

    label: str  # "path version" or "old oldver => new newver"
    status: str  # "scanned" | "missing" | "error" | "skipped"
    location: ResolvedLocation | None = None
    indirect: bool = False
    reason: str = ""
    scan: DirectoryScan | None = None

    @property
    def matches(self) -> list[FileMatch]:
        return self.scan.matches if self.scan else []


@dataclass
class ScanReport:
    """All dependency outcomes for one run, in manifest order."""

    module_path: str | None
    go_version: str | None
    cache_root: str
    patterns: tuple[str, ...]
    outcomes: list[DependencyOutcome] = field(default_factory=list)

    @property
    def matches(self) -> list[FileMatch]:
        return [fm for o in self.outcomes for fm in o.matches]

    @property
    def total_occurrences(self) -> int:
        return sum(len(fm.lines) for fm in self.matches)

    def pattern_counts(self) -> dict[str, int]:
        counts: Counter[str] = Counter()
        for fm in self.matches:
            for line in fm.lines:
                counts[line.pattern] += 1
        # Keep configured pattern order; drop patterns with no hits.
        return {p: counts[p] for p in self.patterns if counts[p]}

    def count_by_status(self) -> dict[str, int]:
        return dict(Counter(o.status for o in self.outcomes))

    def to_dict(self) -> dict[str, Any]:
        return {
            "module": self.module_path,
            "go_version": self.go_version,
            "module_cache": self.cache_root,
            "patterns": list(self.patterns),
            "dependencies": [
                {
                    "dependency": o.label,
                    "status": o.status,
                    "indirect": o.indirect,
                    "location": o.location.path if o.location else None,
                    "local": o.location.is_local if o.location else False,
                    "reason": o.reason or None,
                    "files_scanned": o.scan.files_scanned if o.scan else 0,
                    "skipped_entries": len(o.scan.skipped) if o.scan else 0,
                }
                for o in self.outcomes
            ],
            "matches": [
                {
                    "file": fm.file_path,
                    "line": lm.line_number,
                    "pattern": lm.pattern,
                    "content": lm.content,
                }
                for fm in self.matches
                for lm in fm.lines
            ],
            "summary": {
                "occurrences": self.total_occurrences,
                "files": len(self.matches),
                "by_pattern": self.pattern_counts(),
            },
        }
