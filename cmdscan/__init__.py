"""cmdscan: find command-execution call sites in a Go module's dependencies."""

__version__ = "0.1.0"

from cmdscan.models import (
    DependencyOutcome,
    DirectoryScan,
    FileMatch,
    GoModFile,
    LineMatch,
    ModuleReference,
    ReplaceDirective,
    ResolvedLocation,
    ScanReport,
)
from cmdscan.orchestrator import DependencyAuditor
from cmdscan.resolver import escape_module_path, package_install_path
from cmdscan.scanner import DEFAULT_PATTERNS, PatternScanner, ScanConfig, scan

__all__ = [
    "DEFAULT_PATTERNS",
    "DependencyAuditor",
    "DependencyOutcome",
    "DirectoryScan",
    "FileMatch",
    "GoModFile",
    "LineMatch",
    "ModuleReference",
    "PatternScanner",
    "ReplaceDirective",
    "ResolvedLocation",
    "ScanConfig",
    "ScanReport",
    "escape_module_path",
    "package_install_path",
    "scan",
]
