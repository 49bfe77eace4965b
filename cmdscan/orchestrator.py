"""DependencyAuditor — resolve every go.mod entry, check it, and scan it."""

from __future__ import annotations

from typing import Iterable

import structlog

from cmdscan.exceptions import TraversalError
from cmdscan.filters import is_go_official_package, should_skip_package
from cmdscan.models import (
    DependencyOutcome,
    GoModFile,
    ModuleReference,
    ReplaceDirective,
    ResolvedLocation,
    ScanReport,
)
from cmdscan.resolver import resolve_replacement, resolve_requirement
from cmdscan.scanner import PatternScanner

log = structlog.get_logger("cmdscan.orchestrator")


def replacement_label(rep: ReplaceDirective) -> str:
    left = " ".join(p for p in (rep.old_path, rep.old_version) if p)
    right = " ".join(p for p in (rep.new_path, rep.new_version) if p)
    return f"{left} => {right}"


class DependencyAuditor:
    """Sequentially process requirements, then replacements.

    Each entry is resolved and scanned to completion before the next one.
    Missing directories and per-dependency traversal errors are recorded
    on the entry's outcome; they never stop the run.
    """

    def __init__(
        self,
        cache_root: str,
        scanner: PatternScanner | None = None,
        include_official: bool = False,
        skip_packages: Iterable[str] = (),
    ) -> None:
        self.cache_root = cache_root
        self.scanner = scanner or PatternScanner()
        self.include_official = include_official
        self.skip_packages = list(skip_packages)

    def audit(self, go_mod: GoModFile) -> ScanReport:
        report = ScanReport(
            module_path=go_mod.module_path,
            go_version=go_mod.go_version,
            cache_root=self.cache_root,
            patterns=self.scanner.config.patterns,
        )
        for req in go_mod.requires:
            report.outcomes.append(self.audit_requirement(req))
        for rep in go_mod.replaces:
            report.outcomes.append(self.audit_replacement(rep))

        log.info(
            "orchestrator.done",
            dependencies=len(report.outcomes),
            occurrences=report.total_occurrences,
            **report.count_by_status(),
        )
        return report

    def audit_requirement(self, req: ModuleReference) -> DependencyOutcome:
        label = f"{req.path} {req.version}"
        if not self.include_official and is_go_official_package(req.path):
            return DependencyOutcome(label, "skipped", indirect=req.indirect, reason="go official package")
        if should_skip_package(req.path, self.skip_packages):
            return DependencyOutcome(label, "skipped", indirect=req.indirect, reason="user-specified")

        location = resolve_requirement(req, self.cache_root)
        outcome = DependencyOutcome(label, "scanned", location=location, indirect=req.indirect)
        return self._scan(outcome, location)

    def audit_replacement(self, rep: ReplaceDirective) -> DependencyOutcome:
        label = replacement_label(rep)
        if should_skip_package(rep.old_path, self.skip_packages) or should_skip_package(
            rep.new_path, self.skip_packages
        ):
            return DependencyOutcome(label, "skipped", reason="user-specified")

        location = resolve_replacement(rep, self.cache_root)
        return self._scan(DependencyOutcome(label, "scanned", location=location), location)

    def _scan(self, outcome: DependencyOutcome, location: ResolvedLocation) -> DependencyOutcome:
        if not location.exists:
            log.debug("orchestrator.missing", dependency=outcome.label, path=location.path)
            outcome.status = "missing"
            outcome.reason = "location not found"
            return outcome

        try:
            outcome.scan = self.scanner.scan(location.path)
        except TraversalError as e:
            log.warning("orchestrator.scan_failed", dependency=outcome.label, error=str(e))
            outcome.status = "error"
            outcome.reason = str(e)
        return outcome
