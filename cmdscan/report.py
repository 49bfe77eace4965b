"""Render a ScanReport as human-readable text or JSON."""

from __future__ import annotations

import json
from typing import Sequence

import click

from cmdscan.models import DependencyOutcome, ScanReport


def _echo(message: str = "", color: bool | None = None) -> None:
    click.echo(message, color=color)


def print_header(
    report: ScanReport,
    *,
    include_official: bool,
    skip_packages: Sequence[str],
    skip_tests: bool,
    color: bool | None = None,
) -> None:
    _echo(f"Module: {report.module_path or '(none)'}", color)
    _echo(f"Go version: {report.go_version or '(none)'}", color)
    _echo(f"Module cache location: {report.cache_root}", color)
    _echo(f"Searching for command patterns: {', '.join(report.patterns)}", color)
    if skip_tests:
        _echo("Skipping test files (*_test.go)", color)
    if include_official:
        _echo("Including official Go packages (*.golang.org/*)", color)
    else:
        _echo("Skipping official Go packages (*.golang.org/*)", color)
    if skip_packages:
        _echo(f"Skipping user-specified packages: {', '.join(skip_packages)}", color)
    _echo(color=color)


def _print_problem(outcome: DependencyOutcome, color: bool | None) -> None:
    suffix = " (indirect)" if outcome.indirect else ""
    _echo(f"- {outcome.label}{suffix}", color)
    if outcome.status == "missing":
        path = outcome.location.path if outcome.location else "?"
        _echo(click.style(f"  Location not found ({path})", fg="red"), color)
    else:
        _echo(click.style(f"  Error scanning: {outcome.reason}", fg="red"), color)
    _echo(color=color)


def print_results(report: ScanReport, color: bool | None = None) -> None:
    for outcome in report.outcomes:
        if outcome.status in ("missing", "error"):
            _print_problem(outcome, color)

    _echo("Results:\n", color)
    matches = report.matches
    if not matches:
        _echo("No command patterns found in any files.\n", color)
        return

    _echo(
        f"Found {report.total_occurrences} command pattern occurrences "
        f"in {len(matches)} files:\n",
        color,
    )
    for pattern, count in report.pattern_counts().items():
        _echo(f"  {pattern:<16} {count}", color)
    _echo(color=color)

    for file_match in matches:
        for line in file_match.lines:
            _echo(f"{file_match.file_path}:{line.line_number}", color)
            _echo(click.style(line.content.strip(), fg="bright_yellow"), color)
        _echo(color=color)


def print_json(report: ScanReport) -> None:
    click.echo(json.dumps(report.to_dict(), indent=2))
