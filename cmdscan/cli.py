"""CLI entry point: cmdscan.

Usage:
    cmdscan                                   # ./go.mod, or nearest parent go.mod
    cmdscan --file path/to/go.mod
    cmdscan --skip github.com/myorg,internal  # skip modules containing these
    cmdscan --include-go-official --no-color
    cmdscan --pattern 'exec.Command(' --json
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click
import structlog

from cmdscan.core.logging import setup_logging
from cmdscan.exceptions import SetupError
from cmdscan.filters import parse_skip_list
from cmdscan.manifest.go_mod import GO_MOD_FILENAME, find_go_mod_in_parent_dirs, load_go_mod
from cmdscan.orchestrator import DependencyAuditor
from cmdscan.report import print_header, print_json, print_results
from cmdscan.resolver import module_cache_path
from cmdscan.scanner import DEFAULT_PATTERNS, PatternScanner, ScanConfig

log = structlog.get_logger("cmdscan.cli")

_DEFAULT_GO_BINARY = os.environ.get("CMDSCAN_GO_BINARY", "go")


def _locate_go_mod(file: str, quiet: bool = False) -> Path:
    path = Path(file)
    if path.exists():
        return path
    found = find_go_mod_in_parent_dirs()
    if found is None:
        raise SetupError(f"go.mod file not found at {file} or in any parent directory")
    click.echo(f"Found go.mod in parent directory: {found}", err=quiet)
    return found


@click.command()
@click.option("--file", "go_mod_file", default=GO_MOD_FILENAME, help="Path to the go.mod file to parse")
@click.option("--include-go-official", is_flag=True, help="Include packages from *.golang.org")
@click.option("--skip", default="", help="Comma-separated list of packages to skip scanning")
@click.option("--no-color", is_flag=True, help="Disable color output")
@click.option(
    "--pattern",
    "patterns",
    multiple=True,
    help="Literal pattern to search for (repeatable; replaces the defaults)",
)
@click.option("--include-tests", is_flag=True, help="Also scan *_test.go files")
@click.option("--no-sort", is_flag=True, help="Report in filesystem order instead of sorted order")
@click.option("--modcache", envvar="CMDSCAN_MODCACHE", default=None, help="Module cache directory")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(
    go_mod_file: str,
    include_go_official: bool,
    skip: str,
    no_color: bool,
    patterns: tuple[str, ...],
    include_tests: bool,
    no_sort: bool,
    modcache: str | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """Scan Go module dependencies for command-execution call sites."""
    setup_logging(verbose)
    color = False if no_color else None
    skip_packages = parse_skip_list(skip)

    try:
        config = ScanConfig(
            patterns=patterns or DEFAULT_PATTERNS,
            skip_tests=not include_tests,
            sort_entries=not no_sort,
        )
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--pattern") from e

    try:
        go_mod_path = _locate_go_mod(go_mod_file, quiet=as_json)
        go_mod = load_go_mod(go_mod_path)
        cache_root = modcache or module_cache_path(_DEFAULT_GO_BINARY)
    except SetupError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    log.debug("cli.start", go_mod=str(go_mod_path), cache_root=cache_root)

    auditor = DependencyAuditor(
        cache_root=cache_root,
        scanner=PatternScanner(config),
        include_official=include_go_official,
        skip_packages=skip_packages,
    )
    report = auditor.audit(go_mod)

    if as_json:
        print_json(report)
        return

    print_header(
        report,
        include_official=include_go_official,
        skip_packages=skip_packages,
        skip_tests=config.skip_tests,
        color=color,
    )
    print_results(report, color=color)


if __name__ == "__main__":
    main()
