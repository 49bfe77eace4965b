"""Dependency pre-filters applied before any path resolution or scanning."""

from __future__ import annotations

from typing import Iterable

OFFICIAL_PREFIXES = ("golang.org/", "google.golang.org/")


def is_go_official_package(module_path: str) -> bool:
    """True for modules published by the Go project itself."""
    return module_path.startswith(OFFICIAL_PREFIXES)


def should_skip_package(module_path: str, skip_packages: Iterable[str]) -> bool:
    """True if any user-supplied substring occurs in *module_path*."""
    return any(pattern and pattern in module_path for pattern in skip_packages)


def parse_skip_list(raw: str | None) -> list[str]:
    """Split a comma-separated ``--skip`` value, dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]
