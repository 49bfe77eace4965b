"""Map module references to their directories inside the Go module cache."""

from __future__ import annotations

import os
import re
import subprocess

import structlog

from cmdscan.exceptions import CacheRootError, ModulePathError
from cmdscan.models import ModuleReference, ReplaceDirective, ResolvedLocation

log = structlog.get_logger("cmdscan.resolver")

INCOMPATIBLE_SUFFIX = "+incompatible"

_ESCAPE_RE = re.compile(r"[A-Z!]")
_UNESCAPE_RE = re.compile(r"!(.)")


def escape_module_path(path: str) -> str:
    """Escape a module path for case-insensitive filesystems.

    Uppercase letters become ``!`` + lowercase, and ``!`` becomes ``!!``:
    ``github.com/Sirupsen/logrus`` -> ``github.com/!sirupsen/logrus``.

    Raises ``ModulePathError`` for empty paths and paths containing
    non-ASCII, whitespace or control characters.
    """
    if not path:
        raise ModulePathError("empty module path")
    for ch in path:
        if ord(ch) >= 0x80 or ch.isspace() or not ch.isprintable():
            raise ModulePathError(f"invalid char {ch!r} in module path {path!r}")
    return _ESCAPE_RE.sub(lambda m: "!!" if m.group(0) == "!" else "!" + m.group(0).lower(), path)


def unescape_module_path(escaped: str) -> str:
    """Inverse of :func:`escape_module_path`."""
    return _UNESCAPE_RE.sub(lambda m: "!" if m.group(1) == "!" else m.group(1).upper(), escaped)


def clean_version(version: str) -> str:
    """Drop a trailing ``+incompatible``; cache directories never carry it."""
    if version.endswith(INCOMPATIBLE_SUFFIX):
        return version[: -len(INCOMPATIBLE_SUFFIX)]
    return version


def package_install_path(module_path: str, version: str, cache_root: str) -> str:
    """Return the directory where *module_path*@*version* lives in the cache."""
    try:
        encoded = escape_module_path(module_path)
    except ModulePathError as e:
        log.warning("resolver.escape_failed", module=module_path, error=str(e))
        encoded = module_path
    return os.path.join(cache_root, f"{encoded}@{clean_version(version)}")


def path_exists(path: str) -> bool:
    """Any stat failure (missing, permission, ...) counts as absent."""
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def resolve_requirement(req: ModuleReference, cache_root: str) -> ResolvedLocation:
    path = package_install_path(req.path, req.version, cache_root)
    return ResolvedLocation(path=path, exists=path_exists(path))


def resolve_replacement(rep: ReplaceDirective, cache_root: str) -> ResolvedLocation:
    """Resolve a replace target; local targets are returned as-is."""
    if rep.is_local:
        return ResolvedLocation(path=rep.new_path, exists=path_exists(rep.new_path), is_local=True)
    path = package_install_path(rep.new_path, rep.new_version, cache_root)
    return ResolvedLocation(path=path, exists=path_exists(path))


def _go_env(go_binary: str, name: str) -> str | None:
    """Run ``go env NAME``; None on failure or empty output."""
    try:
        result = subprocess.run(
            [go_binary, "env", name],
            capture_output=True,
            text=True,
            check=True,
            timeout=30,
        )
    except (subprocess.SubprocessError, OSError) as e:
        log.debug("resolver.go_env_failed", var=name, error=str(e))
        return None
    value = result.stdout.strip()
    return value or None


def module_cache_path(go_binary: str = "go") -> str:
    """Locate the module cache: GOMODCACHE, else first GOPATH entry + pkg/mod."""
    modcache = _go_env(go_binary, "GOMODCACHE")
    if modcache:
        return modcache

    gopath = _go_env(go_binary, "GOPATH")
    if gopath:
        first = gopath.split(os.pathsep)[0]
        log.debug("resolver.gopath_fallback", gopath=first)
        return os.path.join(first, "pkg", "mod")

    raise CacheRootError(f"failed to get GOMODCACHE or GOPATH from '{go_binary} env'")
