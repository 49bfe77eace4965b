"""Parser for Go go.mod files."""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from cmdscan.exceptions import ManifestError
from cmdscan.models import GoModFile, ModuleReference, ReplaceDirective

log = structlog.get_logger("cmdscan.manifest")

GO_MOD_FILENAME = "go.mod"

# Quoted ("..." or `...`) or bare tokens
_TOKEN_RE = re.compile(r'"(?:[^"\\]|\\.)*"|`[^`]*`|\S+')

_DIRECTIVES = {
    "module",
    "go",
    "toolchain",
    "godebug",
    "require",
    "exclude",
    "replace",
    "retract",
    "tool",
    "ignore",
}

# Directives that may open a "( ... )" block
_BLOCK_DIRECTIVES = _DIRECTIVES - {"module", "go", "toolchain"}

_LOCAL_PREFIXES = ("./", "../", "/", ".\\", "..\\")


def _split_comment(line: str) -> tuple[str, str]:
    """Split *line* into (code, comment) at the first ``//`` outside quotes."""
    quote: str | None = None
    i = 0
    while i < len(line):
        ch = line[i]
        if quote:
            if ch == "\\" and quote == '"':
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ('"', "`"):
            quote = ch
        elif line.startswith("//", i):
            return line[:i], line[i + 2 :]
        i += 1
    return line, ""


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] == "`":
        return token[1:-1]
    if len(token) >= 2 and token[0] == token[-1] == '"':
        return token[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return token


def _is_indirect(comment: str) -> bool:
    text = comment.strip()
    return text == "indirect" or text.startswith("indirect;")


def is_local_path(path: str) -> bool:
    """True if a replacement target is a filesystem path rather than a module."""
    return path in (".", "..") or path.startswith(_LOCAL_PREFIXES) or Path(path).is_absolute()


class GoModParser:
    """Parse the require and replace directives of a go.mod file."""

    def parse(self, file_path: Path, content: str) -> GoModFile:
        result = GoModFile()
        block: str | None = None
        block_start = 0
        source = str(file_path)

        for lineno, raw_line in enumerate(content.splitlines(), start=1):
            code, comment = _split_comment(raw_line)
            tokens = _TOKEN_RE.findall(code)
            if not tokens:
                continue

            if block is not None:
                if tokens == [")"]:
                    block = None
                    continue
                self._entry(result, block, tokens, comment, source, lineno)
                continue

            verb, args = tokens[0], tokens[1:]
            if verb not in _DIRECTIVES:
                raise ManifestError(f"unknown directive: {verb}", source, lineno)

            if args == ["("]:
                if verb not in _BLOCK_DIRECTIVES:
                    raise ManifestError(f"{verb} does not accept a block", source, lineno)
                block, block_start = verb, lineno
                continue

            if verb == "module":
                if len(args) != 1:
                    raise ManifestError("usage: module module/path", source, lineno)
                result.module_path = _unquote(args[0])
            elif verb == "go":
                if len(args) != 1:
                    raise ManifestError("usage: go 1.23", source, lineno)
                result.go_version = args[0]
            else:
                self._entry(result, verb, args, comment, source, lineno)

        if block is not None:
            raise ManifestError(f"unterminated {block} block", source, block_start)

        log.debug(
            "manifest.parsed",
            file=source,
            requires=len(result.requires),
            replaces=len(result.replaces),
        )
        return result

    def _entry(
        self,
        result: GoModFile,
        verb: str,
        args: list[str],
        comment: str,
        source: str,
        lineno: int,
    ) -> None:
        if verb == "require":
            if len(args) != 2:
                raise ManifestError("usage: require module/path v1.2.3", source, lineno)
            result.requires.append(
                ModuleReference(
                    path=_unquote(args[0]),
                    version=_unquote(args[1]),
                    indirect=_is_indirect(comment),
                )
            )
        elif verb == "replace":
            result.replaces.append(self._replace(args, source, lineno))
        # exclude, retract, tool, ignore, godebug, toolchain carry nothing we resolve

    @staticmethod
    def _replace(args: list[str], source: str, lineno: int) -> ReplaceDirective:
        usage = "usage: replace module/path [v1.2.3] => other/module v1.4 | ./local/dir"
        if "=>" not in args:
            raise ManifestError(usage, source, lineno)
        arrow = args.index("=>")
        left = [_unquote(a) for a in args[:arrow]]
        right = [_unquote(a) for a in args[arrow + 1 :]]
        if len(left) not in (1, 2) or len(right) not in (1, 2):
            raise ManifestError(usage, source, lineno)

        new_version = right[1] if len(right) == 2 else ""
        if not new_version and not is_local_path(right[0]):
            raise ManifestError(
                "replacement module without version must be directory path "
                "(rooted or starting with ./ or ../)",
                source,
                lineno,
            )
        return ReplaceDirective(
            old_path=left[0],
            old_version=left[1] if len(left) == 2 else "",
            new_path=right[0],
            new_version=new_version,
        )


def load_go_mod(file_path: Path) -> GoModFile:
    """Read and parse a go.mod file. Raises ``ManifestError`` on any failure."""
    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"cannot read go.mod: {e}", str(file_path)) from e
    return GoModParser().parse(file_path, content)


def find_go_mod_in_parent_dirs(start: Path | None = None) -> Path | None:
    """Return the first go.mod found in *start* or any of its parents."""
    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / GO_MOD_FILENAME
        if candidate.is_file():
            return candidate
    return None
