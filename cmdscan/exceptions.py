"""Custom exceptions for cmdscan."""


class CmdScanError(Exception):
    """Base exception for all cmdscan errors."""


class SetupError(CmdScanError):
    """Fatal setup failure: nothing downstream can run."""


class ManifestError(SetupError):
    """Raised when go.mod cannot be found, read or parsed."""

    def __init__(self, message: str, file_path: str | None = None, line: int | None = None):
        self.file_path = file_path
        self.line = line
        location = ""
        if file_path:
            location = f"{file_path}:{line}: " if line else f"{file_path}: "
        super().__init__(f"{location}{message}")


class CacheRootError(SetupError):
    """Raised when neither GOMODCACHE nor GOPATH can be obtained."""


class TraversalError(CmdScanError):
    """Raised when a scan root directory cannot be opened."""


class ModulePathError(CmdScanError):
    """Raised when a module path cannot be escaped for the module cache."""
