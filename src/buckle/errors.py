"""Error taxonomy for the buckle engine.

Every failure the engine can produce is a :class:`BuckleError` subclass with
a stable ``code``. All of them are fatal: the orchestrator halts on the first
one and leaves already-applied packages in place.

The service layer turns these into ``ServiceError`` payloads via
:meth:`BuckleError.detail`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar


class BuckleError(Exception):
    """Base class for all engine errors.

    Attributes:
        message: Human-readable description of what went wrong.
        path: File or directory involved, when there is one.
        package: Id of the package being processed, when there is one.
        line: 1-based line number inside *path*, when known.
    """

    code: ClassVar[str] = "BUCKLE"

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        package: str | None = None,
        line: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = Path(path) if path is not None else None
        self.package = package
        self.line = line

    def with_package(self, package: str) -> BuckleError:
        """Attach the package id if the error does not carry one yet."""
        if self.package is None:
            self.package = package
        return self

    def detail(self) -> dict[str, Any]:
        """Structured context for result payloads and logs."""
        out: dict[str, Any] = {}
        if self.path is not None:
            out["path"] = str(self.path)
        if self.package is not None:
            out["package"] = self.package
        if self.line is not None:
            out["line"] = self.line
        return out

    def __str__(self) -> str:
        parts = [self.message]
        if self.package is not None:
            parts.append(f"package '{self.package}'")
        if self.path is not None:
            location = str(self.path)
            if self.line is not None:
                location = f"{location}:{self.line}"
            parts.append(location)
        return " | ".join(parts)


class DependencyError(BuckleError):
    """Unknown or circular package reference."""

    code = "DEPENDENCY"

    def __init__(self, message: str, *, ids: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.ids = list(ids or [])

    def detail(self) -> dict[str, Any]:
        out = super().detail()
        if self.ids:
            out["ids"] = self.ids
        return out


class ConfigurationError(BuckleError):
    """Malformed variable file, package manifest, or disallowed extension."""

    code = "CONFIGURATION"


class TemplateError(BuckleError):
    """A template failed to render (undefined variable or syntax error)."""

    code = "TEMPLATE"


class ExecutionError(BuckleError):
    """A required script could not be run or exited non-zero."""

    code = "EXECUTION"

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    def detail(self) -> dict[str, Any]:
        out = super().detail()
        if self.exit_code is not None:
            out["exit_code"] = self.exit_code
        if self.stdout:
            out["stdout"] = self.stdout
        if self.stderr:
            out["stderr"] = self.stderr
        return out


class FileWriteError(BuckleError):
    """Writing to a host path failed (permissions, missing mount, ...)."""

    code = "PERMISSION"


class FileReadError(BuckleError):
    """Reading a file failed or an expected directory is missing."""

    code = "IO"
