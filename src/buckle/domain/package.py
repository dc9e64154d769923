"""Package records, file mappings, and script dispatch.

A package is a directory under ``<root>/packages/<id>/`` with a
``package.yml`` manifest and optional ``config/``, ``secrets/``,
``files/`` and ``scripts/`` subtrees. The id is the directory name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from buckle.errors import ConfigurationError

TEMPLATE_SUFFIX = ".tpl"


class InterpreterKind(StrEnum):
    """Closed set of script interpreters."""

    BASH = "bash"
    POWERSHELL = "powershell"
    CMD = "cmd"


# Closed extension table. Anything else inside a config/scripts root is an error.
INTERPRETER_EXTENSIONS: dict[str, InterpreterKind] = {
    ".sh": InterpreterKind.BASH,
    ".ps1": InterpreterKind.POWERSHELL,
    ".bat": InterpreterKind.CMD,
    ".cmd": InterpreterKind.CMD,
}

ENV_EXTENSION = ".env"


def interpreter_for(path: Path) -> InterpreterKind | None:
    """Return the interpreter for *path*, or None for unmapped extensions."""
    return INTERPRETER_EXTENSIONS.get(path.suffix.lower())


def require_interpreter(path: Path) -> InterpreterKind:
    """Like :func:`interpreter_for` but unmapped extensions are an error."""
    kind = interpreter_for(path)
    if kind is None:
        supported = ", ".join(sorted(INTERPRETER_EXTENSIONS))
        ext = path.suffix or "(none)"
        msg = f"The '{ext}' extension is not supported for scripts; use one of {supported}"
        raise ConfigurationError(msg, path=path)
    return kind


@dataclass(frozen=True, slots=True)
class ScriptFile:
    path: Path
    interpreter: InterpreterKind

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path: Path) -> ScriptFile:
        return cls(path=path, interpreter=require_interpreter(path))


@dataclass(frozen=True, slots=True)
class FileMapping:
    """One file from a package's ``files/`` tree and where it lands.

    ``relative_path`` is relative to the group directory and keeps the
    ``.tpl`` suffix; ``destination`` has it stripped.
    """

    group: str
    source: Path
    relative_path: Path
    destination: Path
    is_template: bool

    @classmethod
    def build(cls, group: str, source: Path, relative_path: Path, target_root: Path) -> FileMapping:
        is_template = relative_path.name.endswith(TEMPLATE_SUFFIX)
        dest_rel = relative_path
        if is_template:
            stripped = relative_path.name[: -len(TEMPLATE_SUFFIX)]
            if not stripped:
                msg = f"A template needs a file name before the '{TEMPLATE_SUFFIX}' suffix"
                raise ConfigurationError(msg, path=source)
            dest_rel = relative_path.with_name(stripped)
        return cls(
            group=group,
            source=source,
            relative_path=relative_path,
            destination=target_root / dest_rel,
            is_template=is_template,
        )


# ---------------------------------------------------------------------------
# Manifest and Package
# ---------------------------------------------------------------------------


class PackageManifest(BaseModel):
    """Schema of ``package.yml``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    description: str = ""
    needs: list[str] = Field(default_factory=list)
    files: dict[str, Path] = Field(default_factory=dict)

    @field_validator("needs", mode="before")
    @classmethod
    def _needs_list(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("files", mode="before")
    @classmethod
    def _files_map(cls, value: object) -> object:
        return {} if value is None else value


class Package(BaseModel):
    """A loaded package. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    id: str
    description: str = ""
    needs: frozenset[str] = frozenset()
    files: dict[str, Path] = Field(default_factory=dict)
    path: Path

    @classmethod
    def from_manifest(cls, package_id: str, path: Path, manifest: PackageManifest) -> Package:
        return cls(
            id=package_id,
            description=manifest.description,
            needs=frozenset(manifest.needs),
            files=dict(manifest.files),
            path=path,
        )

    @property
    def config_dir(self) -> Path:
        return self.path / "config"

    @property
    def secrets_dir(self) -> Path:
        return self.path / "secrets"

    @property
    def files_dir(self) -> Path:
        return self.path / "files"

    @property
    def scripts_dir(self) -> Path:
        return self.path / "scripts"

    def target_for(self, group: str, default: Path) -> Path:
        """Destination root for a ``files/<group>`` subtree (``~`` expanded)."""
        return self.files.get(group, default).expanduser()
