"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, ``buckle.toml`` only contains
overrides. Most config roots need no ``buckle.toml`` at all.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class InterpretersConfig(BaseModel):
    """[interpreters] section — executables used per script kind."""

    model_config = {"frozen": True}

    shell: str = "bash"
    powershell: str = "pwsh"
    cmd: str = "cmd.exe"


class FilesConfig(BaseModel):
    """[files] section."""

    model_config = {"frozen": True}

    # Destination for files/<group> trees the package.yml doesn't map.
    default_target: Path = Path("/")
