"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``BUCKLE_*`` prefix
  3. TOML file    — ``<config-root>/buckle.toml`` or ``$BUCKLE_SETTINGS``
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` fed by
:func:`buckle.config.discovery.find_settings`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from buckle.config.discovery import find_settings
from buckle.config.models import FilesConfig, InterpretersConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``buckle.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class BuckleSettings(BaseSettings):
    """Unified settings for the buckle CLI.

    Stored in ``click.Context.obj`` (via AppContext) at the CLI root.

    Attributes:
        config_root: Directory holding ``config/``, ``secrets/`` and
            ``packages/``.
        settings_path: The ``buckle.toml`` that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "BUCKLE_",
        "env_nested_delimiter": "__",
    }

    config_root: Path = Field(default_factory=Path.cwd)
    settings_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    interpreters: InterpretersConfig = Field(default_factory=InterpretersConfig)
    files: FilesConfig = Field(default_factory=FilesConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_root: Path | str | None = None,
        **cli_flags: Any,
    ) -> BuckleSettings:
        """Construct settings from a CLI invocation.

        *config_root* defaults to the current directory. ``buckle.toml`` is
        looked up there unless ``BUCKLE_SETTINGS`` names another file.
        """
        root = Path(config_root).expanduser() if config_root else Path.cwd()
        toml_path = find_settings(root)

        _tls.toml_path = toml_path
        try:
            return cls(
                config_root=root,
                settings_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None
