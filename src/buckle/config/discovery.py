"""Settings file discovery.

``buckle.toml`` lives at the config root next to ``config/`` and
``packages/``. The ``BUCKLE_SETTINGS`` env var points at a file elsewhere.
"""

from __future__ import annotations

import os
from pathlib import Path

SETTINGS_FILENAME = "buckle.toml"
SETTINGS_ENV_VAR = "BUCKLE_SETTINGS"


def find_settings(config_root: Path | None = None) -> Path | None:
    """Return the settings file for *config_root* (default: cwd), or None.

    Checks ``BUCKLE_SETTINGS`` first; when it is set but names no file,
    no settings file is used at all.
    """
    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_file():
            return p
        return None

    candidate = (config_root or Path.cwd()) / SETTINGS_FILENAME
    if candidate.is_file():
        return candidate
    return None
