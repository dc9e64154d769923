"""Load a config or secrets directory into a :class:`Layer`.

Each file contributes ``KEY=value`` lines:

- ``*.env`` files are read directly.
- ``*.sh``, ``*.ps1``, ``*.bat``, ``*.cmd`` are executed and their stdout
  is parsed with the same grammar (config-discovery scripts).

Files are processed in name order; later files win on key collisions.
Any other extension is a :class:`ConfigurationError`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from buckle.config.models import InterpretersConfig
from buckle.domain.package import ENV_EXTENSION, INTERPRETER_EXTENSIONS
from buckle.domain.variables import Layer, LayerKind, parse_variable_lines
from buckle.errors import ConfigurationError
from buckle.infrastructure.filesystem import list_files, read_text
from buckle.infrastructure.scripts import run_config_script

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({ENV_EXTENSION, *INTERPRETER_EXTENSIONS})


def load_config_file(
    path: Path,
    *,
    env: Mapping[str, str] | None = None,
    interpreters: InterpretersConfig | None = None,
    secret: bool = False,
) -> dict[str, str]:
    """Read one config file (or run one config script) into a dict.

    With *secret* set, a failing script's output is withheld from the error.
    """
    ext = path.suffix.lower()
    if ext == ENV_EXTENSION:
        content = read_text(path)
    elif ext in INTERPRETER_EXTENSIONS:
        content = run_config_script(path, env, interpreters=interpreters, secret=secret)
    else:
        supported = ", ".join(sorted(SUPPORTED_EXTENSIONS))
        shown = ext or "(none)"
        msg = f"The '{shown}' extension is not supported for config files; use one of {supported}"
        raise ConfigurationError(msg, path=path)
    return parse_variable_lines(content, source=path)


def load_layer(
    directory: Path,
    kind: LayerKind,
    *,
    env: Mapping[str, str] | None = None,
    interpreters: InterpretersConfig | None = None,
) -> Layer:
    """Load every config file in *directory* as a single layer.

    A missing directory yields an empty layer.

    Args:
        directory: ``config/`` or ``secrets/`` directory to read.
        kind: Which precedence slot the layer occupies.
        env: Variables exposed to config-discovery scripts.
        interpreters: Executable overrides for config-discovery scripts.
    """
    files = list_files(directory)
    if not files:
        return Layer.empty(kind)

    values: dict[str, str] = {}
    for path in files:
        loaded = load_config_file(
            path, env=env, interpreters=interpreters, secret=kind.is_secret
        )
        logger.debug("Loaded %d %s value(s) from %s", len(loaded), kind.label, path)
        values.update(loaded)
    return Layer(kind=kind, values=values, sources=tuple(files))
