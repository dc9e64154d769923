"""File deployment — mirror a package's ``files/`` tree onto the host.

Destinations are always overwritten; there is no diffing, backup, or
rollback. A file that can't be written aborts the run, since later
scripts may rely on it being there.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable, Mapping
from pathlib import Path

from buckle.domain.package import FileMapping
from buckle.errors import FileWriteError
from buckle.infrastructure.filesystem import read_text
from buckle.infrastructure.templates import render_template

logger = logging.getLogger(__name__)


def _ensure_parent(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Failed to create directory: {exc.strerror or exc}"
        raise FileWriteError(msg, path=path.parent) from exc


def render_mapping(mapping: FileMapping, variables: Mapping[str, str]) -> str:
    """Render a template mapping's content without touching the destination."""
    return render_template(read_text(mapping.source), variables, source=mapping.source)


def deploy_file(
    mapping: FileMapping,
    variables: Mapping[str, str],
    *,
    rendered: str | None = None,
) -> Path:
    """Write one mapping to its destination and return the destination.

    Templates are rendered (or *rendered* is used when provided);
    everything else is copied byte-for-byte.
    """
    dest = mapping.destination
    _ensure_parent(dest)
    try:
        if mapping.is_template:
            content = rendered if rendered is not None else render_mapping(mapping, variables)
            dest.write_text(content, encoding="utf-8")
        else:
            shutil.copyfile(mapping.source, dest)
    except OSError as exc:
        msg = (
            f"Failed to write '{mapping.source}' to '{dest}': {exc.strerror or exc}. "
            "Check that you have permission to write to this directory and that "
            "there is space available on the drive"
        )
        raise FileWriteError(msg, path=dest) from exc
    logger.debug("Deployed %s -> %s", mapping.relative_path, dest)
    return dest


def deploy_files(
    mappings: Iterable[FileMapping],
    variables: Mapping[str, str],
    *,
    rendered: Mapping[Path, str] | None = None,
) -> list[Path]:
    """Deploy *mappings* in order; stops at the first failure.

    Args:
        mappings: Files to deploy.
        variables: Flattened variables for templates not pre-rendered.
        rendered: Pre-rendered template content keyed by source path.
    """
    pre = rendered or {}
    return [deploy_file(m, variables, rendered=pre.get(m.source)) for m in mappings]
