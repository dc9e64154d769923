"""Package discovery — ``packages/<id>/package.yml`` plus its subtrees."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from buckle.domain.package import (
    FileMapping,
    Package,
    PackageManifest,
    ScriptFile,
)
from buckle.errors import ConfigurationError, FileReadError
from buckle.infrastructure.filesystem import (
    MANIFEST_NAME,
    list_dirs,
    list_files,
    read_text,
    require_dir,
    walk_files,
)

logger = logging.getLogger(__name__)


def _new_yaml() -> YAML:
    """A fresh safe YAML loader per call (ruamel's YAML object is stateful)."""
    return YAML(typ="safe", pure=True)


def load_manifest(path: Path) -> PackageManifest:
    """Parse and validate a ``package.yml`` file."""
    raw = read_text(path)
    try:
        data = _new_yaml().load(raw)
    except YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = mark.line + 1 if mark is not None else None
        msg = f"Invalid YAML in package manifest: {exc}"
        raise ConfigurationError(msg, path=path, line=line) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = "The package manifest must be a YAML mapping"
        raise ConfigurationError(msg, path=path)

    try:
        return PackageManifest.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid package manifest: {exc.errors()[0]['msg']}"
        raise ConfigurationError(msg, path=path) from exc


def load_package(path: Path) -> Package:
    """Load the package rooted at *path*; its id is the directory name."""
    manifest_path = path / MANIFEST_NAME
    if not manifest_path.is_file():
        msg = f"Package is missing its {MANIFEST_NAME} manifest"
        raise FileReadError(msg, path=manifest_path, package=path.name)
    try:
        manifest = load_manifest(manifest_path)
    except ConfigurationError as exc:
        exc.with_package(path.name)
        raise
    return Package.from_manifest(path.name, path, manifest)


def load_packages(packages_dir: Path) -> dict[str, Package]:
    """Load every package under *packages_dir* into an id-keyed arena."""
    require_dir(packages_dir)
    arena: dict[str, Package] = {}
    for pkg_dir in list_dirs(packages_dir):
        package = load_package(pkg_dir)
        arena[package.id] = package
        logger.debug("Discovered package %s", package.id)
    return arena


def package_files(package: Package, default_target: Path) -> list[FileMapping]:
    """Expand ``files/<group>/**`` into mappings onto host paths.

    Groups missing from ``package.yml``'s ``files`` map land under
    *default_target*.
    """
    mappings: list[FileMapping] = []
    for group_dir in list_dirs(package.files_dir):
        group = group_dir.name
        target_root = package.target_for(group, default_target)
        for source in walk_files(group_dir):
            mappings.append(
                FileMapping.build(group, source, source.relative_to(group_dir), target_root)
            )
    return mappings


def package_scripts(package: Package) -> list[ScriptFile]:
    """Provisioning scripts in name order.

    Raises:
        ConfigurationError: A file in ``scripts/`` has an unsupported extension.
    """
    try:
        return [ScriptFile.from_path(p) for p in list_files(package.scripts_dir)]
    except ConfigurationError as exc:
        exc.with_package(package.id)
        raise
