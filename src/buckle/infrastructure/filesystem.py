"""Filesystem discovery for config roots and packages.

All listings are sorted by name so every run sees the same order.
Flat listings of config/scripts roots skip dotfiles (``.gitkeep``);
recursive walks of ``files/`` trees do not.
"""

from __future__ import annotations

import os
from pathlib import Path

from buckle.errors import FileReadError

# Top-level layout of a config root.
CONFIG_DIR = "config"
SECRETS_DIR = "secrets"
PACKAGES_DIR = "packages"
MANIFEST_NAME = "package.yml"


def _visible(path: Path) -> bool:
    return not path.name.startswith(".")


def _iterdir(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        msg = f"Failed to read the directory listing: {exc.strerror or exc}"
        raise FileReadError(msg, path=directory) from exc


def require_dir(directory: Path) -> Path:
    """Return *directory* or raise :class:`FileReadError` if it is missing."""
    if not directory.is_dir():
        msg = "Expected directory does not exist"
        raise FileReadError(msg, path=directory)
    return directory


def list_files(directory: Path) -> list[Path]:
    """Regular files directly inside *directory*; empty if it doesn't exist."""
    if not directory.is_dir():
        return []
    return [p for p in _iterdir(directory) if p.is_file() and _visible(p)]


def list_dirs(directory: Path) -> list[Path]:
    """Subdirectories directly inside *directory*; empty if it doesn't exist."""
    if not directory.is_dir():
        return []
    return [p for p in _iterdir(directory) if p.is_dir() and _visible(p)]


def walk_files(directory: Path) -> list[Path]:
    """All regular files below *directory*, recursively, sorted by path.

    Hidden files are included: ``files/`` trees routinely carry dotfiles.
    Symlinked directories are followed; one that leads back to a directory
    already walked is skipped.
    """
    if not directory.is_dir():
        return []

    def _raise(exc: OSError) -> None:
        msg = f"Failed to read the directory listing: {exc.strerror or exc}"
        raise FileReadError(msg, path=exc.filename or directory) from exc

    results: list[Path] = []
    seen: set[Path] = set()
    for dirpath, dirnames, filenames in os.walk(directory, onerror=_raise, followlinks=True):
        base = Path(dirpath)
        seen.add(base.resolve())
        dirnames[:] = [d for d in dirnames if (base / d).resolve() not in seen]
        results.extend(p for p in (base / name for name in filenames) if p.is_file())
    return sorted(results, key=lambda p: p.relative_to(directory).parts)


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Unable to read file: {exc}"
        raise FileReadError(msg, path=path) from exc
