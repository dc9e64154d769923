"""Shared pytest fixtures and test helpers for buckle tests."""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterable, Mapping
from pathlib import Path

import pytest
from click.testing import CliRunner

from buckle.services.telemetry import _current_span, disable_telemetry


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test (the CLI reconfigures it)."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    buckle = logging.getLogger("buckle")
    buckle_level = buckle.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    buckle.setLevel(buckle_level)


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """``-v`` enables telemetry for the whole thread; undo it."""
    yield
    disable_telemetry()
    _current_span.set(None)


# ---------------------------------------------------------------------------
# Config root builder
# ---------------------------------------------------------------------------


class PackageBuilder:
    """Writes the subtrees of one ``packages/<id>/`` directory."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _write(self, relative: str, content: str) -> Path:
        target = self.path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def config(self, name: str, content: str) -> Path:
        return self._write(f"config/{name}", content)

    def secret(self, name: str, content: str) -> Path:
        return self._write(f"secrets/{name}", content)

    def file(self, group: str, relative: str, content: str) -> Path:
        return self._write(f"files/{group}/{relative}", content)

    def script(self, name: str, content: str) -> Path:
        return self._write(f"scripts/{name}", content)


class ConfigRoot:
    """Builds a buckle config root on disk.

    Usage::

        root.config("base.env", "HOST=example.org\\n")
        pkg = root.package("web", needs=["base"], files={"etc": tmp / "etc"})
        pkg.file("etc", "app.conf.tpl", "host={{ .HOST }}\\n")
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        (path / "packages").mkdir(parents=True, exist_ok=True)

    def _write(self, relative: str, content: str) -> Path:
        target = self.path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def config(self, name: str, content: str) -> Path:
        return self._write(f"config/{name}", content)

    def secret(self, name: str, content: str) -> Path:
        return self._write(f"secrets/{name}", content)

    def package(
        self,
        package_id: str,
        *,
        needs: Iterable[str] = (),
        files: Mapping[str, Path | str] | None = None,
        description: str = "",
    ) -> PackageBuilder:
        lines = []
        if description:
            lines.append(f"description: {description}")
        needs = list(needs)
        if needs:
            lines.append("needs:")
            lines.extend(f"  - {n}" for n in needs)
        if files:
            lines.append("files:")
            lines.extend(f"  {group}: '{target}'" for group, target in files.items())
        pkg_dir = self.path / "packages" / package_id
        pkg_dir.mkdir(parents=True, exist_ok=True)
        (pkg_dir / "package.yml").write_text("\n".join(lines) + "\n", encoding="utf-8")
        return PackageBuilder(pkg_dir)


@pytest.fixture
def config_root(tmp_path: Path) -> ConfigRoot:
    """An empty config root (just ``packages/``) under ``tmp_path/root``."""
    return ConfigRoot(tmp_path / "root")


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    """Where test packages deploy their files."""
    target = tmp_path / "target"
    target.mkdir()
    return target
