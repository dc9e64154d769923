"""Tests for package records, file mappings and interpreter dispatch."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from buckle.domain.package import (
    FileMapping,
    InterpreterKind,
    Package,
    PackageManifest,
    ScriptFile,
    interpreter_for,
    require_interpreter,
)
from buckle.errors import ConfigurationError


class TestInterpreterDispatch:
    @pytest.mark.parametrize(
        ("name", "kind"),
        [
            ("setup.sh", InterpreterKind.BASH),
            ("setup.ps1", InterpreterKind.POWERSHELL),
            ("setup.bat", InterpreterKind.CMD),
            ("setup.cmd", InterpreterKind.CMD),
            ("SETUP.SH", InterpreterKind.BASH),
        ],
    )
    def test_known_extensions(self, name: str, kind: InterpreterKind) -> None:
        assert interpreter_for(Path(name)) is kind

    def test_unknown_extension_is_none(self) -> None:
        assert interpreter_for(Path("setup.py")) is None

    def test_require_unknown_extension_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="'.py' extension"):
            require_interpreter(Path("setup.py"))

    def test_script_file_from_path(self) -> None:
        script = ScriptFile.from_path(Path("/pkg/scripts/10-install.sh"))
        assert script.interpreter is InterpreterKind.BASH
        assert script.name == "10-install.sh"


class TestFileMapping:
    def test_plain_file(self) -> None:
        m = FileMapping.build("etc", Path("/src/app.conf"), Path("app.conf"), Path("/etc/app"))
        assert m.destination == Path("/etc/app/app.conf")
        assert m.is_template is False

    def test_template_suffix_stripped(self) -> None:
        m = FileMapping.build(
            "confd", Path("/src/app.conf.tpl"), Path("app.conf.tpl"), Path("/target")
        )
        assert m.destination == Path("/target/app.conf")
        assert m.is_template is True
        assert m.relative_path == Path("app.conf.tpl")

    def test_nested_template(self) -> None:
        m = FileMapping.build("home", Path("/s"), Path(".config/x/y.ini.tpl"), Path("/h"))
        assert m.destination == Path("/h/.config/x/y.ini")

    def test_bare_template_suffix_is_error(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            FileMapping.build("etc", Path("/src/.tpl"), Path(".tpl"), Path("/etc"))
        assert exc_info.value.path == Path("/src/.tpl")


class TestPackageManifest:
    def test_defaults(self) -> None:
        m = PackageManifest.model_validate({})
        assert m.description == ""
        assert m.needs == []
        assert m.files == {}

    def test_null_fields(self) -> None:
        m = PackageManifest.model_validate({"needs": None, "files": None})
        assert m.needs == []
        assert m.files == {}

    def test_single_need_as_string(self) -> None:
        assert PackageManifest.model_validate({"needs": "base"}).needs == ["base"]

    def test_unknown_keys_ignored(self) -> None:
        m = PackageManifest.model_validate({"description": "d", "retries": 3})
        assert m.description == "d"

    def test_invalid_needs(self) -> None:
        with pytest.raises(ValidationError):
            PackageManifest.model_validate({"needs": {"a": 1}})


class TestPackage:
    def _package(self, tmp_path: Path, **files: Path) -> Package:
        manifest = PackageManifest(description="web", needs=["base", "base"], files=files)
        return Package.from_manifest("web", tmp_path / "web", manifest)

    def test_from_manifest(self, tmp_path: Path) -> None:
        pkg = self._package(tmp_path)
        assert pkg.id == "web"
        assert pkg.needs == frozenset({"base"})
        assert pkg.config_dir == tmp_path / "web" / "config"
        assert pkg.secrets_dir == tmp_path / "web" / "secrets"
        assert pkg.files_dir == tmp_path / "web" / "files"
        assert pkg.scripts_dir == tmp_path / "web" / "scripts"

    def test_target_for_mapped_group(self, tmp_path: Path) -> None:
        pkg = self._package(tmp_path, etc=Path("/etc/web"))
        assert pkg.target_for("etc", Path("/")) == Path("/etc/web")

    def test_target_for_unmapped_group_uses_default(self, tmp_path: Path) -> None:
        pkg = self._package(tmp_path)
        assert pkg.target_for("etc", Path("/default")) == Path("/default")

    def test_target_for_expands_home(self, tmp_path: Path) -> None:
        pkg = self._package(tmp_path, home=Path("~/dots"))
        assert pkg.target_for("home", Path("/")) == Path.home() / "dots"

    def test_frozen(self, tmp_path: Path) -> None:
        pkg = self._package(tmp_path)
        with pytest.raises(ValidationError):
            pkg.id = "other"  # type: ignore[misc]
