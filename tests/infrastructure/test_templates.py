"""Tests for template rendering."""

from __future__ import annotations

import pytest

from buckle.errors import TemplateError
from buckle.infrastructure.templates import normalize_references, render_template


class TestNormalizeReferences:
    def test_root_dot_reference(self) -> None:
        assert normalize_references("{{ .IP_ADDRESS }}") == "{{ IP_ADDRESS }}"

    def test_attribute_access_untouched(self) -> None:
        assert normalize_references("{{ user.name }}") == "{{ user.name }}"

    def test_dots_in_strings_untouched(self) -> None:
        text = "{{ .HOST ~ '.example.org' }}"
        assert normalize_references(text) == "{{ HOST ~ '.example.org' }}"

    def test_statement_blocks(self) -> None:
        text = "{% if .DEBUG == 'true' %}on{% endif %}"
        assert normalize_references(text) == "{% if DEBUG == 'true' %}on{% endif %}"

    def test_text_outside_blocks_untouched(self) -> None:
        assert normalize_references("a .b {{ .C }}") == "a .b {{ C }}"

    def test_filter_after_reference(self) -> None:
        assert normalize_references("{{ .NAME | upper }}") == "{{ NAME | upper }}"


class TestRenderTemplate:
    def test_go_style_reference(self) -> None:
        assert render_template("{{ .IP_ADDRESS }}", {"IP_ADDRESS": "10.0.0.5"}) == "10.0.0.5"

    def test_plain_jinja_reference(self) -> None:
        assert render_template("{{ IP }}", {"IP": "10.0.0.5"}) == "10.0.0.5"

    def test_trailing_newline_preserved(self) -> None:
        assert render_template("host={{ .H }}\n", {"H": "x"}) == "host=x\n"

    def test_filters_and_conditionals(self) -> None:
        text = "{% if .MODE == 'prod' %}{{ .NAME | upper }}{% endif %}"
        assert render_template(text, {"MODE": "prod", "NAME": "web"}) == "WEB"

    def test_undefined_reference(self) -> None:
        with pytest.raises(TemplateError) as exc_info:
            render_template("a\n{{ .MISSING }}\n", {}, source="app.conf.tpl")
        err = exc_info.value
        assert "MISSING" in err.message
        assert str(err.path) == "app.conf.tpl"
        assert err.code == "TEMPLATE"

    def test_undefined_never_renders_empty(self) -> None:
        with pytest.raises(TemplateError):
            render_template("x={{ NOPE }}", {"OTHER": "1"})

    def test_syntax_error_has_line(self) -> None:
        with pytest.raises(TemplateError) as exc_info:
            render_template("ok\n{% if %}\n", {}, source="bad.tpl")
        assert exc_info.value.line == 2

    def test_no_variables_plain_text(self) -> None:
        assert render_template("just text", {}) == "just text"
