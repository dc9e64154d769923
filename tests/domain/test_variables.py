"""Tests for variable parsing, layers and the merged VariableStore."""

from __future__ import annotations

import pytest

from buckle.domain.variables import (
    MASK,
    Layer,
    LayerKind,
    VariableStore,
    parse_variable_lines,
)
from buckle.errors import ConfigurationError


def _layer(kind: LayerKind, **values: str) -> Layer:
    return Layer(kind=kind, values=values)


class TestParseVariableLines:
    def test_basic_pairs(self) -> None:
        assert parse_variable_lines("A=1\nB=two\n") == {"A": "1", "B": "two"}

    def test_blank_and_comment_lines_ignored(self) -> None:
        content = "# header\n\nA=1\n   \n  # indented comment\nB=2\n"
        assert parse_variable_lines(content) == {"A": "1", "B": "2"}

    def test_value_is_text_after_first_equals(self) -> None:
        assert parse_variable_lines("URL=http://x/?a=b") == {"URL": "http://x/?a=b"}

    def test_no_quote_processing(self) -> None:
        assert parse_variable_lines('MSG="hello"') == {"MSG": '"hello"'}

    def test_empty_value_allowed(self) -> None:
        assert parse_variable_lines("EMPTY=") == {"EMPTY": ""}

    def test_crlf_line_endings(self) -> None:
        assert parse_variable_lines("A=1\r\nB=2\r\n") == {"A": "1", "B": "2"}

    def test_key_is_stripped(self) -> None:
        assert parse_variable_lines("  KEY =value") == {"KEY": "value"}

    def test_later_duplicate_wins(self) -> None:
        assert parse_variable_lines("A=1\nA=2") == {"A": "2"}

    def test_line_without_equals_is_error(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_variable_lines("A=1\nnot a pair\n", source="vars.env")
        assert exc_info.value.line == 2
        assert str(exc_info.value.path) == "vars.env"

    def test_error_does_not_echo_line_text(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_variable_lines("PASSWORD=ok\ns3cr3t-hunter2\n", source="db.env")
        assert exc_info.value.line == 2
        assert "s3cr3t-hunter2" not in str(exc_info.value)

    def test_only_newlines_end_a_line(self) -> None:
        content = "A=x\x0by\x0cz\u2028w\nB=\x1eq\n"
        assert parse_variable_lines(content) == {"A": "x\x0by\x0cz\u2028w", "B": "\x1eq"}

    def test_empty_key_is_error(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_variable_lines("=value")
        assert exc_info.value.line == 1


class TestLayerKind:
    def test_precedence_order(self) -> None:
        assert (
            LayerKind.GLOBAL_CONFIG
            < LayerKind.GLOBAL_SECRET
            < LayerKind.PACKAGE_CONFIG
            < LayerKind.PACKAGE_SECRET
        )

    def test_secret_kinds(self) -> None:
        assert LayerKind.GLOBAL_SECRET.is_secret
        assert LayerKind.PACKAGE_SECRET.is_secret
        assert not LayerKind.GLOBAL_CONFIG.is_secret
        assert not LayerKind.PACKAGE_CONFIG.is_secret

    def test_label(self) -> None:
        assert LayerKind.PACKAGE_SECRET.label == "package-secret"


class TestLayer:
    def test_values_are_read_only(self) -> None:
        layer = _layer(LayerKind.GLOBAL_CONFIG, A="1")
        with pytest.raises(TypeError):
            layer.values["B"] = "2"  # type: ignore[index]

    def test_variables_carry_kind(self) -> None:
        (var,) = _layer(LayerKind.GLOBAL_SECRET, TOKEN="t").variables()
        assert var.is_secret is True
        assert var.origin is LayerKind.GLOBAL_SECRET

    def test_empty(self) -> None:
        assert len(Layer.empty(LayerKind.PACKAGE_CONFIG)) == 0


class TestPrecedence:
    """X is set in every layer; the highest present layer decides."""

    layers = {
        LayerKind.GLOBAL_CONFIG: "1",
        LayerKind.GLOBAL_SECRET: "2",
        LayerKind.PACKAGE_CONFIG: "3",
        LayerKind.PACKAGE_SECRET: "4",
    }

    def _store(self, *kinds: LayerKind) -> VariableStore:
        return VariableStore.merge([_layer(k, X=self.layers[k]) for k in kinds])

    def test_all_four_layers(self) -> None:
        assert self._store(*self.layers).value("X") == "4"

    def test_without_package_secret(self) -> None:
        store = self._store(
            LayerKind.GLOBAL_CONFIG, LayerKind.GLOBAL_SECRET, LayerKind.PACKAGE_CONFIG
        )
        assert store.value("X") == "3"

    def test_global_layers_only(self) -> None:
        assert self._store(LayerKind.GLOBAL_CONFIG, LayerKind.GLOBAL_SECRET).value("X") == "2"

    def test_layer_order_given_does_not_matter(self) -> None:
        store = self._store(*reversed(list(self.layers)))
        assert store.value("X") == "4"

    def test_with_layers_over_global_snapshot(self) -> None:
        base = self._store(LayerKind.GLOBAL_CONFIG, LayerKind.GLOBAL_SECRET)
        store = base.with_layers(_layer(LayerKind.PACKAGE_CONFIG, X="3"))
        assert store.value("X") == "3"
        assert base.value("X") == "2"


class TestSecretFlag:
    def test_secret_stays_secret_when_overridden_by_config(self) -> None:
        store = VariableStore.merge(
            [
                _layer(LayerKind.GLOBAL_SECRET, TOKEN="global"),
                _layer(LayerKind.PACKAGE_CONFIG, TOKEN="package"),
            ]
        )
        var = store["TOKEN"]
        assert var.value == "package"
        assert var.is_secret is True
        assert var.origin is LayerKind.PACKAGE_CONFIG

    def test_config_becomes_secret_when_overridden_by_secret(self) -> None:
        store = VariableStore.merge(
            [
                _layer(LayerKind.GLOBAL_CONFIG, TOKEN="plain"),
                _layer(LayerKind.PACKAGE_SECRET, TOKEN="hidden"),
            ]
        )
        assert store["TOKEN"].is_secret is True

    def test_secret_values(self) -> None:
        store = VariableStore.merge(
            [
                _layer(LayerKind.GLOBAL_CONFIG, HOST="h"),
                _layer(LayerKind.GLOBAL_SECRET, PASSWORD="pw", EMPTY=""),
            ]
        )
        assert store.secret_values() == frozenset({"pw"})


class TestVariableStore:
    def test_flatten(self) -> None:
        store = VariableStore.merge(
            [_layer(LayerKind.GLOBAL_CONFIG, A="1"), _layer(LayerKind.GLOBAL_SECRET, B="2")]
        )
        assert store.flatten() == {"A": "1", "B": "2"}

    def test_masked_hides_secrets(self) -> None:
        store = VariableStore.merge(
            [_layer(LayerKind.GLOBAL_CONFIG, A="1"), _layer(LayerKind.GLOBAL_SECRET, B="2")]
        )
        assert store.masked() == {"A": "1", "B": MASK}

    def test_repr_does_not_leak_secrets(self) -> None:
        store = VariableStore.merge([_layer(LayerKind.GLOBAL_SECRET, PASSWORD="hunter2")])
        assert "hunter2" not in repr(store)

    def test_mapping_protocol(self) -> None:
        store = VariableStore.merge([_layer(LayerKind.GLOBAL_CONFIG, A="1", B="2")])
        assert len(store) == 2
        assert set(store) == {"A", "B"}
        assert "A" in store
        assert store.get("missing") is None
        assert store.value("missing", "fallback") == "fallback"

    def test_merge_returns_new_store(self) -> None:
        base = VariableStore.merge([_layer(LayerKind.GLOBAL_CONFIG, A="1")])
        merged = base.with_layers(_layer(LayerKind.PACKAGE_CONFIG, A="2"))
        assert merged is not base
        assert base.value("A") == "1"
