"""Layered variables — parsing, layers, and the immutable VariableStore.

Precedence (lowest to highest):
  1. Global config    — ``<root>/config``
  2. Global secrets   — ``<root>/secrets``
  3. Package config   — ``<root>/packages/<id>/config``
  4. Package secrets  — ``<root>/packages/<id>/secrets``

Later layers overwrite earlier ones on key collision. A key that was secret
in any merged layer stays secret, even when a non-secret layer supplies the
final value.

INVARIANT: a VariableStore is never mutated. Every merge returns a new one.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from types import MappingProxyType

from buckle.errors import ConfigurationError

MASK = "******"


class LayerKind(IntEnum):
    """Variable sources, valued by merge precedence."""

    GLOBAL_CONFIG = 0
    GLOBAL_SECRET = 1
    PACKAGE_CONFIG = 2
    PACKAGE_SECRET = 3

    @property
    def is_secret(self) -> bool:
        return self in (LayerKind.GLOBAL_SECRET, LayerKind.PACKAGE_SECRET)

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True, slots=True)
class Variable:
    name: str
    value: str
    is_secret: bool
    origin: LayerKind

    def display_value(self) -> str:
        """The value as it may appear in plans and logs."""
        return MASK if self.is_secret else self.value


# ---------------------------------------------------------------------------
# Line grammar
# ---------------------------------------------------------------------------


def parse_variable_lines(content: str, *, source: Path | str | None = None) -> dict[str, str]:
    """Parse ``KEY=value`` lines into an ordered dict.

    Blank lines and lines starting with ``#`` are ignored. There is no
    quoting or escaping: the value is the literal text after the first ``=``.
    Any other line is a :class:`ConfigurationError` pointing at its line.
    The offending text is left out of the error: it may be a secret
    missing its ``KEY=`` prefix.

    Lines end at ``\\n`` (or ``\\r\\n``) only, so values may carry any other
    control character.

    Examples:
        >>> parse_variable_lines("# comment\\nHOST=example.org\\n\\nURL=a=b")
        {'HOST': 'example.org', 'URL': 'a=b'}
    """
    values: dict[str, str] = {}
    lines = content.replace("\r\n", "\n").split("\n")
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            msg = "Expected a KEY=value line"
            raise ConfigurationError(msg, path=source, line=lineno)
        values[key] = value
    return values


# ---------------------------------------------------------------------------
# Layer
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Layer:
    """Variables read from one source directory.

    ``sources`` lists the files the values came from, in read order.
    """

    kind: LayerKind
    values: Mapping[str, str] = field(default_factory=dict)
    sources: tuple[Path, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @classmethod
    def empty(cls, kind: LayerKind) -> Layer:
        return cls(kind=kind)

    def __len__(self) -> int:
        return len(self.values)

    def variables(self) -> Iterator[Variable]:
        for name, value in self.values.items():
            yield Variable(name=name, value=value, is_secret=self.kind.is_secret, origin=self.kind)


# ---------------------------------------------------------------------------
# VariableStore
# ---------------------------------------------------------------------------


class VariableStore(Mapping[str, Variable]):
    """Immutable, merged view over one or more layers."""

    __slots__ = ("_vars",)

    def __init__(self, variables: Iterable[Variable] = ()) -> None:
        self._vars: Mapping[str, Variable] = MappingProxyType({v.name: v for v in variables})

    # Mapping protocol
    def __getitem__(self, name: str) -> Variable:
        return self._vars[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def __repr__(self) -> str:
        masked = ", ".join(f"{k}={v}" for k, v in self.masked().items())
        return f"VariableStore({masked})"

    @classmethod
    def merge(cls, layers: Iterable[Layer], *, base: VariableStore | None = None) -> VariableStore:
        """Merge *layers* onto *base* (or an empty store), last write wins.

        Layers are applied in :class:`LayerKind` precedence order; layers of
        the same kind keep their given order.
        """
        merged: dict[str, Variable] = dict(base._vars) if base is not None else {}
        for layer in sorted(layers, key=lambda lyr: lyr.kind):
            for var in layer.variables():
                previous = merged.get(var.name)
                if previous is not None and previous.is_secret and not var.is_secret:
                    var = Variable(var.name, var.value, True, var.origin)
                merged[var.name] = var
        return cls(merged.values())

    def with_layers(self, *layers: Layer) -> VariableStore:
        """Return a new store with *layers* merged over this one."""
        return VariableStore.merge(layers, base=self)

    def value(self, name: str, default: str | None = None) -> str | None:
        var = self._vars.get(name)
        return var.value if var is not None else default

    def flatten(self) -> dict[str, str]:
        """Plain ``name -> value`` map for templates and child environments."""
        return {name: var.value for name, var in self._vars.items()}

    def secret_values(self) -> frozenset[str]:
        return frozenset(v.value for v in self._vars.values() if v.is_secret and v.value)

    def masked(self) -> dict[str, str]:
        """``name -> value`` with secret values replaced by :data:`MASK`."""
        return {name: var.display_value() for name, var in sorted(self._vars.items())}
