"""Secret redaction for logs, spans, and error payloads.

Secrets stay usable by child processes (they travel in the environment)
but must never reach observability output. The active :class:`Redactor`
lives in a ContextVar so the structlog processor, span annotations and
error builders all scrub against the same secret set.
"""

from __future__ import annotations

from collections.abc import Generator, Iterable
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from buckle.domain.variables import MASK


class Redactor:
    """Replace every occurrence of known secret values with :data:`MASK`."""

    __slots__ = ("_secrets",)

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        # Longest first so a secret containing another is masked whole.
        self._secrets: tuple[str, ...] = tuple(
            sorted({s for s in secrets if s}, key=lambda s: (-len(s), s))
        )

    def __bool__(self) -> bool:
        return bool(self._secrets)

    def __contains__(self, value: object) -> bool:
        return value in self._secrets

    def extend(self, secrets: Iterable[str]) -> Redactor:
        return Redactor((*self._secrets, *secrets))

    def redact(self, text: str) -> str:
        for secret in self._secrets:
            if secret in text:
                text = text.replace(secret, MASK)
        return text

    def redact_value(self, value: Any) -> Any:
        """Redact strings nested anywhere inside dicts, lists and tuples."""
        if not self._secrets:
            return value
        if isinstance(value, str):
            return self.redact(value)
        if isinstance(value, dict):
            return {k: self.redact_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self.redact_value(v) for v in value)
        return value


_EMPTY = Redactor()
_active: ContextVar[Redactor] = ContextVar("_active_redactor", default=_EMPTY)


def active_redactor() -> Redactor:
    return _active.get()


def redact(value: Any) -> Any:
    """Redact *value* against the active secret set."""
    return _active.get().redact_value(value)


@contextmanager
def use_redactor(secrets: Iterable[str]) -> Generator[Redactor]:
    """Add *secrets* to the active redactor for the duration of the block."""
    redactor = _active.get().extend(secrets)
    token = _active.set(redactor)
    try:
        yield redactor
    finally:
        _active.reset(token)
