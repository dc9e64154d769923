"""Telemetry primitives — Span, @traced, trace_span.

Near-zero overhead when disabled (single ContextVar.get per call).
When enabled via ``--verbose``, builds hierarchical span trees with
timing and injects them into ServiceResult.meta.

Span annotations pass through the active redactor before they are
stored, so secret values never reach a span tree, its log line, or the
rendered output.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from buckle.domain.redaction import redact
from buckle.services.result import ServiceResult

# ── Context variables ────────────────────────────────────────────────

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)

# Recorded on root spans; set once by enable_telemetry().
_host_name: str | None = None


# ── Span ─────────────────────────────────────────────────────────────


@dataclass
class Span:
    """Hierarchical timing span with redacted annotations."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    ok: bool | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self, *, ok: bool = True) -> None:
        self.end_time = time.perf_counter()
        self.ok = ok

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = redact(value)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.ok is False:
            result["ok"] = False
        if self.annotations:
            result["annotations"] = self.annotations
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result


# ── trace_span context manager ───────────────────────────────────────


@contextmanager
def trace_span(name: str, **annotations: Any) -> Generator[Span | None]:
    """Create a child span under the current span.

    Yields None when telemetry is disabled or there is no parent span.
    """
    if not _verbose_enabled.get():
        yield None
        return

    parent = _current_span.get()
    if parent is None:
        yield None
        return

    child = Span(name=name, parent=parent)
    for key, value in annotations.items():
        child.annotate(key, value)
    parent.children.append(child)

    token = _current_span.set(child)
    try:
        yield child
    except BaseException:
        child.end(ok=False)
        _log_span(child)
        raise
    else:
        child.end()
        _log_span(child)
    finally:
        _current_span.reset(token)


# ── @traced decorator ────────────────────────────────────────────────


def _inject_meta(result: ServiceResult, span: Span) -> ServiceResult:
    """Create a new ServiceResult with span data merged into meta.

    Uses model_copy(update=...) since ServiceResult is frozen.
    """
    existing_meta = result.meta or {}
    return result.model_copy(update={"meta": {**existing_meta, "telemetry": span.to_dict()}})


def _log_span(span: Span) -> None:
    log = structlog.get_logger("buckle.telemetry")
    log.debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        ok=span.ok,
        children=len(span.children),
        **span.annotations,
    )


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Decorator: time a service method and inject span data into ServiceResult.meta.

    No-op when telemetry is disabled.
    """

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _verbose_enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        if _host_name:
            span.annotate("host.hostname", _host_name)
        token = _current_span.set(span)
        try:
            result = func(*args, **kwargs)
        except Exception:
            span.end(ok=False)
            _current_span.reset(token)
            _log_span(span)
            raise

        _current_span.reset(token)
        ok = result.ok if isinstance(result, ServiceResult) else True
        span.end(ok=ok)

        if isinstance(result, ServiceResult):
            result = _inject_meta(result, span)  # type: ignore[assignment]
        _log_span(span)

        return result

    return wrapper


# ── Public helpers ───────────────────────────────────────────────────

def enable_telemetry(*, hostname: str | None = None) -> None:
    """Enable verbose telemetry (called by AppContext at startup)."""
    global _host_name
    _host_name = hostname
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    """Disable verbose telemetry."""
    _verbose_enabled.set(False)


def get_current_span() -> Span | None:
    """Get the current active span (for manual annotation)."""
    if not _verbose_enabled.get():
        return None
    return _current_span.get()


def annotate(key: str, value: Any) -> None:
    """Annotate the current span, if any. Values are redacted."""
    span = get_current_span()
    if span is not None:
        span.annotate(key, value)


def shutdown_telemetry() -> None:
    """Flush every logging handler before the process exits.

    Package execution never waits on log output; this is the single
    synchronization point, run once when the CLI context closes.
    """
    for handler in logging.getLogger().handlers:
        handler.flush()
