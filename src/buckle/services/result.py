"""ServiceResult and ServiceError — what every service operation returns.

The CLI consumes only this type: it never sees engine exceptions.
Engine errors (:class:`buckle.errors.BuckleError`) are converted here so
their ``code`` and context survive into JSON output.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from buckle.errors import BuckleError


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: BuckleError, **extra: Any) -> ServiceError:
        return cls(code=exc.code, message=exc.message, detail={**exc.detail(), **extra})


class ServiceResult(BaseModel):
    """Universal return type for service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (``"plan"`` or ``"apply"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry span tree with ``-v``).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        exc: BuckleError,
        *,
        data: dict[str, Any] | None = None,
        **extra: Any,
    ) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            data=data or {},
            error=ServiceError.from_exception(exc, **extra),
        )
