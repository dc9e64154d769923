"""PlanService — resolve the config root and describe it without applying."""

from __future__ import annotations

from buckle.errors import BuckleError
from buckle.services.base import BaseService
from buckle.services.result import ServiceResult
from buckle.services.telemetry import trace_span, traced


class PlanService(BaseService):
    """Dry run: the resolved order plus per-package files, scripts and
    (masked) variables."""

    @traced
    def plan(self) -> ServiceResult:
        orch = self._orchestrator()
        try:
            plan = orch.resolve(self.config_root)
            with trace_span("plan.describe"):
                data = orch.describe(plan)
        except BuckleError as exc:
            return ServiceResult.failure("plan", exc)

        data["count"] = len(plan)
        return ServiceResult(ok=True, op="plan", data=data)
