"""ApplyService — resolve the config root and apply every package."""

from __future__ import annotations

from buckle.errors import BuckleError
from buckle.services.base import BaseService
from buckle.services.result import ServiceResult
from buckle.services.telemetry import traced


class ApplyService(BaseService):
    """Applies packages in plan order; stops at the first fatal error.

    A failed result still reports which packages were applied before the
    failure, under ``error.detail["applied"]``.
    """

    @traced
    def apply(self) -> ServiceResult:
        orch = self._orchestrator()
        try:
            plan = orch.resolve(self.config_root)
            outcome = orch.apply(plan)
        except BuckleError as exc:
            return ServiceResult.failure("apply", exc, applied=orch.applied)

        packages = [
            {
                "id": p.package,
                "files": [str(d) for d in p.deployed],
                "scripts": [s.name for s in p.scripts],
            }
            for p in outcome.packages
        ]
        return ServiceResult(
            ok=True,
            op="apply",
            data={
                "config_root": str(plan.config_root),
                "applied": outcome.applied,
                "packages": packages,
                "count": len(packages),
            },
        )
