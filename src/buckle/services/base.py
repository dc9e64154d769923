"""BaseService — foundation for the CLI-facing services.

Every service receives the resolved :class:`BuckleSettings` at
construction time and builds a fresh :class:`Orchestrator` per operation.
Services never raise engine errors: they return a failed ServiceResult.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from buckle.services.orchestrator import Orchestrator

if TYPE_CHECKING:
    from buckle.config.settings import BuckleSettings


class BaseService:
    """Base for service-layer classes.

    Usage::

        class PlanService(BaseService):
            def plan(self) -> ServiceResult:
                orch = self._orchestrator()
                ...
    """

    def __init__(self, settings: BuckleSettings) -> None:
        self._settings = settings

    @property
    def config_root(self) -> Path:
        return self._settings.config_root

    def _orchestrator(self) -> Orchestrator:
        return Orchestrator.from_settings(self._settings)
