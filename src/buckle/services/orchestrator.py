"""Orchestrator — resolve a config root into a plan, then apply it.

State machine::

    Init -> GlobalConfigLoaded -> PackagesDiscovered -> PlanResolved
         -> Executing(package) ... -> Done

``Failed`` is reachable from every state on the first fatal error. Nothing
is rolled back: packages applied before the failure stay applied.

Per package, strictly in this order: merge the package's config and
secret layers over the global snapshot, render its templates, deploy its
files, run its provisioning scripts. The secret values of the active
store are registered with the redactor for that package's whole window.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any

import structlog

from buckle.config.models import FilesConfig, InterpretersConfig
from buckle.config.settings import BuckleSettings
from buckle.domain.package import Package
from buckle.domain.redaction import redact, use_redactor
from buckle.domain.variables import LayerKind, VariableStore
from buckle.errors import BuckleError
from buckle.infrastructure.config_loader import load_layer
from buckle.infrastructure.deployer import deploy_files, render_mapping
from buckle.infrastructure.filesystem import CONFIG_DIR, PACKAGES_DIR, SECRETS_DIR, require_dir
from buckle.infrastructure.graph.resolver import resolve_order
from buckle.infrastructure.loader import load_packages, package_files, package_scripts
from buckle.infrastructure.scripts import run_script_file
from buckle.services.telemetry import trace_span

log = structlog.get_logger(__name__)


class OrchestratorState(StrEnum):
    INIT = "init"
    GLOBAL_CONFIG_LOADED = "global_config_loaded"
    PACKAGES_DISCOVERED = "packages_discovered"
    PLAN_RESOLVED = "plan_resolved"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Transition:
    """One recorded state change."""

    state: OrchestratorState
    package: str | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    """Dependency-valid package order plus everything needed to apply it.

    Computed once by :meth:`Orchestrator.resolve` and never mutated.
    """

    config_root: Path
    order: tuple[str, ...]
    packages: Mapping[str, Package]
    globals: VariableStore

    def __post_init__(self) -> None:
        object.__setattr__(self, "packages", MappingProxyType(dict(self.packages)))

    def __iter__(self) -> Iterator[Package]:
        for pkg_id in self.order:
            yield self.packages[pkg_id]

    def __len__(self) -> int:
        return len(self.order)


@dataclass(frozen=True, slots=True)
class PackageOutcome:
    package: str
    deployed: tuple[Path, ...] = ()
    scripts: tuple[Path, ...] = ()


@dataclass(frozen=True, slots=True)
class Outcome:
    packages: tuple[PackageOutcome, ...] = field(default_factory=tuple)

    @property
    def applied(self) -> list[str]:
        return [p.package for p in self.packages]


class Orchestrator:
    """Drives one resolve/apply run and records its state transitions.

    Usage::

        orch = Orchestrator.from_settings(settings)
        plan = orch.resolve(settings.config_root)
        outcome = orch.apply(plan)
    """

    def __init__(
        self,
        *,
        interpreters: InterpretersConfig | None = None,
        files: FilesConfig | None = None,
    ) -> None:
        self._interpreters = interpreters or InterpretersConfig()
        self._files = files or FilesConfig()
        self._transitions: list[Transition] = [Transition(OrchestratorState.INIT)]
        self._applied: list[str] = []

    @classmethod
    def from_settings(cls, settings: BuckleSettings) -> Orchestrator:
        return cls(interpreters=settings.interpreters, files=settings.files)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._transitions[-1].state

    @property
    def transitions(self) -> tuple[Transition, ...]:
        return tuple(self._transitions)

    @property
    def applied(self) -> list[str]:
        """Ids of packages fully applied by the last :meth:`apply` call."""
        return list(self._applied)

    def _transition(
        self,
        state: OrchestratorState,
        *,
        package: str | None = None,
        reason: str | None = None,
    ) -> None:
        self._transitions.append(Transition(state, package=package, reason=reason))
        log.info("orchestrator.transition", state=str(state), package=package, reason=reason)

    def _fail(self, exc: BuckleError) -> None:
        self._transition(OrchestratorState.FAILED, package=exc.package, reason=exc.code)

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    def resolve(self, config_root: Path) -> ExecutionPlan:
        """Load global config and all packages, then order them.

        Raises:
            BuckleError: Any loading, parsing or dependency failure.
        """
        root = Path(config_root)
        try:
            with trace_span("resolve.globals"):
                require_dir(root)
                config = load_layer(
                    root / CONFIG_DIR, LayerKind.GLOBAL_CONFIG, interpreters=self._interpreters
                )
                base = VariableStore.merge([config])
                secrets = load_layer(
                    root / SECRETS_DIR,
                    LayerKind.GLOBAL_SECRET,
                    env=base.flatten(),
                    interpreters=self._interpreters,
                )
                store = base.with_layers(secrets)
            self._transition(OrchestratorState.GLOBAL_CONFIG_LOADED)

            with use_redactor(store.secret_values()):
                with trace_span("resolve.packages"):
                    packages = load_packages(root / PACKAGES_DIR)
                self._transition(OrchestratorState.PACKAGES_DISCOVERED)

                with trace_span("resolve.order", packages=len(packages)):
                    order = resolve_order(packages)
        except BuckleError as exc:
            self._fail(exc)
            raise

        plan = ExecutionPlan(
            config_root=root,
            order=tuple(order),
            packages=packages,
            globals=store,
        )
        self._transition(OrchestratorState.PLAN_RESOLVED)
        return plan

    def package_store(self, plan: ExecutionPlan, package: Package) -> VariableStore:
        """Merge *package*'s config and secret layers over the global store.

        Config-discovery scripts in the package's ``config/`` see the global
        variables; those in its ``secrets/`` also see the package config.
        """
        try:
            config = load_layer(
                package.config_dir,
                LayerKind.PACKAGE_CONFIG,
                env=plan.globals.flatten(),
                interpreters=self._interpreters,
            )
            with_config = plan.globals.with_layers(config)
            secrets = load_layer(
                package.secrets_dir,
                LayerKind.PACKAGE_SECRET,
                env=with_config.flatten(),
                interpreters=self._interpreters,
            )
        except BuckleError as exc:
            exc.with_package(package.id)
            raise
        return with_config.with_layers(secrets)

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def apply(self, plan: ExecutionPlan) -> Outcome:
        """Apply every package in plan order, halting on the first error.

        Raises:
            BuckleError: The first fatal error, tagged with its package id.
                :attr:`applied` lists the packages completed before it.
        """
        self._applied = []
        outcomes: list[PackageOutcome] = []
        with use_redactor(plan.globals.secret_values()):
            for package in plan:
                self._transition(OrchestratorState.EXECUTING, package=package.id)
                try:
                    outcomes.append(self._apply_package(plan, package))
                except BuckleError as exc:
                    exc.with_package(package.id)
                    self._fail(exc)
                    raise
                self._applied.append(package.id)
        self._transition(OrchestratorState.DONE)
        return Outcome(packages=tuple(outcomes))

    def _apply_package(self, plan: ExecutionPlan, package: Package) -> PackageOutcome:
        with trace_span("package.apply", package=package.id) as span:
            store = self.package_store(plan, package)
            with use_redactor(store.secret_values()):
                variables = store.flatten()
                mappings = package_files(package, self._files.default_target)

                # Render everything up front so a bad template writes nothing.
                rendered = {m.source: render_mapping(m, variables) for m in mappings if m.is_template}
                deployed = deploy_files(mappings, variables, rendered=rendered)

                scripts: list[Path] = []
                for script in package_scripts(package):
                    with trace_span("script.run", script=script.name) as script_span:
                        result = run_script_file(script, variables, interpreters=self._interpreters)
                        if script_span is not None:
                            script_span.annotate("stdout", result.stdout)
                            script_span.annotate("stderr", result.stderr)
                    scripts.append(script.path)

            if span is not None:
                span.annotate("files", len(deployed))
                span.annotate("scripts", len(scripts))
        log.info(
            "package.applied",
            package=package.id,
            files=len(deployed),
            scripts=len(scripts),
        )
        return PackageOutcome(package=package.id, deployed=tuple(deployed), scripts=tuple(scripts))

    # ------------------------------------------------------------------
    # Dry run
    # ------------------------------------------------------------------

    def describe(self, plan: ExecutionPlan) -> dict[str, Any]:
        """What :meth:`apply` would do, with every secret masked.

        Config-discovery scripts run (they produce the values shown); no
        file is written and no provisioning script runs.
        """
        entries: list[dict[str, Any]] = []
        with use_redactor(plan.globals.secret_values()):
            for package in plan:
                store = self.package_store(plan, package)
                with use_redactor(store.secret_values()):
                    entries.append(self._describe_package(package, store))
            return {
                "config_root": str(plan.config_root),
                "order": list(plan.order),
                "globals": redact(plan.globals.masked()),
                "packages": entries,
            }

    def _describe_package(self, package: Package, store: VariableStore) -> dict[str, Any]:
        try:
            mappings = package_files(package, self._files.default_target)
            scripts = package_scripts(package)
        except BuckleError as exc:
            exc.with_package(package.id)
            raise
        own = {
            name: var.display_value()
            for name, var in sorted(store.items())
            if var.origin in (LayerKind.PACKAGE_CONFIG, LayerKind.PACKAGE_SECRET)
        }
        return redact(
            {
                "id": package.id,
                "description": package.description,
                "needs": sorted(package.needs),
                "variables": own,
                "files": [
                    {
                        "source": str(Path(m.group) / m.relative_path),
                        "destination": str(m.destination),
                        "template": m.is_template,
                    }
                    for m in mappings
                ],
                "scripts": [s.name for s in scripts],
            }
        )


def resolve(config_root: Path, settings: BuckleSettings | None = None) -> ExecutionPlan:
    """Resolve *config_root* into an :class:`ExecutionPlan`."""
    orch = Orchestrator.from_settings(settings) if settings else Orchestrator()
    return orch.resolve(config_root)


def apply(plan: ExecutionPlan, settings: BuckleSettings | None = None) -> Outcome:
    """Apply a resolved *plan*."""
    orch = Orchestrator.from_settings(settings) if settings else Orchestrator()
    return orch.apply(plan)
