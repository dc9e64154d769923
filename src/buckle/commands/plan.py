"""Command: show the resolved execution plan without applying it."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from buckle.commands._context import AppContext


@click.command()
@click.pass_obj
def plan(app: AppContext) -> None:
    """Resolve packages and show what apply would do.

    Config-discovery scripts run; no files are written and no
    provisioning scripts run. Secret values are masked.
    """
    from buckle.services.plan import PlanService

    app.emit(PlanService(app.settings).plan())
