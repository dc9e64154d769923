"""Command: apply every package to this host."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from buckle.commands._context import AppContext


@click.command()
@click.pass_obj
def apply(app: AppContext) -> None:
    """Deploy files and run scripts for every package, in dependency order.

    Stops at the first error. Packages applied before it stay applied.
    """
    from buckle.services.apply import ApplyService

    app.emit(ApplyService(app.settings).apply())
