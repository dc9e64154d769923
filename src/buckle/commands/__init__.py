"""Subcommand modules for buckle.

Provides register_commands() which uses deferred imports to keep
``buckle --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the standalone commands on the root CLI group."""
    from buckle.commands.apply import apply
    from buckle.commands.plan import plan

    cli.add_command(plan)
    cli.add_command(apply)
