"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``. Sets up logging and telemetry, and centralizes
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING

import click

from buckle.config.logging import configure_logging
from buckle.output.formatters import OutputSettings, format_result
from buckle.services.telemetry import enable_telemetry, shutdown_telemetry

if TYPE_CHECKING:
    from buckle.config.settings import BuckleSettings
    from buckle.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: BuckleSettings) -> None:
        self.settings = settings

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            enable_telemetry(hostname=socket.gethostname())

    def bind(self, ctx: click.Context) -> AppContext:
        """Flush log output once the root context closes."""
        ctx.call_on_close(shutdown_telemetry)
        return self

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
