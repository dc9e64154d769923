"""Root CLI group for buckle with global flags and command registration."""

from __future__ import annotations

import click

from buckle import __version__
from buckle.commands import register_commands
from buckle.commands._context import AppContext
from buckle.config.settings import BuckleSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="buckle")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option(
    "-c",
    "--config",
    "config_root",
    envvar="BUCKLE_CONFIG",
    default=None,
    type=click.Path(file_okay=False, path_type=str),
    help="Config root directory (default: current directory).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_root: str | None,
) -> None:
    """buckle — bootstrap a host from dependency-ordered packages."""
    settings = BuckleSettings.from_cli(
        config_root=config_root,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings).bind(ctx)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
