"""
Main CLI entry point for the Hytale server updater.

This module defines the Click command group and registers all subcommands.
"""

import click

from hytale_updater.cli.update import update
from hytale_updater.utils.app_info import AppInfo
from hytale_updater.utils.log_setup import configure_console_logging


@click.group()
@click.version_option(version=AppInfo().app_version, prog_name="hytale-updater")
@click.option("--debug", is_flag=True, help="Show debug output on the console.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Hytale server updater

    Keeps an installed Hytale dedicated server up to date while preserving
    worlds, mods, configuration and credentials.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    configure_console_logging(debug)


# Register subcommands
cli.add_command(update)


if __name__ == "__main__":
    cli()
