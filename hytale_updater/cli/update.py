"""
update subcommand: bring a server installation to the latest release.
"""

import sys
from pathlib import Path
from typing import Any, Optional

import click
from loguru import logger

from hytale_updater.controllers.update_controller import UpdateController
from hytale_updater.models.run_context import RunContext, RunOptions, UpdateOutcome
from hytale_updater.models.settings import load_settings
from hytale_updater.utils.constants import DestinationCheck
from hytale_updater.utils.exception import UpdaterError
from hytale_updater.utils.log_setup import configure_console_logging


class DownloadProgress:
    """Render downloader percentages as a click progress bar on stderr."""

    def __init__(self) -> None:
        self._bar: Any = None
        self._percent = 0

    def __call__(self, percent: float) -> None:
        value = int(percent)
        # A retry starts over from zero
        if self._bar is None or value < self._percent:
            self.close()
            self._bar = click.progressbar(length=100, label="Downloading", file=sys.stderr)
            self._percent = 0
        if value > self._percent:
            self._bar.update(value - self._percent)
            self._percent = value

    def close(self) -> None:
        if self._bar is not None:
            self._bar.render_finish()
            self._bar = None


def confirm_update(message: str) -> bool:
    return click.confirm(message, default=False, err=True)


@click.command("update")
@click.option(
    "--destination",
    "-d",
    type=click.Path(path_type=Path, file_okay=False),
    envvar="HYTALE_UPDATER_DESTINATION",
    help="Path to the Hytale server directory. Searched for from the current directory when omitted.",
)
@click.option(
    "--force-cleanup",
    is_flag=True,
    help="Remove temp/staging files even if the update fails.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would happen without making changes.",
)
@click.option(
    "--confirm",
    "confirm_first",
    is_flag=True,
    help="Ask before the server files are replaced.",
)
@click.option(
    "--lenient-destination",
    is_flag=True,
    help="Accept a --destination without HytaleServer.jar or HytaleServer.aot.",
)
@click.option(
    "--settings",
    "settings_file",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Settings JSON file to use instead of the user settings.",
)
@click.option(
    "--progress/--no-progress",
    default=True,
    show_default=True,
    help="Show a download progress bar.",
)
@click.pass_context
def update(
    ctx: click.Context,
    destination: Optional[Path],
    force_cleanup: bool,
    dry_run: bool,
    confirm_first: bool,
    lenient_destination: bool,
    settings_file: Optional[Path],
    progress: bool,
) -> None:
    """Update a Hytale server in place.

    Downloads the latest server package with hytale-downloader, backs up
    every file it replaces and keeps mods, universe, logs, configuration
    and credentials untouched.

    Examples:

    \b
      # Update the server found below the current directory
      hytale-updater update

    \b
      # Update a specific server and see what would change first
      hytale-updater update -d /srv/hytale --dry-run
    """
    settings = load_settings(settings_file)
    debug = bool(ctx.obj and ctx.obj.get("debug"))
    if settings.debug_logging and not debug:
        configure_console_logging(True)
    if lenient_destination:
        settings.destination_check = DestinationCheck.LENIENT

    reporter = DownloadProgress() if progress else None
    options = RunOptions(
        destination=destination,
        base_folder=Path.cwd(),
        dry_run=dry_run,
        force_cleanup=force_cleanup,
        confirm=confirm_update if confirm_first else None,
        progress=reporter,
    )

    try:
        context = UpdateController(settings, options).run()
    except UpdaterError as e:
        logger.error(str(e))
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user. Temp and staging files were left in place.")
        sys.exit(130)
    except Exception:
        logger.exception("Update failed with an unexpected error")
        sys.exit(1)
    finally:
        if reporter is not None:
            reporter.close()

    report_summary(context)


def report_summary(context: RunContext) -> None:
    if context.outcome == UpdateOutcome.UPDATED:
        if context.change_summary:
            logger.info(f"Changed: {', '.join(context.change_summary)}")
        else:
            logger.info("Changed: nothing")
        if context.backup_folder is not None:
            logger.info(f"Replaced files were backed up to {context.backup_folder}")
    elif context.outcome == UpdateOutcome.CANCELLED:
        logger.info("No files were changed.")
    elif context.outcome == UpdateOutcome.DRY_RUN:
        logger.info("Dry run complete. No files were changed.")
