import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger

from hytale_updater.models.installation import ServerInstallation
from hytale_updater.models.run_context import RunContext, RunOptions, UpdateOutcome
from hytale_updater.models.settings import Settings
from hytale_updater.utils.constants import (
    EXTRACT_FOLDER_NAME,
    PACKAGE_ARCHIVE_NAME,
    PRESERVE_ITEMS,
    TEMP_ROOT_PREFIX,
)
from hytale_updater.utils.downloader.wrapper import DownloaderInterface
from hytale_updater.utils.exception import ServerRunningError
from hytale_updater.utils.files import (
    cleanup_old_backups,
    cleanup_old_logs,
    cleanup_run_artifacts,
)
from hytale_updater.utils.log_setup import add_run_log_file
from hytale_updater.utils.process_guard import is_server_running
from hytale_updater.utils.run_lock import RunLock
from hytale_updater.utils.server_locator import locate_server
from hytale_updater.utils.update_engine import UpdateEngine
from hytale_updater.utils.version_gate import is_up_to_date, read_version_record


class UpdateController:
    """
    Runs one update of a server installation from start to finish.

    Locate -> running check -> fetch -> version gate -> update engine -> cleanup.

    Every fatal condition is raised as an UpdaterError subclass after the
    cleanup policy has been applied. The returned RunContext describes what
    the run did.
    """

    def __init__(
        self,
        settings: Settings,
        options: RunOptions,
        downloader: Optional[DownloaderInterface] = None,
    ) -> None:
        self.settings = settings
        self.options = options
        self.downloader = downloader or DownloaderInterface(
            settings, progress=options.progress
        )

    def locate(self) -> ServerInstallation:
        return locate_server(
            self.options.destination,
            self.options.base_folder,
            max_depth=self.settings.search_depth,
            destination_check=self.settings.destination_check,
        )

    def run(self) -> RunContext:
        installation = self.locate()
        logger.info(f"Server: {installation.root} ({installation.variant.marker})")

        if is_server_running(installation):
            raise ServerRunningError(
                "Hytale Server is currently running. Stop the server before updating."
            )

        context = RunContext(installation=installation, dry_run=self.options.dry_run)
        if self.options.dry_run:
            self._run_pipeline(context)
            return context

        with RunLock(installation.lock_file):
            handler_id, context.log_file = add_run_log_file(
                installation.logs_folder, debug=self.settings.debug_logging
            )
            try:
                try:
                    self._run_pipeline(context)
                finally:
                    cleanup_run_artifacts(
                        context,
                        force_cleanup=self.options.force_cleanup,
                        dry_run=self.options.dry_run,
                    )
                if context.outcome == UpdateOutcome.UPDATED:
                    self._prune(context)
            finally:
                logger.remove(handler_id)
        return context

    def _run_pipeline(self, context: RunContext) -> None:
        self.downloader.ensure_installed(context)

        if context.dry_run:
            logger.info("Download skipped (dry run).")
        else:
            context.temp_root = Path(tempfile.mkdtemp(prefix=TEMP_ROOT_PREFIX))
            context.archive_path = context.temp_root / PACKAGE_ARCHIVE_NAME
            context.extract_folder = context.temp_root / EXTRACT_FOLDER_NAME
            result = self.downloader.download_package(context.archive_path)
            context.new_version = result.version

        if self._is_up_to_date(context):
            logger.info(f"Up to date ({context.new_version}). Nothing to do.")
            context.outcome = UpdateOutcome.UP_TO_DATE
            context.succeeded = True
            return

        engine = UpdateEngine(
            context.installation,
            preserve=PRESERVE_ITEMS | set(self.settings.extra_preserve),
            dry_run=context.dry_run,
        )
        applied = engine.apply(context, confirm=self.options.confirm)

        context.succeeded = True
        if context.dry_run:
            context.outcome = UpdateOutcome.DRY_RUN
        elif not applied:
            context.outcome = UpdateOutcome.CANCELLED
        else:
            context.outcome = UpdateOutcome.UPDATED
            logger.info("Update Complete.")

    def _is_up_to_date(self, context: RunContext) -> bool:
        if context.new_version is None:
            logger.info("Downloader did not report a version, assuming it changed.")
            return False
        recorded = read_version_record(context.installation)
        logger.debug(f"Recorded version: {recorded}, new version: {context.new_version}")
        return is_up_to_date(context.new_version, recorded)

    def _prune(self, context: RunContext) -> None:
        if not self.settings.prune_on_success:
            return
        installation = context.installation
        cleanup_old_backups(
            installation.backups_folder,
            self.settings.backup_retention,
            exclude=context.backup_folder,
        )
        cleanup_old_logs(
            installation.logs_folder,
            self.settings.log_retention,
            exclude=context.log_file,
        )
