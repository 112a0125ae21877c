import shutil
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from hytale_updater.models.installation import ServerInstallation
from hytale_updater.models.run_context import ConfirmCallback, RunContext
from hytale_updater.utils.constants import (
    ASSETS_FILE,
    BACKUP_PREFIX,
    MAINTENANCE_FOLDER_NAME,
    PRESERVE_ITEMS,
    SERVER_SUBTREE,
)
from hytale_updater.utils.exception import ServerSubtreeMissingError
from hytale_updater.utils.generic import rmtree, timestamp, unique_path
from hytale_updater.utils.version_gate import write_version_record
from hytale_updater.utils.zip_extractor import extract_zip


class UpdateEngine:
    """
    Apply a downloaded server package to a live installation.

    The steps run strictly in order:

        extract -> validate -> stage -> backup and swap -> copy assets -> persist version

    Entries named in the preserve set are never staged, replaced or backed up.
    A failure at any step propagates to the caller. Nothing is rolled back
    automatically, the backup folder of the run holds every replaced entry.
    """

    def __init__(
        self,
        installation: ServerInstallation,
        preserve: Iterable[str] = PRESERVE_ITEMS,
        dry_run: bool = False,
    ) -> None:
        self.installation = installation
        self.preserve = frozenset(preserve) | {MAINTENANCE_FOLDER_NAME}
        self.dry_run = dry_run

    def is_preserved(self, name: str) -> bool:
        return name in self.preserve

    def apply(
        self, context: RunContext, confirm: Optional[ConfirmCallback] = None
    ) -> bool:
        """
        Run every step against the archive recorded on the run context.

        :param context: The current run, archive_path and extract_folder must be set
        :param confirm: Asked after the package was validated and before the
            installation is touched
        :return: False if the confirmation was declined, True otherwise
        """
        if self.dry_run:
            self._log_plan(context)
            return True

        if context.archive_path is None or context.extract_folder is None:
            raise ValueError("Run context has no archive to apply")

        server_folder = self.extract(context.archive_path, context.extract_folder)

        if confirm is not None and not confirm(
            f"Install the new server files into {self.installation.root}?"
        ):
            logger.warning("Update cancelled before any file was changed.")
            return False

        logger.info("Updating...")
        self.stage(server_folder, context)
        self.backup_and_swap(context)
        context.assets_destination = self.copy_assets(context.extract_folder)
        if context.new_version is not None:
            self.persist_version(context.new_version)
        return True

    def extract(self, archive_path: Path, extract_folder: Path) -> Path:
        """
        Unpack the package into a fresh folder and return its Server subtree.

        :raises ServerSubtreeMissingError: If the package has no Server folder
        """
        logger.info("Extracting...")
        if extract_folder.exists():
            rmtree(extract_folder)
        extract_zip(archive_path, extract_folder)

        server_folder = extract_folder / SERVER_SUBTREE
        if not server_folder.is_dir():
            raise ServerSubtreeMissingError(f"Server not found: {server_folder}")
        return server_folder

    def stage(self, server_folder: Path, context: RunContext) -> list[str]:
        """
        Copy the new top-level entries into a clean staging folder.

        Any staging folder left by an earlier run is destroyed first.
        The extracted source is copied, not moved, so it stays available
        for inspection if staging fails.
        """
        staging = self.installation.staging_folder
        context.staging_folder = staging
        if staging.exists():
            logger.debug(f"Removing stale staging folder: {staging}")
            rmtree(staging)
        staging.mkdir(parents=True)

        staged = []
        for entry in sorted(server_folder.iterdir(), key=lambda p: p.name):
            if self.is_preserved(entry.name):
                logger.debug(f"Preserving {entry.name}")
                continue
            destination = staging / entry.name
            if entry.is_dir() and not entry.is_symlink():
                shutil.copytree(entry, destination, symlinks=True)
            else:
                shutil.copy2(entry, destination, follow_symlinks=False)
            staged.append(entry.name)

        logger.debug(f"Staged {len(staged)} entries in {staging}")
        return staged

    def backup_and_swap(self, context: RunContext) -> list[str]:
        """
        Move every live entry about to be replaced into a new backup folder,
        then move its staged replacement into the installation root.

        Each entry is swapped with two renames on the same file system, old
        out first and new in second. Swapped names are appended to the change
        summary as they complete.
        """
        root = self.installation.root
        staging = self.installation.staging_folder

        backups = self.installation.backups_folder
        backups.mkdir(parents=True, exist_ok=True)
        backup_folder = unique_path(backups, f"{BACKUP_PREFIX}{timestamp()}")
        backup_folder.mkdir()
        context.backup_folder = backup_folder
        logger.info(f"Backing up replaced files to {backup_folder}")

        for staged in sorted(staging.iterdir(), key=lambda p: p.name):
            name = staged.name
            if self.is_preserved(name):
                continue
            live = root / name
            if live.exists() or live.is_symlink():
                shutil.move(str(live), str(backup_folder / name))
            shutil.move(str(staged), str(live))
            context.change_summary.append(name)
            logger.debug(f"Installed {name}")

        return context.change_summary

    def assets_destination(self) -> Path:
        """
        Where the assets bundle belongs.

        The installation root is preferred. The parent folder is used only when
        it already holds the bundle and the root does not, for layouts where the
        server folder sits below a shared assets folder.
        """
        root = self.installation.root
        if not (root / ASSETS_FILE).exists() and (root.parent / ASSETS_FILE).is_file():
            return root.parent / ASSETS_FILE
        return root / ASSETS_FILE

    def copy_assets(self, extract_folder: Path) -> Optional[Path]:
        source = extract_folder / ASSETS_FILE
        if not source.is_file():
            logger.debug(f"Package has no {ASSETS_FILE}")
            return None
        destination = self.assets_destination()
        shutil.copy2(source, destination)
        logger.info(f"Copied {ASSETS_FILE} to {destination}")
        return destination

    def persist_version(self, version: str) -> None:
        write_version_record(self.installation, version)

    def _log_plan(self, context: RunContext) -> None:
        staging = self.installation.staging_folder
        backups = self.installation.backups_folder
        logger.info(
            f"Dry run: would extract the package and stage {SERVER_SUBTREE}/ into {staging}, "
            f"backup into {backups / (BACKUP_PREFIX + '<timestamp>')}, "
            f"then swap into {self.installation.root}."
        )
        logger.info(
            f"Dry run: skipping preserved entries: {', '.join(sorted(self.preserve))}"
        )
        logger.info(f"Dry run: would copy {ASSETS_FILE} to {self.assets_destination()}")
        if context.new_version is not None:
            logger.info(
                f"Dry run: would write version file {self.installation.version_file}"
            )
