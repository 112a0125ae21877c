from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from hytale_updater.models.run_context import RunContext
from hytale_updater.utils.constants import BACKUP_PREFIX, LOG_PREFIX
from hytale_updater.utils.generic import remove_path, rmtree


def cleanup_run_artifacts(
    context: RunContext, force_cleanup: bool = False, dry_run: bool = False
) -> list[Path]:
    """
    Delete or keep the temporary artifacts of a finished run.

    A successful run, or any run with force_cleanup, removes the downloader
    install folder, the download/extraction temp root and the staging folder.
    A failed run keeps them for inspection and logs where they are.
    Backup folders are never touched here.

    :return: The paths that were deleted
    """
    if dry_run:
        return []

    if not (context.succeeded or force_cleanup):
        logger.error("Update failed. Temp files preserved:")
        logger.error(f"Temp: {context.temp_root or '<none>'}")
        logger.error(f"Staging: {context.installation.staging_folder}")
        if context.backup_folder is not None:
            logger.error(f"Backup: {context.backup_folder}")
        return []

    removed = []
    for path in (
        context.downloader_temp,
        context.temp_root,
        context.installation.staging_folder,
    ):
        if path is None or not path.exists():
            continue
        try:
            rmtree(path)
            removed.append(path)
        except OSError as e:
            logger.warning(f"Failed to remove {path}: {e}")
    return removed


def cleanup_old_backups(
    backups_folder: Path, keep: int, exclude: Optional[Path] = None
) -> list[Path]:
    """
    Deletes old backup folders, keeping only the specified number of recent ones.
    """
    return _prune(
        backups_folder.glob(f"{BACKUP_PREFIX}*"), keep, exclude, "backup"
    )


def cleanup_old_logs(
    logs_folder: Path, keep: int, exclude: Optional[Path] = None
) -> list[Path]:
    """
    Deletes old run logs, keeping only the specified number of recent ones.
    """
    return _prune(logs_folder.glob(f"{LOG_PREFIX}*.log"), keep, exclude, "log")


def _prune(
    candidates: Iterable[Path], keep: int, exclude: Optional[Path], kind: str
) -> list[Path]:
    if keep == -1:
        logger.debug(f"Skipping {kind} cleanup because retention count is -1 (keep all).")
        return []

    try:
        entries = sorted(
            candidates, key=lambda p: p.stat().st_mtime, reverse=True
        )
    except OSError as e:
        logger.warning(f"Failed to list old {kind}s: {e}")
        return []

    if exclude is not None:
        # The current run's artifact always counts as one of the kept entries
        entries = [p for p in entries if p != exclude]
        keep = max(keep - 1, 0)

    removed = []
    for old in entries[keep:]:
        try:
            remove_path(old)
            removed.append(old)
            logger.info(f"Deleted old {kind}: {old}")
        except OSError as e:
            logger.warning(f"Failed to delete old {kind} {old}: {e}")
    return removed
