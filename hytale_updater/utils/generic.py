import os
import shutil
import stat
from datetime import datetime
from errno import EACCES
from pathlib import Path
from stat import S_IRWXG, S_IRWXO, S_IRWXU
from typing import Any, Callable

from loguru import logger

from hytale_updater.utils.constants import TIMESTAMP_FORMAT


def rmtree(path: str | Path) -> bool:
    """Wrapper for improved rmtree error handling.
    Checks if the path exists and is a directory before attempting to delete it.
    Read-only entries are made writable and retried once.

    :param path: Path to directory to be deleted.
    :type path: str | Path
    :return: True if the directory was deleted, False if there was nothing to delete.
    :raises OSError: If the directory exists but could not be removed.
    """
    if isinstance(path, str):
        path = Path(path)

    if not path.exists():
        logger.debug(f"Tried to delete directory that does not exist: {path}")
        return False

    if not path.is_dir() or path.is_symlink():
        raise NotADirectoryError(f"rmtree path is not a directory: {path}")

    shutil.rmtree(path, onexc=attempt_chmod)
    logger.debug(f"Deleted: {path}")
    return True


def attempt_chmod(
    func: Callable[[str], Any], path: str, excinfo: BaseException
) -> None:
    if (
        isinstance(excinfo, OSError)
        and func in (os.rmdir, os.remove, os.unlink)
        and excinfo.errno == EACCES
    ):
        os.chmod(path, S_IRWXU | S_IRWXG | S_IRWXO)  # 0777
        func(path)
        return
    raise excinfo


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree."""
    if path.is_dir() and not path.is_symlink():
        rmtree(path)
    else:
        path.unlink()


def make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def unique_path(folder: Path, name: str) -> Path:
    """Return folder / name, appending -1, -2, ... until the path does not exist."""
    candidate = folder / name
    suffix = 1
    while candidate.exists():
        candidate = folder / f"{name}-{suffix}"
        suffix += 1
    return candidate


def format_file_size(size_in_bytes: int) -> str:
    """Format a byte count as a human readable string."""
    size = float(size_in_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
