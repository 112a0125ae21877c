"""ZIP file operations for validating and extracting update packages.

This module provides:
- validate_zip_integrity: integrity check used after every download attempt
- extract_zip: extraction into a target folder
"""

import os
import shutil
import time
from pathlib import Path
from zipfile import BadZipFile, ZipFile

from loguru import logger

__all__ = [
    "validate_zip_integrity",
    "extract_zip",
    "BadZipFile",
]


def validate_zip_integrity(zip_path: str | Path) -> tuple[bool, str]:
    """Validate ZIP file integrity.

    Opens the archive and CRC-checks every member. Any error counts as corrupt.

    Args:
        zip_path: Path to ZIP file to validate

    Returns:
        Tuple of (is_valid, error_message). If valid, error_message is empty.

    Example:
        >>> is_valid, error = validate_zip_integrity("game.zip")
        >>> if not is_valid:
        ...     print(f"ZIP validation failed: {error}")
    """
    try:
        with ZipFile(zip_path) as zipobj:
            corruption_info = zipobj.testzip()
            if corruption_info is not None:
                return False, f"ZIP file corrupted at: {corruption_info}"
        logger.debug(f"ZIP file validated successfully: {zip_path}")
        return True, ""
    except BadZipFile as e:
        logger.warning(f"Invalid ZIP file: {e}")
        return False, f"Invalid ZIP file: {str(e)}"
    except Exception as e:
        logger.warning(f"Failed to validate ZIP: {e}")
        return False, f"Error validating ZIP: {str(e)}"


def extract_zip(zip_path: str | Path, target_path: str | Path) -> int:
    """Extract a ZIP archive into target_path.

    Members that would land outside target_path are refused. Unix permission
    bits stored in the archive are restored so executables stay executable.

    Args:
        zip_path: Path to ZIP file to extract
        target_path: Destination directory, created if missing

    Returns:
        Number of archive members extracted

    Raises:
        BadZipFile: If the archive is invalid
        OSError: If a member cannot be written
    """
    start = time.perf_counter()
    target = Path(target_path).resolve()
    target.mkdir(parents=True, exist_ok=True)

    with ZipFile(zip_path) as zipobj:
        file_list = zipobj.infolist()
        total_files = len(file_list)

        for zip_info in file_list:
            dst = (target / zip_info.filename).resolve()
            if dst != target and target not in dst.parents:
                raise BadZipFile(f"Refusing to extract outside target: {zip_info.filename}")

            if zip_info.is_dir():
                dst.mkdir(parents=True, exist_ok=True)
            else:
                dst.parent.mkdir(parents=True, exist_ok=True)
                with zipobj.open(zip_info) as src, open(dst, "wb") as out_file:
                    shutil.copyfileobj(src, out_file)
                mode = (zip_info.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(dst, mode)

    elapsed = time.perf_counter() - start
    logger.debug(
        f"Extracted {total_files} entries: {zip_path} → {target}, {elapsed:.2f} seconds"
    )
    return total_files
