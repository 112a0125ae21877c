from typing import Optional

from loguru import logger

from hytale_updater.models.installation import ServerInstallation


def read_version_record(installation: ServerInstallation) -> Optional[str]:
    """Return the last applied version as raw text, None if none was recorded."""
    try:
        return installation.version_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def write_version_record(installation: ServerInstallation, version: str) -> None:
    installation.version_file.parent.mkdir(parents=True, exist_ok=True)
    installation.version_file.write_text(version, encoding="utf-8")
    logger.debug(f"Recorded version {version} in {installation.version_file}")


def is_up_to_date(new_version: Optional[str], recorded: Optional[str]) -> bool:
    """
    Decide whether the rest of the update can be skipped.

    An unknown new version is treated as changed, as is a missing record.
    Versions are compared as exact strings.
    """
    if new_version is None or recorded is None:
        return False
    return new_version == recorded
