from pathlib import Path

import msgspec
from loguru import logger

from hytale_updater.utils.app_info import AppInfo
from hytale_updater.utils.constants import (
    DEFAULT_DOWNLOAD_ATTEMPTS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETENTION,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SEARCH_DEPTH,
    DOWNLOADER_URL,
    DestinationCheck,
)


class Settings(msgspec.Struct):
    """
    User configuration for the updater.

    Pure data class, decoded from settings.json.
    Every field has a default so a missing or partial file is valid.
    """

    downloader_url: str = DOWNLOADER_URL
    # Empty means the downloader folder in the user data directory
    downloader_folder: str = ""
    download_attempts: int = DEFAULT_DOWNLOAD_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    search_depth: int = DEFAULT_SEARCH_DEPTH
    destination_check: DestinationCheck = DestinationCheck.STRICT
    extra_preserve: list[str] = msgspec.field(default_factory=list)
    # -1 keeps everything
    backup_retention: int = DEFAULT_RETENTION
    log_retention: int = DEFAULT_RETENTION
    prune_on_success: bool = True
    debug_logging: bool = False

    def resolved_downloader_folder(self) -> Path:
        if self.downloader_folder:
            return Path(self.downloader_folder).expanduser()
        return AppInfo().downloader_folder


def load_settings(settings_file: Path | None = None) -> Settings:
    """
    Load settings from a JSON file.

    A missing file yields the defaults. An unreadable or invalid file is
    reported as a warning and also yields the defaults.

    :param settings_file: Path to settings.json, defaults to the user config folder
    :return: The decoded Settings
    """
    if settings_file is None:
        settings_file = AppInfo().app_settings_file

    if not settings_file.exists():
        logger.debug(f"No settings file at {settings_file}, using defaults")
        return Settings()

    try:
        settings = msgspec.json.decode(settings_file.read_bytes(), type=Settings)
    except (OSError, msgspec.DecodeError) as e:
        # msgspec.ValidationError is a DecodeError
        logger.warning(f"Ignoring invalid settings file {settings_file}: {e}")
        return Settings()

    logger.debug(f"Loaded settings from {settings_file}")
    return settings

