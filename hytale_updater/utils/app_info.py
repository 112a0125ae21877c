from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from platformdirs import PlatformDirs

from hytale_updater.utils.constants import APP_NAME, DOWNLOADER_FOLDER_NAME


class AppInfo:
    """
    Singleton class that provides information about the updater and its related directories.

    Directories are located using the `platformdirs` package so platform-specific
    conventions are adhered to. They do not depend on how the updater was launched.

    Examples:
        >>> print(AppInfo().app_version)
        >>> print(AppInfo().downloader_folder)
    """

    _instance: "None | AppInfo" = None

    def __new__(cls) -> "AppInfo":
        if not cls._instance:
            cls._instance = super(AppInfo, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_is_initialized") and self._is_initialized:
            return

        try:
            self._app_version = version("hytale-server-updater")
        except PackageNotFoundError:
            self._app_version = "Unknown version"

        platform_dirs = PlatformDirs(appname=APP_NAME, appauthor=False)
        self._app_storage_folder: Path = Path(platform_dirs.user_data_dir)
        self._settings_file: Path = Path(platform_dirs.user_config_dir) / "settings.json"

        self._is_initialized: bool = True

    @property
    def app_version(self) -> str:
        """
        Get the installed distribution version, or "Unknown version" when running from source.
        """
        return self._app_version

    @property
    def app_storage_folder(self) -> Path:
        """
        Get the user data folder of the updater. May or may not exist.
        """
        return self._app_storage_folder

    @property
    def downloader_folder(self) -> Path:
        """
        Get the folder hytale-downloader and its credentials file are installed into.

        Returns:
            Path: The default downloader folder, used unless settings name another one.
        """
        return self._app_storage_folder / DOWNLOADER_FOLDER_NAME

    @property
    def app_settings_file(self) -> Path:
        """
        Get the path to the user settings file. May or may not exist.
        """
        return self._settings_file
