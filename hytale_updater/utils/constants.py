from enum import Enum

APP_NAME = "HytaleServerUpdater"

# Either marker identifies a server installation
SERVER_JAR = "HytaleServer.jar"
SERVER_AOT = "HytaleServer.aot"

# Package layout
SERVER_SUBTREE = "Server"
ASSETS_FILE = "Assets.zip"

# Downloader
DOWNLOADER_URL = "https://downloader.hytale.com/hytale-downloader.zip"
DOWNLOADER_LINUX_AMD64 = "hytale-downloader-linux-amd64"
DOWNLOADER_WINDOWS_AMD64 = "hytale-downloader-windows-amd64.exe"
DOWNLOADER_PATH_ARG = "-download-path"
PACKAGE_ARCHIVE_NAME = "game.zip"
EXTRACT_FOLDER_NAME = "game"
TEMP_ROOT_PREFIX = "hytale-update-"
DOWNLOADER_TEMP_PREFIX = "hytale-downloader-"
DOWNLOADER_FOLDER_NAME = "downloader"

# Maintenance folder layout (inside the server root)
MAINTENANCE_FOLDER_NAME = ".hytale-updater"
VERSION_FILE_NAME = "last_version.txt"
STAGING_FOLDER_NAME = "staging"
BACKUPS_FOLDER_NAME = "backups"
LOGS_FOLDER_NAME = "logs"
LOCK_FILE_NAME = "update.lock"
BACKUP_PREFIX = "backup-"
LOG_PREFIX = "update-"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

# Top-level entries that hold user data and are never staged, replaced or backed up
PRESERVE_ITEMS = frozenset(
    {
        "mods",
        "universe",
        "logs",
        "config.json",
        "bans.json",
        "permissions.json",
        "whitelist.json",
        "auth.enc",
        ".hytale-downloader-credentials.json",
    }
)

DEFAULT_DOWNLOAD_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2.0
DEFAULT_SEARCH_DEPTH = 4
DEFAULT_RETENTION = 3
DEFAULT_REQUEST_TIMEOUT = 60
DOWNLOAD_CHUNK_SIZE = 131072


class DestinationCheck(str, Enum):
    STRICT = "strict"
    LENIENT = "lenient"
