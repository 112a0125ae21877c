from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from hytale_updater.utils.constants import (
    BACKUPS_FOLDER_NAME,
    LOCK_FILE_NAME,
    LOGS_FOLDER_NAME,
    MAINTENANCE_FOLDER_NAME,
    SERVER_AOT,
    SERVER_JAR,
    STAGING_FOLDER_NAME,
    VERSION_FILE_NAME,
)


class ServerVariant(Enum):
    JAR_BASED = SERVER_JAR
    AOT_BASED = SERVER_AOT

    @classmethod
    def detect(cls, folder: Path) -> "ServerVariant | None":
        """Return the variant whose marker exists in folder, preferring the jar."""
        if (folder / SERVER_JAR).is_file():
            return cls.JAR_BASED
        if (folder / SERVER_AOT).is_file():
            return cls.AOT_BASED
        return None

    @property
    def marker(self) -> str:
        return self.value


@dataclass(frozen=True)
class ServerInstallation:
    """
    The single server installation targeted by an update run.

    All updater state lives in a maintenance folder inside the root.
    """

    root: Path
    variant: ServerVariant

    @property
    def marker_paths(self) -> tuple[Path, ...]:
        return tuple(self.root / v.marker for v in ServerVariant)

    @property
    def maintenance_folder(self) -> Path:
        return self.root / MAINTENANCE_FOLDER_NAME

    @property
    def version_file(self) -> Path:
        return self.maintenance_folder / VERSION_FILE_NAME

    @property
    def staging_folder(self) -> Path:
        return self.maintenance_folder / STAGING_FOLDER_NAME

    @property
    def backups_folder(self) -> Path:
        return self.maintenance_folder / BACKUPS_FOLDER_NAME

    @property
    def logs_folder(self) -> Path:
        return self.maintenance_folder / LOGS_FOLDER_NAME

    @property
    def lock_file(self) -> Path:
        return self.maintenance_folder / LOCK_FILE_NAME
