from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from hytale_updater.models.installation import ServerInstallation

ConfirmCallback = Callable[[str], bool]
ProgressCallback = Callable[[float], None]


class UpdateOutcome(str, Enum):
    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"
    DRY_RUN = "dry_run"
    CANCELLED = "cancelled"


@dataclass
class RunOptions:
    """
    Capabilities of a single run.

    :param destination: Explicit server folder, None to search from base_folder
    :param base_folder: Folder the search starts from
    :param dry_run: Log every mutating step instead of performing it
    :param force_cleanup: Remove temp/staging artifacts even when the run fails
    :param confirm: Asked once before the installation is modified, False cancels the run
    :param progress: Receives download percentages reported by the downloader
    """

    destination: Optional[Path] = None
    base_folder: Path = field(default_factory=Path.cwd)
    dry_run: bool = False
    force_cleanup: bool = False
    confirm: Optional[ConfirmCallback] = None
    progress: Optional[ProgressCallback] = None


@dataclass
class RunContext:
    """
    State accumulated by the pipeline stages of one run.
    """

    installation: ServerInstallation
    dry_run: bool = False
    downloader_temp: Optional[Path] = None
    temp_root: Optional[Path] = None
    archive_path: Optional[Path] = None
    extract_folder: Optional[Path] = None
    new_version: Optional[str] = None
    staging_folder: Optional[Path] = None
    backup_folder: Optional[Path] = None
    change_summary: list[str] = field(default_factory=list)
    assets_destination: Optional[Path] = None
    log_file: Optional[Path] = None
    succeeded: bool = False
    outcome: Optional[UpdateOutcome] = None
