import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
from loguru import logger

from hytale_updater.models.run_context import ProgressCallback, RunContext
from hytale_updater.models.settings import Settings
from hytale_updater.utils.constants import (
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOADER_LINUX_AMD64,
    DOWNLOADER_PATH_ARG,
    DOWNLOADER_TEMP_PREFIX,
    DOWNLOADER_WINDOWS_AMD64,
)
from hytale_updater.utils.downloader.output_parser import (
    DownloaderOutputParser,
    LogLine,
    OutputEvent,
    ProgressUpdate,
    VersionDetected,
)
from hytale_updater.utils.exception import (
    DownloadAttemptError,
    DownloaderInstallError,
    DownloaderMissingError,
    DownloadFailedError,
)
from hytale_updater.utils.generic import format_file_size, make_executable
from hytale_updater.utils.retry import RetryConfig, retry_call
from hytale_updater.utils.system_info import SystemInfo
from hytale_updater.utils.zip_extractor import extract_zip, validate_zip_integrity


@dataclass(frozen=True)
class FetchResult:
    archive_path: Path
    # None when the downloader did not report a version
    version: Optional[str]


def downloader_executable_name(
    operating_system: Optional[SystemInfo.OperatingSystem],
    architecture: Optional[SystemInfo.Architecture],
) -> Optional[str]:
    """Name of the downloader build for a platform, None if there is none."""
    if architecture != SystemInfo.Architecture.X64:
        return None
    if operating_system == SystemInfo.OperatingSystem.LINUX:
        return DOWNLOADER_LINUX_AMD64
    if operating_system == SystemInfo.OperatingSystem.WINDOWS:
        return DOWNLOADER_WINDOWS_AMD64
    return None


class DownloaderInterface:
    """
    Create DownloaderInterface object to provide an interface for hytale-downloader functionality
    """

    def __init__(
        self,
        settings: Settings,
        install_folder: Optional[Path] = None,
        progress: Optional[ProgressCallback] = None,
        executable_name: Optional[str] = None,
    ) -> None:
        self.settings = settings
        self.install_folder = (
            install_folder
            if install_folder is not None
            else settings.resolved_downloader_folder()
        )
        self.progress = progress
        if executable_name is None:
            system_info = SystemInfo()
            executable_name = downloader_executable_name(
                system_info.operating_system, system_info.architecture
            )
        self.executable_name = executable_name
        self.retry_config = RetryConfig(
            max_attempts=settings.download_attempts,
            delay=settings.retry_delay,
            retry_on=(DownloadAttemptError,),
        )

    @property
    def executable(self) -> Path:
        if self.executable_name is None:
            raise DownloaderMissingError(
                f"hytale-downloader is not available for {SystemInfo().operating_system} "
                f"{SystemInfo().architecture}"
            )
        return self.install_folder / self.executable_name

    def is_installed(self) -> bool:
        """True if the downloader exists and may be executed."""
        executable = self.executable
        return executable.is_file() and os.access(executable, os.X_OK)

    def ensure_installed(self, context: RunContext) -> None:
        """
        Install the downloader into its folder if it is missing or not executable.

        The temporary folder used for the install is recorded on the run context
        so the cleanup controller can decide whether to keep it.

        :param context: The current run
        :raises DownloaderInstallError: If the downloader archive could not be fetched or read
        :raises DownloaderMissingError: If the archive does not hold the executable
        """
        if self.is_installed():
            logger.debug(f"Using downloader: {self.executable}")
            return

        logger.info("Updater not found, fetching latest...")
        if context.dry_run:
            logger.info("Downloader install skipped (dry run).")
            return

        context.downloader_temp = Path(tempfile.mkdtemp(prefix=DOWNLOADER_TEMP_PREFIX))
        downloader_zip = context.downloader_temp / "hytale-downloader.zip"
        self._fetch(self.settings.downloader_url, downloader_zip)

        is_valid, error = validate_zip_integrity(downloader_zip)
        if not is_valid:
            raise DownloaderInstallError(f"Downloader archive is unusable: {error}")

        unpack_folder = context.downloader_temp / "unpacked"
        try:
            extract_zip(downloader_zip, unpack_folder)
        except Exception as e:
            raise DownloaderInstallError(
                f"Failed to extract downloader archive: {type(e).__name__}: {e}"
            ) from e

        found = next(
            (p for p in sorted(unpack_folder.rglob(self.executable.name)) if p.is_file()),
            None,
        )
        if found is None:
            raise DownloaderMissingError(
                f"{self.executable.name} not found in downloader archive."
            )

        self.install_folder.mkdir(parents=True, exist_ok=True)
        shutil.copy2(found, self.executable)
        make_executable(self.executable)
        logger.info(f"Installed downloader: {self.executable}")

    def _fetch(self, url: str, destination: Path) -> None:
        logger.info(f"Downloading & extracting downloader release from: {url}")
        try:
            with requests.get(
                url, stream=True, timeout=self.settings.request_timeout
            ) as response:
                response.raise_for_status()
                with open(destination, "wb") as out_file:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        out_file.write(chunk)
        except requests.RequestException as e:
            raise DownloaderInstallError(
                f"Failed to download hytale-downloader from {url}: {type(e).__name__}: {e}"
            ) from e

    def download_package(self, archive_path: Path) -> FetchResult:
        """
        Run the downloader until it produces a valid package archive.

        :param archive_path: Where the downloader should write the archive
        :return: The archive path and the version reported by the downloader
        :raises DownloadFailedError: After every attempt failed
        """
        attempts = self.retry_config.max_attempts
        counter = {"attempt": 0}

        @retry_call(self.retry_config)
        def attempt() -> Optional[str]:
            counter["attempt"] += 1
            logger.info(f"Downloading... (attempt {counter['attempt']} of {attempts})")
            return self._attempt(archive_path)

        try:
            version = attempt()
        except DownloadAttemptError as e:
            raise DownloadFailedError(f"Download failed after {attempts} attempts: {e}") from e

        logger.info(
            f"Downloaded {archive_path.name} ({format_file_size(archive_path.stat().st_size)}), "
            f"version: {version or 'unknown'}"
        )
        return FetchResult(archive_path, version)

    def _attempt(self, archive_path: Path) -> Optional[str]:
        if archive_path.exists():
            archive_path.unlink()

        parser = DownloaderOutputParser()
        try:
            exit_code = self._run(archive_path, parser)
        except OSError as e:
            raise DownloadAttemptError(f"Could not start downloader: {e}") from e

        if exit_code != 0:
            raise DownloadAttemptError(f"Downloader exited with code {exit_code}.")
        if not archive_path.is_file():
            raise DownloadAttemptError("Download did not produce an archive.")
        is_valid, error = validate_zip_integrity(archive_path)
        if not is_valid:
            raise DownloadAttemptError(f"Downloaded archive is corrupt: {error}")
        return parser.version

    def _run(self, archive_path: Path, parser: DownloaderOutputParser) -> int:
        command = [str(self.executable), DOWNLOADER_PATH_ARG, str(archive_path)]
        logger.debug(f"Executing command: {' '.join(command)}")
        with subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=str(self.install_folder),
        ) as process:
            try:
                if process.stdout is not None:
                    for chunk in process.stdout:
                        for event in parser.parse(chunk):
                            self._handle_event(event)
            except BaseException:
                process.kill()
                raise
            return process.wait()

    def _handle_event(self, event: OutputEvent) -> None:
        if isinstance(event, VersionDetected):
            logger.info(event.line)
            logger.debug(f"Detected version: {event.version}")
        elif isinstance(event, ProgressUpdate):
            logger.debug(event.line)
            if self.progress is not None:
                self.progress(event.percent)
        elif isinstance(event, LogLine):
            logger.info(event.line)
