import io
import zipfile
from pathlib import Path
from typing import Any, Optional
from unittest.mock import MagicMock, patch

import pytest
import requests

from hytale_updater.models.installation import ServerInstallation
from hytale_updater.models.run_context import RunContext
from hytale_updater.models.settings import Settings
from hytale_updater.utils.constants import DOWNLOADER_LINUX_AMD64, DOWNLOADER_PATH_ARG
from hytale_updater.utils.downloader.wrapper import (
    DownloaderInterface,
    downloader_executable_name,
)
from hytale_updater.utils.exception import (
    DownloaderInstallError,
    DownloaderMissingError,
    DownloadFailedError,
)
from hytale_updater.utils.system_info import SystemInfo

POPEN = "hytale_updater.utils.downloader.wrapper.subprocess.Popen"
SLEEP = "hytale_updater.utils.retry.time.sleep"


def zip_bytes(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zipobj:
        for name, data in files.items():
            zipobj.writestr(name, data)
    return buffer.getvalue()


class FakeDownloader:
    """
    Stands in for subprocess.Popen, one scripted outcome per attempt.

    Each outcome is (exit code, output lines, archive bytes or None).
    """

    def __init__(self, outcomes: list[tuple[int, list[str], Optional[bytes]]]) -> None:
        self.outcomes = outcomes
        self.commands: list[list[str]] = []
        self.cwds: list[Optional[str]] = []
        self.processes: list[MagicMock] = []

    def __call__(self, command: list[str], **kwargs: Any) -> MagicMock:
        exit_code, lines, archive = self.outcomes[len(self.commands)]
        self.commands.append(command)
        self.cwds.append(kwargs.get("cwd"))
        if archive is not None:
            Path(command[2]).write_bytes(archive)
        process = MagicMock()
        process.__enter__.return_value = process
        process.stdout = iter(line + "\n" for line in lines)
        process.wait.return_value = exit_code
        self.processes.append(process)
        return process


@pytest.fixture
def settings() -> Settings:
    return Settings(retry_delay=0)


@pytest.fixture
def downloader(settings: Settings, tmp_path: Path) -> DownloaderInterface:
    folder = tmp_path / "tools"
    folder.mkdir()
    return DownloaderInterface(
        settings, install_folder=folder, executable_name=DOWNLOADER_LINUX_AMD64
    )


@pytest.fixture
def package_bytes() -> bytes:
    return zip_bytes({"Server/HytaleServer.jar": b"jar"})


def test_executable_name_per_platform() -> None:
    linux = SystemInfo.OperatingSystem.LINUX
    windows = SystemInfo.OperatingSystem.WINDOWS
    x64 = SystemInfo.Architecture.X64

    assert downloader_executable_name(linux, x64) == DOWNLOADER_LINUX_AMD64
    assert downloader_executable_name(windows, x64).endswith(".exe")
    assert downloader_executable_name(SystemInfo.OperatingSystem.MACOS, x64) is None
    assert downloader_executable_name(linux, SystemInfo.Architecture.ARM64) is None


def test_unsupported_platform_has_no_executable(settings: Settings, tmp_path: Path) -> None:
    with patch(
        "hytale_updater.utils.downloader.wrapper.downloader_executable_name",
        return_value=None,
    ):
        interface = DownloaderInterface(settings, install_folder=tmp_path)

    with pytest.raises(DownloaderMissingError):
        interface.is_installed()


def test_download_first_attempt(
    downloader: DownloaderInterface, package_bytes: bytes, tmp_path: Path
) -> None:
    fake = FakeDownloader(
        [(0, ["Fetching manifest", "(version 1.2.3)", " 50%", "100%"], package_bytes)]
    )
    progress = MagicMock()
    downloader.progress = progress
    archive = tmp_path / "work" / "game.zip"
    archive.parent.mkdir()

    with patch(POPEN, fake), patch(SLEEP) as mock_sleep:
        result = downloader.download_package(archive)

    assert result.archive_path == archive
    assert result.version == "1.2.3"
    assert fake.commands == [[str(downloader.executable), DOWNLOADER_PATH_ARG, str(archive)]]
    assert fake.cwds == [str(downloader.install_folder)]
    progress.assert_any_call(50.0)
    progress.assert_called_with(100.0)
    mock_sleep.assert_not_called()


def test_download_retries_failed_attempts(
    downloader: DownloaderInterface,
    package_bytes: bytes,
    tmp_path: Path,
    log_messages: list[str],
) -> None:
    fake = FakeDownloader(
        [
            (1, ["network error"], None),
            (0, [], b"not a zip"),
            (0, ["(version 2.0)"], package_bytes),
        ]
    )
    archive = tmp_path / "game.zip"

    with patch(POPEN, fake), patch(SLEEP) as mock_sleep:
        result = downloader.download_package(archive)

    assert result.version == "2.0"
    assert len(fake.commands) == 3
    assert mock_sleep.call_count == 2
    assert "Downloading... (attempt 1 of 3)" in log_messages
    assert "Downloading... (attempt 3 of 3)" in log_messages


def test_download_fails_after_three_attempts(
    downloader: DownloaderInterface, tmp_path: Path
) -> None:
    fake = FakeDownloader([(0, [], None), (2, [], None), (0, [], b"garbage")])

    with patch(POPEN, fake), patch(SLEEP) as mock_sleep:
        with pytest.raises(DownloadFailedError) as exc_info:
            downloader.download_package(tmp_path / "game.zip")

    assert len(fake.commands) == 3
    assert mock_sleep.call_count == 2
    assert exc_info.value.exit_code == 8


def test_downloader_that_cannot_start_counts_as_failed_attempt(
    downloader: DownloaderInterface, tmp_path: Path
) -> None:
    with patch(POPEN, side_effect=FileNotFoundError("no such file")), patch(SLEEP):
        with pytest.raises(DownloadFailedError):
            downloader.download_package(tmp_path / "game.zip")


def test_stale_archive_is_removed_before_attempt(
    downloader: DownloaderInterface, tmp_path: Path
) -> None:
    archive = tmp_path / "game.zip"
    archive.write_bytes(zip_bytes({"Server/old.jar": b"old"}))
    fake = FakeDownloader([(0, [], None)] * 3)

    with patch(POPEN, fake), patch(SLEEP):
        with pytest.raises(DownloadFailedError):
            downloader.download_package(archive)

    assert not archive.exists()


def test_unknown_version(
    downloader: DownloaderInterface, package_bytes: bytes, tmp_path: Path
) -> None:
    fake = FakeDownloader([(0, ["no version here"], package_bytes)])

    with patch(POPEN, fake), patch(SLEEP):
        assert downloader.download_package(tmp_path / "game.zip").version is None


def mock_response(content: bytes) -> MagicMock:
    response = MagicMock()
    response.__enter__.return_value = response
    response.iter_content.return_value = [content]
    return response


def test_ensure_installed_fetches_and_installs(
    downloader: DownloaderInterface, installation: ServerInstallation
) -> None:
    archive = zip_bytes({f"bin/{DOWNLOADER_LINUX_AMD64}": b"#!/bin/sh\n", "QUICKSTART.md": b""})
    context = RunContext(installation=installation)

    with patch(
        "hytale_updater.utils.downloader.wrapper.requests.get",
        return_value=mock_response(archive),
    ) as mock_get:
        downloader.ensure_installed(context)

    mock_get.assert_called_once()
    assert downloader.is_installed()
    assert downloader.executable.read_bytes() == b"#!/bin/sh\n"
    assert downloader.executable.stat().st_mode & 0o100
    assert context.downloader_temp is not None and context.downloader_temp.exists()


def test_ensure_installed_skips_existing(
    downloader: DownloaderInterface, installation: ServerInstallation
) -> None:
    downloader.executable.write_bytes(b"installed")
    downloader.executable.chmod(0o755)

    with patch("hytale_updater.utils.downloader.wrapper.requests.get") as mock_get:
        downloader.ensure_installed(RunContext(installation=installation))

    mock_get.assert_not_called()


def test_ensure_installed_replaces_non_executable_file(
    downloader: DownloaderInterface, installation: ServerInstallation
) -> None:
    downloader.executable.write_bytes(b"stale")
    downloader.executable.chmod(0o644)
    archive = zip_bytes({DOWNLOADER_LINUX_AMD64: b"#!/bin/sh\n"})

    assert not downloader.is_installed()
    with patch(
        "hytale_updater.utils.downloader.wrapper.requests.get",
        return_value=mock_response(archive),
    ) as mock_get:
        downloader.ensure_installed(RunContext(installation=installation))

    mock_get.assert_called_once()
    assert downloader.is_installed()
    assert downloader.executable.read_bytes() == b"#!/bin/sh\n"


def test_failing_output_handler_stops_downloader(
    downloader: DownloaderInterface, package_bytes: bytes, tmp_path: Path
) -> None:
    fake = FakeDownloader([(0, [" 10%"], package_bytes)])
    downloader.progress = MagicMock(side_effect=RuntimeError("terminal closed"))

    with patch(POPEN, fake), patch(SLEEP):
        with pytest.raises(RuntimeError):
            downloader.download_package(tmp_path / "game.zip")

    process = fake.processes[0]
    process.kill.assert_called_once()
    process.__exit__.assert_called_once()
    process.wait.assert_not_called()


def test_ensure_installed_dry_run_does_nothing(
    downloader: DownloaderInterface, installation: ServerInstallation
) -> None:
    context = RunContext(installation=installation, dry_run=True)

    with patch("hytale_updater.utils.downloader.wrapper.requests.get") as mock_get:
        downloader.ensure_installed(context)

    mock_get.assert_not_called()
    assert not downloader.is_installed()
    assert context.downloader_temp is None


def test_ensure_installed_network_error(
    downloader: DownloaderInterface, installation: ServerInstallation
) -> None:
    with patch(
        "hytale_updater.utils.downloader.wrapper.requests.get",
        side_effect=requests.ConnectionError("offline"),
    ):
        with pytest.raises(DownloaderInstallError) as exc_info:
            downloader.ensure_installed(RunContext(installation=installation))

    assert exc_info.value.exit_code == 6


def test_ensure_installed_archive_without_executable(
    downloader: DownloaderInterface, installation: ServerInstallation
) -> None:
    archive = zip_bytes({"README.txt": b"nothing useful"})

    with patch(
        "hytale_updater.utils.downloader.wrapper.requests.get",
        return_value=mock_response(archive),
    ):
        with pytest.raises(DownloaderMissingError) as exc_info:
            downloader.ensure_installed(RunContext(installation=installation))

    assert exc_info.value.exit_code == 7


def test_ensure_installed_corrupt_archive(
    downloader: DownloaderInterface, installation: ServerInstallation
) -> None:
    with patch(
        "hytale_updater.utils.downloader.wrapper.requests.get",
        return_value=mock_response(b"<html>not found</html>"),
    ):
        with pytest.raises(DownloaderInstallError):
            downloader.ensure_installed(RunContext(installation=installation))
