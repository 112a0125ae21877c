import os
from pathlib import Path
from typing import Iterable, Optional

import psutil
from loguru import logger

from hytale_updater.models.installation import ServerInstallation, ServerVariant


def is_server_running(installation: ServerInstallation) -> bool:
    """
    Check if the given server installation is currently running.

    Uses psutil to scan every process command line for one of the installation's
    marker files, either as a path resolving into the installation or as a bare
    file name launched from the installation folder.

    :param installation: The installation to check
    :return: True if a matching process was found, False otherwise
    """
    own_pid = os.getpid()
    for process in psutil.process_iter(attrs=["pid", "cmdline", "cwd"]):
        try:
            info = process.info
            if info.get("pid") == own_pid:
                continue
            cmdline = info.get("cmdline") or []
            if _matches(installation, cmdline, info.get("cwd")):
                logger.debug(
                    f"Found running server process {info.get('pid')}: {' '.join(cmdline)}"
                )
                return True
        except (psutil.AccessDenied, psutil.NoSuchProcess):
            continue
    return False


def _matches(
    installation: ServerInstallation, cmdline: Iterable[str], cwd: Optional[str]
) -> bool:
    marker_names = {v.marker for v in ServerVariant}
    marker_paths = set(installation.marker_paths)
    root = installation.root

    for arg in cmdline:
        # -XX:AOTCache=HytaleServer.aot style arguments
        value = arg.split("=", 1)[-1].strip('"')
        if not value:
            continue
        name = os.path.basename(value)
        if name not in marker_names:
            continue
        if value == name:
            if cwd is None or _same_path(Path(cwd), root):
                return True
            continue
        candidate = Path(value)
        if not candidate.is_absolute() and cwd is not None:
            candidate = Path(cwd) / candidate
        if any(_same_path(candidate, marker) for marker in marker_paths):
            return True
    return False


def _same_path(a: Path, b: Path) -> bool:
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return False
