from pathlib import Path
from typing import Optional

from loguru import logger

from hytale_updater.models.installation import ServerInstallation, ServerVariant
from hytale_updater.utils.constants import (
    DEFAULT_SEARCH_DEPTH,
    MAINTENANCE_FOLDER_NAME,
    DestinationCheck,
)
from hytale_updater.utils.exception import (
    AmbiguousServerError,
    DestinationInvalidError,
    ServerNotFoundError,
)


def locate_server(
    destination: Optional[Path],
    base_folder: Path,
    max_depth: int = DEFAULT_SEARCH_DEPTH,
    destination_check: DestinationCheck = DestinationCheck.STRICT,
) -> ServerInstallation:
    """
    Resolve the one server installation an update run targets.

    An explicit destination always wins over searching. Otherwise base_folder
    itself is checked, then its subfolders breadth-first down to max_depth
    levels. The shallowest folder holding a marker file is used, and two or
    more at that depth are an error.

    :param destination: Explicit server folder given by the user, or None
    :param base_folder: Folder to search from when no destination is given
    :param max_depth: How many folder levels below base_folder to search
    :param destination_check: STRICT requires a marker in an explicit destination,
        LENIENT accepts any existing folder verbatim
    :return: The resolved ServerInstallation
    :raises DestinationInvalidError: If the explicit destination is unusable
    :raises ServerNotFoundError: If no marker file was found while searching
    :raises AmbiguousServerError: If several servers were found at the shallowest depth
    """
    if destination is not None:
        return _resolve_destination(destination, destination_check)

    base_folder = base_folder.resolve()
    variant = ServerVariant.detect(base_folder)
    if variant is not None:
        logger.debug(f"Found {variant.marker} in {base_folder}")
        return ServerInstallation(base_folder, variant)

    found = _search(base_folder, max_depth)
    if found is None:
        raise ServerNotFoundError(
            f"Unable to locate a Hytale server under {base_folder}. "
            "Pass --destination to specify the server directory."
        )
    logger.info(f"Found Hytale server at {found.root}")
    return found


def _resolve_destination(
    destination: Path, destination_check: DestinationCheck
) -> ServerInstallation:
    root = destination.expanduser().resolve()
    if not root.is_dir():
        raise DestinationInvalidError(f"Destination is not a directory: {root}")

    variant = ServerVariant.detect(root)
    if variant is None:
        if destination_check == DestinationCheck.STRICT:
            raise DestinationInvalidError(
                f"Destination does not contain {ServerVariant.JAR_BASED.marker} "
                f"or {ServerVariant.AOT_BASED.marker}: {root}"
            )
        logger.warning(
            f"No server marker found in {root}, using it anyway (lenient destination check)"
        )
        variant = ServerVariant.JAR_BASED
    return ServerInstallation(root, variant)


def _search(base_folder: Path, max_depth: int) -> Optional[ServerInstallation]:
    level = [base_folder]
    for depth in range(1, max_depth + 1):
        next_level: list[Path] = []
        for folder in level:
            next_level.extend(_subfolders(folder))
        found = []
        for folder in next_level:
            variant = ServerVariant.detect(folder)
            if variant is not None:
                logger.debug(f"Found {variant.marker} in {folder} (depth {depth})")
                found.append(ServerInstallation(folder, variant))
        if len(found) > 1:
            candidates = "\n".join(f"  {installation.root}" for installation in found)
            raise AmbiguousServerError(
                f"Found {len(found)} Hytale servers under {base_folder}:\n{candidates}\n"
                "Pass --destination to choose the server directory."
            )
        if found:
            return found[0]
        level = next_level
    return None


def _subfolders(folder: Path) -> list[Path]:
    try:
        return sorted(
            child
            for child in folder.iterdir()
            if child.is_dir()
            and not child.is_symlink()
            and not child.name.startswith(".")
            and child.name != MAINTENANCE_FOLDER_NAME
        )
    except OSError as e:
        logger.debug(f"Skipping unreadable folder {folder}: {e}")
        return []
