import zipfile
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest
from loguru import logger

from hytale_updater.models.installation import ServerInstallation, ServerVariant

LIVE_FILES = {
    "HytaleServer.jar": b"old jar",
    "HytaleServer.aot": b"old aot",
    "Licenses/old.txt": b"old license",
    "start.sh": b"#!/bin/sh\njava -jar HytaleServer.jar\n",
    "config.json": b'{"ServerName": "My Server"}',
    "bans.json": b"[]",
    "permissions.json": b"{}",
    "whitelist.json": b"[]",
    "auth.enc": b"secret",
    ".hytale-downloader-credentials.json": b'{"token": "abc"}',
    "mods/cool-mod.jar": b"mod",
    "universe/worlds/default/chunk.bin": b"world data",
    "logs/server.log": b"server log",
}

PACKAGE_FILES = {
    "Server/HytaleServer.jar": b"new jar",
    "Server/HytaleServer.aot": b"new aot",
    "Server/Licenses/new.txt": b"new license",
    "Server/config.json": b"{}",
    "Server/mods/bundled.jar": b"bundled mod",
    "Server/logs/readme.txt": b"logs go here",
    "Assets.zip": b"new assets",
}


def write_tree(root: Path, files: dict[str, bytes]) -> None:
    for relative, data in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


@pytest.fixture
def server_root(tmp_path: Path) -> Path:
    """A live server installation nested one level below a shared folder."""
    root = tmp_path / "hytale" / "server"
    write_tree(root, LIVE_FILES)
    return root


@pytest.fixture
def installation(server_root: Path) -> ServerInstallation:
    return ServerInstallation(server_root, ServerVariant.JAR_BASED)


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a server package zip, PACKAGE_FILES by default."""

    def _make(files: Optional[dict[str, bytes]] = None, name: str = "game.zip") -> Path:
        path = tmp_path / "packages" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zipobj:
            for arcname, data in (PACKAGE_FILES if files is None else files).items():
                zipobj.writestr(arcname, data)
        return path

    return _make


@pytest.fixture
def log_messages() -> Generator[list[str], None, None]:
    """Collect every loguru message emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]), level="DEBUG"
    )
    yield messages
    logger.remove(handler_id)
