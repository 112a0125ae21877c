from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from filelock import FileLock, Timeout
from loguru import logger

from hytale_updater.utils.exception import UpdateLockedError


class RunLock:
    """
    Advisory lock held for the duration of one update run.

    A second run against the same installation fails fast instead of racing
    on the staging and backup folders.
    """

    def __init__(self, lock_file: Path) -> None:
        self.lock_file = lock_file
        self._lock = FileLock(str(lock_file), timeout=0)

    def acquire(self) -> None:
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._lock.acquire()
        except Timeout as e:
            raise UpdateLockedError(
                f"Another update is already running for this server (lock: {self.lock_file})"
            ) from e
        logger.debug(f"Acquired update lock {self.lock_file}")

    def release(self) -> None:
        if self._lock.is_locked:
            self._lock.release()
            logger.debug(f"Released update lock {self.lock_file}")

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.release()
