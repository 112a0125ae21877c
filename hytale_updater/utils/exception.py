class UpdaterError(Exception):
    """
    Base class for every fatal condition of an update run.

    Each subclass carries the process exit code the CLI reports for it.
    """

    exit_code = 1


class LocatorError(UpdaterError):
    pass


class ServerNotFoundError(LocatorError):
    """
    Raised when no server marker file was found within the search depth
    """

    exit_code = 2


class DestinationInvalidError(LocatorError):
    """
    Raised when an explicit destination does not exist or is not a server folder
    """

    exit_code = 3


class AmbiguousServerError(LocatorError):
    """
    Raised when the search finds more than one server at the same depth
    """

    exit_code = 10


class ServerRunningError(UpdaterError):
    exit_code = 4


class UpdateLockedError(UpdaterError):
    """
    Raised when another update run holds the installation lock
    """

    exit_code = 5


class DownloaderInstallError(UpdaterError):
    exit_code = 6


class DownloaderMissingError(DownloaderInstallError):
    """
    Raised when the downloader executable is unavailable for this platform
    or absent from the fetched downloader archive
    """

    exit_code = 7


class DownloadAttemptError(Exception):
    """
    A single downloader attempt failed. Retried, never reported directly.
    """

    pass


class DownloadFailedError(UpdaterError):
    exit_code = 8


class PackageLayoutError(UpdaterError):
    exit_code = 9


class ServerSubtreeMissingError(PackageLayoutError):
    pass
