import platform
from enum import Enum, auto, unique


class SystemInfo:
    """
    A singleton class that provides information about the system's operating system and architecture.

    Unknown platforms are reported as ``None`` instead of raising, the downloader
    lookup decides whether the platform is usable.

    Examples:
        >>> info = SystemInfo()
        >>> print(info.operating_system)
        >>> print(info.architecture)
    """

    _instance = None  # type: SystemInfo | None
    _operating_system = None  # type: SystemInfo.OperatingSystem | None
    _architecture = None  # type: SystemInfo.Architecture | None

    @unique
    class OperatingSystem(Enum):
        WINDOWS = auto()
        LINUX = auto()
        MACOS = auto()

    @unique
    class Architecture(Enum):
        X64 = auto()
        ARM64 = auto()

    def __new__(cls) -> "SystemInfo":
        if not cls._instance:
            cls._instance = super(SystemInfo, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_is_initialized") and self._is_initialized:
            return

        system = platform.system()
        if system == "Windows":
            self._operating_system = SystemInfo.OperatingSystem.WINDOWS
        elif system == "Linux":
            self._operating_system = SystemInfo.OperatingSystem.LINUX
        elif system == "Darwin":
            self._operating_system = SystemInfo.OperatingSystem.MACOS

        machine = platform.machine()
        if machine in ["x86_64", "AMD64"]:
            self._architecture = SystemInfo.Architecture.X64
        elif machine in ["arm64", "aarch64"]:
            self._architecture = SystemInfo.Architecture.ARM64

        self._is_initialized: bool = True

    @property
    def operating_system(self) -> OperatingSystem | None:
        """
        Get the detected operating system, or None if it is not recognised.
        """
        return self._operating_system

    @property
    def architecture(self) -> Architecture | None:
        """
        Get the detected system architecture, or None if it is not recognised.
        """
        return self._architecture
