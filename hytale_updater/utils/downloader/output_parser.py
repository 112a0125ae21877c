from dataclasses import dataclass
from re import compile
from typing import Iterator, Optional, Union

ANSI_ESCAPE = compile(r"\x1B\[[0-?]*[ -/]*[@-~]")
VERSION_PATTERN = compile(r"version\s+([^)\s][^)]*)")
PROGRESS_PATTERN = compile(r"(\d{1,3}(?:\.\d+)?)\s*%")


@dataclass(frozen=True)
class LogLine:
    line: str


@dataclass(frozen=True)
class ProgressUpdate:
    percent: float
    line: str


@dataclass(frozen=True)
class VersionDetected:
    version: str
    line: str


OutputEvent = Union[LogLine, ProgressUpdate, VersionDetected]


class DownloaderOutputParser:
    """
    Turn the downloader's free-text output into structured events.

    Create one parser per downloader attempt: only the first version token
    of an attempt is reported, later matches are plain log lines.
    """

    def __init__(self) -> None:
        self.version: Optional[str] = None

    def parse(self, chunk: str) -> Iterator[OutputEvent]:
        """
        Parse a chunk of output, which may hold several lines.

        Progress bars redraw with carriage returns, so both \\r and \\n end a line.
        """
        text = ANSI_ESCAPE.sub("", chunk)
        for raw in text.replace("\r", "\n").split("\n"):
            line = raw.strip()
            if line:
                yield self.parse_line(line)

    def parse_line(self, line: str) -> OutputEvent:
        if self.version is None:
            match = VERSION_PATTERN.search(line)
            if match:
                version = match.group(1).rstrip()
                self.version = version
                return VersionDetected(version, line)

        match = PROGRESS_PATTERN.search(line)
        if match:
            percent = min(float(match.group(1)), 100.0)
            return ProgressUpdate(percent, line)

        return LogLine(line)
