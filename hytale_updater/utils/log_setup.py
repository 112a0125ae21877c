import sys
from pathlib import Path

import loguru
from loguru import logger

from hytale_updater.utils.constants import LOG_PREFIX
from hytale_updater.utils.generic import timestamp


def formatter(record: "loguru.Record") -> str:
    """Custom formatter for the per-run log file"""
    format_string = (
        "[{level}]"
        "[{time:YYYY-MM-DD HH:mm:ss}]"
        "[{process.id}]"
        "[{module}]"
        "[{function}][{line}]"
        " : "
    )
    return format_string + "{message}\n{exception}"


def configure_console_logging(debug: bool = False) -> None:
    """Replace loguru's default handler with the console sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "INFO",
        format="<level>[{level}]</level> {message}",
        colorize=None,
    )


def add_run_log_file(logs_folder: Path, debug: bool = False) -> tuple[int, Path]:
    """
    Start a timestamped log file for one update run.

    :return: The loguru handler id, to remove the sink when the run ends, and the log path
    """
    logs_folder.mkdir(parents=True, exist_ok=True)
    log_file = logs_folder / f"{LOG_PREFIX}{timestamp()}.log"
    handler_id = logger.add(
        log_file,
        level="DEBUG" if debug else "INFO",
        format=formatter,
        encoding="utf-8",
    )
    return handler_id, log_file
