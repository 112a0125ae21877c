#!/usr/bin/env python3
import sys
from types import TracebackType
from typing import Type

from loguru import logger

from hytale_updater.cli.main import cli


def handle_exception(
    exc_type: Type[BaseException],
    exc_value: BaseException,
    exc_traceback: TracebackType | None,
) -> None:
    """
    This function is called (through excepthook) when the updater fails with
    an uncaught exception. The error is logged before the process exits.
    """

    # Ignore KeyboardInterrupt exceptions, for when running through the terminal
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
    else:
        logger.opt(exception=(exc_type, exc_value, exc_traceback)).error(
            "The updater has failed with an uncaught exception"
        )


def main() -> None:
    # Uncaught exceptions outside of the update command are handled
    # through the function above
    sys.excepthook = handle_exception
    cli()


if __name__ == "__main__":
    main()
