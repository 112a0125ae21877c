"""
Retry logic for flaky operations such as downloader attempts.

A call is retried when it raises one of the configured exception types,
with a delay between attempts. Any other exception propagates immediately.
"""

import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, TypeVar

from loguru import logger

from hytale_updater.utils.constants import DEFAULT_DOWNLOAD_ATTEMPTS, DEFAULT_RETRY_DELAY

# Type variable for generic decorator
F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    :param max_attempts: Total number of attempts, including the first one (default: 3)
    :param delay: Seconds to wait between attempts (default: 2.0)
    :param retry_on: Exception types that trigger a retry
    """

    max_attempts: int = DEFAULT_DOWNLOAD_ATTEMPTS
    delay: float = DEFAULT_RETRY_DELAY
    retry_on: tuple[type[BaseException], ...] = (Exception,)


def retry_call(config: RetryConfig) -> Callable[[F], F]:
    """
    Decorator to add retry logic to a function.

    The last exception is re-raised once all attempts are used up.

    Usage:
        @retry_call(config=RetryConfig(max_attempts=3, retry_on=(DownloadAttemptError,)))
        def attempt():
            ...

    :param config: Retry configuration
    :return: Decorated function with retry logic
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempts = max(1, config.max_attempts)
            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except config.retry_on as e:
                    if attempt >= attempts - 1:
                        logger.warning(
                            f"{func.__name__} failed after {attempts} attempts: {e}"
                        )
                        raise

                    logger.info(
                        f"Attempt {attempt + 1}/{attempts} failed ({e}), "
                        f"retrying in {config.delay:.1f}s..."
                    )
                    time.sleep(config.delay)

            raise RuntimeError("Retry logic failed unexpectedly")

        return wrapper  # type: ignore

    return decorator
