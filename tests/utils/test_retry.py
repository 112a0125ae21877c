from unittest.mock import MagicMock, patch

import pytest

from hytale_updater.utils.retry import RetryConfig, retry_call


class FlakyError(Exception):
    pass


def test_succeeds_without_retry() -> None:
    func = MagicMock(return_value="ok")
    func.__name__ = "func"

    with patch("hytale_updater.utils.retry.time.sleep") as mock_sleep:
        assert retry_call(RetryConfig())(func)() == "ok"

    func.assert_called_once()
    mock_sleep.assert_not_called()


def test_retries_until_success() -> None:
    func = MagicMock(side_effect=[FlakyError("1"), FlakyError("2"), "ok"])
    func.__name__ = "func"
    config = RetryConfig(max_attempts=3, delay=2.0, retry_on=(FlakyError,))

    with patch("hytale_updater.utils.retry.time.sleep") as mock_sleep:
        assert retry_call(config)(func)() == "ok"

    assert func.call_count == 3
    assert mock_sleep.call_count == 2
    mock_sleep.assert_called_with(2.0)


def test_reraises_last_error_after_all_attempts() -> None:
    func = MagicMock(side_effect=[FlakyError("1"), FlakyError("2"), FlakyError("3")])
    func.__name__ = "func"
    config = RetryConfig(max_attempts=3, retry_on=(FlakyError,))

    with patch("hytale_updater.utils.retry.time.sleep") as mock_sleep:
        with pytest.raises(FlakyError, match="3"):
            retry_call(config)(func)()

    assert func.call_count == 3
    # No wait after the final attempt
    assert mock_sleep.call_count == 2


def test_other_errors_are_not_retried() -> None:
    func = MagicMock(side_effect=ValueError("bad"))
    func.__name__ = "func"

    with patch("hytale_updater.utils.retry.time.sleep") as mock_sleep:
        with pytest.raises(ValueError):
            retry_call(RetryConfig(retry_on=(FlakyError,)))(func)()

    func.assert_called_once()
    mock_sleep.assert_not_called()
