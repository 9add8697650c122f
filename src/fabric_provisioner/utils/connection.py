"""Session retry utilities.

Only session establishment is retried. Upserts against the fabric are issued
exactly once; a failed upsert is reported, never re-sent.
"""
import logging
from typing import Callable

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


# Failures raised before the endpoint saw the request
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.RemoteProtocolError,
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
)


def _log_attempt(retry_state: RetryCallState) -> None:
    """Warn about a failed attempt before tenacity sleeps."""
    owner = retry_state.args[0] if retry_state.args else None
    label = getattr(owner, "client_id", retry_state.fn.__name__ if retry_state.fn else "call")
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"{label}: attempt {retry_state.attempt_number} failed ({error}), "
        f"retrying in {delay:.1f}s"
    )


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Retry a session call on transport failures, with exponential backoff.

    Anything outside ``exceptions`` (a rejected login in particular) is raised
    on the first attempt. After the last attempt the original error is raised.

    Args:
        max_attempts: Attempts before giving up
        min_wait: Shortest pause between attempts (seconds)
        max_wait: Longest pause between attempts (seconds)
        exceptions: Exception types worth another attempt
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=_log_attempt,
        reraise=True,
    )
