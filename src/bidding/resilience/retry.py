"""Retry policy for the engine's outbound calls (inventory API, Anthropic).

Transient failures are retried with exponential backoff and jitter.  A
client error that another attempt cannot fix (an HTTP 4xx other than 408 or
429) fails immediately.  After the last attempt the original exception is
re-raised; the caller decides whether that is fatal, fail-open, or skipped.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

MAX_ATTEMPTS = 3
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


def is_transient(exc: BaseException) -> bool:
    """Whether another attempt could succeed after *exc*.

    Works on any exception exposing ``response.status_code`` (httpx and
    anthropic status errors).  Exceptions without a response are transient.
    """
    status = getattr(getattr(exc, "response", None), "status_code", None)
    if isinstance(status, int) and 400 <= status < 500:
        return status in RETRYABLE_CLIENT_STATUSES
    return True


def _log_retry(api_name: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "api_call_retrying",
            api_name=api_name,
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else 0,
            error=str(exception),
        )

    return before_sleep


def resilient_api_call(api_name: str, *, attempts: int = MAX_ATTEMPTS) -> Callable[[F], F]:
    """Decorate an outbound call with the engine's retry policy.

    Args:
        api_name: Name of the remote API, used in logs.
        attempts: Total attempts including the first.

    Returns:
        A decorator.  The wrapped function re-raises the last exception.
    """

    def decorator(func: F) -> F:
        retrying = retry(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential_jitter(initial=1, max=30, jitter=5),
            before_sleep=_log_retry(api_name),
            reraise=True,
        )(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return retrying(*args, **kwargs)
            except Exception as exc:
                logger.error(
                    "api_call_failed",
                    api_name=api_name,
                    transient=is_transient(exc),
                    error=str(exc),
                )
                raise

        return wrapper  # type: ignore[return-value]

    return decorator
