"""Bounded retry policies with tenacity.

This module provides:
- Retry decorator factory for storage layout operations
- Exponential backoff with jitter
- Retry attempt logging through the observability module
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import TYPE_CHECKING, ParamSpec, TypeVar

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from floe_catalog.config import RetryConfig
from floe_catalog.observability import log_retry_attempt

if TYPE_CHECKING:
    from tenacity import RetryCallState

P = ParamSpec("P")
R = TypeVar("R")

# Filesystem failures (EIO, ENOSPC, EBUSY, ...) surface as OSError subclasses
DEFAULT_RETRY_EXCEPTIONS: tuple[type[Exception], ...] = (OSError,)


def create_retry_decorator(
    config: RetryConfig,
    *,
    retry_exceptions: tuple[type[Exception], ...] | None = None,
    operation_name: str | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Create a retry decorator with the specified configuration.

    The wrapped function is attempted up to ``config.max_attempts`` times.
    When every attempt fails, the last exception is re-raised unchanged so
    that callers can translate it into their own error type.

    Args:
        config: RetryConfig with retry policy settings.
        retry_exceptions: Exception types that trigger a retry. Defaults to OSError.
        operation_name: Name for logging purposes.

    Returns:
        Decorator function that adds retry behavior.

    Example:
        >>> config = RetryConfig(max_attempts=3)
        >>> @create_retry_decorator(config, operation_name="ensure_namespace_dir")
        ... def make_dir(path: Path) -> None:
        ...     path.mkdir(parents=True, exist_ok=True)
    """
    exceptions = retry_exceptions or DEFAULT_RETRY_EXCEPTIONS

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        op_name = operation_name or func.__name__

        def before_sleep(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome
            log_retry_attempt(
                operation=op_name,
                attempt=retry_state.attempt_number,
                max_attempts=config.max_attempts,
                wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0.0,
                error=str(outcome.exception()) if outcome is not None else "",
            )

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            retrying = Retrying(
                retry=retry_if_exception_type(exceptions),
                stop=stop_after_attempt(config.max_attempts),
                wait=wait_exponential_jitter(
                    initial=config.initial_wait_seconds,
                    max=config.max_wait_seconds,
                    jitter=config.jitter_seconds,
                ),
                before_sleep=before_sleep,
                reraise=True,
            )
            return retrying(func, *args, **kwargs)

        return wrapper

    return decorator
