"""Logging and tracing for catalog operations.

Every catalog operation runs inside ``catalog_operation``, which opens an
OpenTelemetry span named ``catalog.<operation>`` and emits structlog events
around it::

    create_namespace_started    (debug)
    create_namespace_completed  (info, with duration_ms)
    create_namespace_failed     (error, with error and error_type)

Only the OpenTelemetry API is used; without an SDK installed the spans are
no-ops and the log events are the sole record.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer
    from structlog.stdlib import BoundLogger

LOGGER_NAME = "floe.catalog"


def get_logger(**context: Any) -> BoundLogger:
    """Return the catalog logger, optionally bound to extra context.

    Example:
        >>> get_logger(namespace="bronze").info("namespace_created")
    """
    logger: BoundLogger = structlog.stdlib.get_logger(LOGGER_NAME)
    return logger.bind(**context) if context else logger


def get_tracer() -> Tracer:
    return trace.get_tracer(LOGGER_NAME)


def configure_logging(*, log_level: str = "INFO", json_format: bool = True) -> None:
    """Route catalog events through the standard library logging tree.

    Args:
        log_level: Minimum level name, e.g. ``"DEBUG"``.
        json_format: Render one JSON object per event instead of console lines.
    """
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=log_level.upper())


@contextmanager
def catalog_operation(
    operation: str,
    *,
    namespace: str | None = None,
    table: str | None = None,
) -> Iterator[Span]:
    """Trace and log one catalog operation.

    Exceptions are recorded on the span, logged and re-raised unchanged.

    Args:
        operation: Operation name, e.g. ``"delete_namespace"``.
        namespace: Namespace the operation targets.
        table: Fully qualified table name the operation targets.

    Example:
        >>> with catalog_operation("delete_namespace", namespace="bronze"):
        ...     ...
    """
    attributes: dict[str, str] = {"catalog.operation": operation}
    context: dict[str, str] = {}
    if namespace:
        attributes["catalog.namespace"] = context["namespace"] = namespace
    if table:
        attributes["catalog.table"] = context["table"] = table

    logger = get_logger(**context)
    started = time.perf_counter()
    with get_tracer().start_as_current_span(
        f"catalog.{operation}",
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        logger.debug(f"{operation}_started")
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            logger.error(f"{operation}_failed", error=str(exc), error_type=type(exc).__name__)
            raise
        span.set_status(Status(StatusCode.OK))
        logger.info(
            f"{operation}_completed",
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
        )


def log_retry_attempt(
    operation: str,
    attempt: int,
    max_attempts: int,
    wait_seconds: float,
    error: str,
) -> None:
    """Log a failed attempt that is about to be retried."""
    get_logger().warning(
        "operation_retry",
        operation=operation,
        attempt=attempt,
        max_attempts=max_attempts,
        wait_seconds=round(wait_seconds, 3),
        error=error,
    )
