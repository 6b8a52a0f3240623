"""CLI error handling for floe-catalog.

This module maps catalog exceptions to user-friendly messages with
appropriate exit codes.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import click
from pydantic import ValidationError as PydanticValidationError

from floe_catalog.cli.output import error
from floe_catalog.errors import (
    CatalogStorageError,
    CatalogTimeoutError,
    CatalogUnavailableError,
    FloeCatalogError,
)

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails


# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # Precondition failure, invalid name or configuration
EXIT_SYSTEM_ERROR = 2  # Storage failure, timeout, coordinator unavailable

_SYSTEM_ERRORS = (CatalogStorageError, CatalogTimeoutError, CatalogUnavailableError)


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting."""
        error(self.format_message())


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format Pydantic validation error into user-friendly message.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - name: Value error, Illegal namespace name 'a b'"
    """
    errors: list[ErrorDetails] = err.errors()
    lines = ["Validation failed:"]
    for e in errors:
        loc = ".".join(str(x) for x in e["loc"])
        lines.append(f"  - {loc}: {e['msg']}" if loc else f"  - {e['msg']}")
    return "\n".join(lines)


def exit_code_for(exc: FloeCatalogError) -> int:
    """Return the exit code for a catalog error."""
    if isinstance(exc, _SYSTEM_ERRORS):
        return EXIT_SYSTEM_ERROR
    return EXIT_USER_ERROR


@contextmanager
def catalog_errors() -> Iterator[None]:
    """Translate catalog and validation errors raised in the block into CLIError.

    Raises:
        CLIError: With exit code 1 for user errors and 2 for system errors.
    """
    try:
        yield
    except FloeCatalogError as exc:
        raise CLIError(str(exc), exit_code=exit_code_for(exc)) from exc
    except PydanticValidationError as exc:
        raise CLIError(format_pydantic_error(exc)) from exc
    except ValueError as exc:
        raise CLIError(str(exc)) from exc
