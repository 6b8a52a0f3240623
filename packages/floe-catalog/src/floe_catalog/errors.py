"""Custom exceptions for floe-catalog.

This module defines the exception hierarchy:
- FloeCatalogError (base)
  - NamespaceExistsError
  - NamespaceNotFoundError
    - TableNamespaceNotFoundError
  - NamespaceReservedError
  - NamespaceNotEmptyError
  - TableExistsError
  - TableNotFoundError
  - TableNotDisabledError
  - CatalogUnavailableError
  - CatalogTimeoutError
    - LockTimeoutError
  - CatalogStorageError
    - StorageLayoutError
    - CatalogStoreError

Precondition errors (exists, not found, reserved, not empty, table state) are
raised before any durable mutation. Errors with ``retryable = True`` describe
transient conditions that a caller may retry.
"""

from __future__ import annotations


class FloeCatalogError(Exception):
    """Base exception for all floe-catalog operations.

    Attributes:
        message: Human-readable error description.
        details: Optional additional context about the error.
        retryable: Whether the caller may retry the same request.

    Example:
        >>> try:
        ...     admin.delete_namespace("bronze")
        ... except FloeCatalogError as e:
        ...     print(f"Catalog error: {e}")
    """

    retryable: bool = False

    def __init__(self, message: str, *, details: dict[str, str] | None = None) -> None:
        """Initialize FloeCatalogError.

        Args:
            message: Human-readable error description.
            details: Optional additional context about the error.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details if present."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class NamespaceExistsError(FloeCatalogError):
    """Namespace already exists in the catalog.

    Raised when creating a namespace whose name is already recorded,
    including a namespace whose creation is still in progress.
    """

    def __init__(
        self,
        namespace: str,
        message: str | None = None,
    ) -> None:
        """Initialize NamespaceExistsError.

        Args:
            namespace: The namespace that already exists.
            message: Optional custom error message.
        """
        msg = message or f"Namespace already exists: {namespace}"
        super().__init__(msg, details={"namespace": namespace})
        self.namespace = namespace


class NamespaceNotFoundError(FloeCatalogError):
    """Namespace not found in the catalog.

    Example:
        >>> try:
        ...     admin.get_namespace_descriptor("nonexistent")
        ... except NamespaceNotFoundError as e:
        ...     print(f"Namespace not found: {e.namespace}")
    """

    def __init__(
        self,
        namespace: str,
        message: str | None = None,
    ) -> None:
        """Initialize NamespaceNotFoundError.

        Args:
            namespace: The namespace that was not found.
            message: Optional custom error message.
        """
        msg = message or f"Namespace not found: {namespace}"
        super().__init__(msg, details={"namespace": namespace})
        self.namespace = namespace


class TableNamespaceNotFoundError(NamespaceNotFoundError):
    """Table creation referenced a namespace that does not exist.

    Subclass of NamespaceNotFoundError so callers checking for the broader
    category still catch it.
    """

    def __init__(self, namespace: str, table: str) -> None:
        """Initialize TableNamespaceNotFoundError.

        Args:
            namespace: The missing namespace.
            table: The table that referenced it.
        """
        super().__init__(
            namespace,
            message=f"Cannot create table {table}: namespace not found: {namespace}",
        )
        self.details["table"] = table
        self.table = table


class NamespaceReservedError(FloeCatalogError):
    """Operation is not permitted on a reserved namespace.

    The reserved namespaces are created once at bootstrap and can never be
    created, modified or deleted through the administrative surface.
    """

    def __init__(
        self,
        namespace: str,
        operation: str,
        message: str | None = None,
    ) -> None:
        """Initialize NamespaceReservedError.

        Args:
            namespace: The reserved namespace name.
            operation: The rejected operation (create, modify, delete).
            message: Optional custom error message.
        """
        msg = message or f"Cannot {operation} reserved namespace: {namespace}"
        super().__init__(msg, details={"namespace": namespace, "operation": operation})
        self.namespace = namespace
        self.operation = operation


class NamespaceNotEmptyError(FloeCatalogError):
    """Cannot delete a namespace that contains tables.

    Disabled tables still count; every table must be deleted first.
    """

    def __init__(
        self,
        namespace: str,
        table_count: int,
        message: str | None = None,
    ) -> None:
        """Initialize NamespaceNotEmptyError.

        Args:
            namespace: The namespace that is not empty.
            table_count: Number of tables still bound to it.
            message: Optional custom error message.
        """
        msg = message or f"Namespace is not empty: {namespace}"
        super().__init__(
            msg,
            details={"namespace": namespace, "table_count": str(table_count)},
        )
        self.namespace = namespace
        self.table_count = table_count


class TableExistsError(FloeCatalogError):
    """Table already exists in the catalog."""

    def __init__(self, table: str, message: str | None = None) -> None:
        msg = message or f"Table already exists: {table}"
        super().__init__(msg, details={"table": table})
        self.table = table


class TableNotFoundError(FloeCatalogError):
    """Table not found in the catalog."""

    def __init__(self, table: str, message: str | None = None) -> None:
        msg = message or f"Table not found: {table}"
        super().__init__(msg, details={"table": table})
        self.table = table


class TableNotDisabledError(FloeCatalogError):
    """Table must be disabled before it can be deleted."""

    def __init__(self, table: str, state: str) -> None:
        super().__init__(
            f"Table is not disabled: {table}",
            details={"table": table, "state": state},
        )
        self.table = table
        self.state = state


class CatalogUnavailableError(FloeCatalogError):
    """The coordinator is not accepting requests yet.

    Raised while start-up reconciliation has not completed, or after the
    coordinator has been closed.
    """

    retryable = True

    def __init__(self, message: str = "Catalog coordinator is not available") -> None:
        super().__init__(message)


class CatalogTimeoutError(FloeCatalogError):
    """The caller stopped waiting for a response.

    If the operation had already recorded its intent it keeps running on the
    coordinator and will complete; the caller should re-read before retrying.
    """

    retryable = True

    def __init__(
        self,
        operation: str,
        timeout_seconds: float | None,
        message: str | None = None,
    ) -> None:
        """Initialize CatalogTimeoutError.

        Args:
            operation: The operation that timed out.
            timeout_seconds: The timeout that elapsed, if known.
            message: Optional custom error message.
        """
        msg = message or f"Timed out waiting for {operation}"
        details = {"operation": operation}
        if timeout_seconds is not None:
            details["timeout_seconds"] = str(timeout_seconds)
        super().__init__(msg, details=details)
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class LockTimeoutError(CatalogTimeoutError):
    """Timed out waiting for exclusive access to a namespace."""

    def __init__(self, key: str, timeout_seconds: float | None) -> None:
        super().__init__(
            "lock",
            timeout_seconds,
            message=f"Timed out waiting for exclusive access to {key}",
        )
        self.details["key"] = key
        self.key = key


class CatalogStorageError(FloeCatalogError):
    """Generic storage-layer failure (filesystem or durable store I/O)."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        cause: str | None = None,
    ) -> None:
        """Initialize CatalogStorageError.

        Args:
            message: Human-readable error description.
            path: Filesystem path or store location involved.
            cause: The underlying cause of the failure.
        """
        details: dict[str, str] = {}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = cause
        super().__init__(message, details=details)
        self.path = path
        self.cause = cause


class StorageLayoutError(CatalogStorageError):
    """A directory operation failed after all retries.

    The preceding catalog mutation is already durable; the next recovery
    pass repairs the layout.
    """


class CatalogStoreError(CatalogStorageError):
    """The durable catalog store rejected or failed a transaction."""
