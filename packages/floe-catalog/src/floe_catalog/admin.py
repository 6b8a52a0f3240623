"""Administrative client surface.

CatalogAdmin runs every request on a bounded worker pool and waits at most
``operation_timeout_seconds`` for it. A request that times out raises the
retryable CatalogTimeoutError to the caller; the same deadline is handed to
the lifecycle manager, so a request that has not recorded its intent by then
is abandoned, while one that has keeps running to completion.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any, TypeVar

from floe_catalog.data import RowStore
from floe_catalog.errors import CatalogTimeoutError, CatalogUnavailableError
from floe_catalog.models import (
    NamespaceDescriptor,
    TableDescriptor,
    TableName,
)
from floe_catalog.observability import get_logger

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.lifecycle import NamespaceLifecycleManager
    from floe_catalog.store import CatalogStore

R = TypeVar("R")


def _table_name(name: TableName | str) -> TableName:
    return TableName.from_string(name)


class CatalogAdmin:
    """Caller-facing catalog API with request timeouts.

    Table names may be given as TableName or as ``"namespace:qualifier"``
    strings; a bare qualifier refers to the default namespace.

    Example:
        >>> admin = create_coordinator(CatalogConfig(root_dir=Path("/tmp/floe")))
        >>> admin.create_namespace(NamespaceDescriptor(name="NS1"))
        >>> admin.create_table(TableDescriptor.of("NS1:T1", "my_cf"))
        >>> admin.list_table_names_by_namespace("NS1")
        [TableName(namespace='NS1', qualifier='T1')]
    """

    def __init__(
        self,
        manager: NamespaceLifecycleManager,
        *,
        operation_timeout: float = 60.0,
        max_workers: int = 8,
        store: CatalogStore | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        """Initialize CatalogAdmin.

        Args:
            manager: A started lifecycle manager.
            operation_timeout: Seconds to wait for each request.
            max_workers: Size of the worker pool.
            store: Store to dispose of on close, if owned by this admin.
            logger: Optional structlog logger. Uses default if not provided.
        """
        self.manager = manager
        self._store = store
        self.operation_timeout = operation_timeout
        self._logger = logger or get_logger()
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="floe-catalog")
        self._row_stores: dict[TableName, RowStore] = {}
        self._row_stores_lock = threading.Lock()
        self._closed = False

    # Namespaces

    def create_namespace(self, descriptor: NamespaceDescriptor) -> None:
        self._submit("create_namespace", self.manager.create_namespace, descriptor, deadline=True)

    def modify_namespace(self, descriptor: NamespaceDescriptor) -> None:
        self._submit("modify_namespace", self.manager.modify_namespace, descriptor, deadline=True)

    def delete_namespace(self, name: str) -> None:
        self._submit("delete_namespace", self.manager.delete_namespace, name, deadline=True)

    def get_namespace_descriptor(self, name: str) -> NamespaceDescriptor:
        return self._submit("get_namespace_descriptor", self.manager.get_namespace_descriptor, name)

    def list_namespaces(self) -> list[str]:
        return self._submit("list_namespaces", self.manager.list_namespaces)

    def list_namespace_descriptors(self) -> list[NamespaceDescriptor]:
        return self._submit("list_namespace_descriptors", self.manager.list_namespace_descriptors)

    # Tables

    def create_table(self, descriptor: TableDescriptor) -> None:
        self._submit("create_table", self.manager.create_table, descriptor, deadline=True)

    def list_table_descriptors(self, pattern: str | None = None) -> list[TableDescriptor]:
        """Return user tables whose ``namespace:qualifier`` fully matches ``pattern``."""
        return self._submit("list_table_descriptors", self.manager.list_table_descriptors, pattern)

    def list_table_descriptors_by_namespace(self, namespace: str) -> list[TableDescriptor]:
        return self._submit(
            "list_table_descriptors_by_namespace",
            self.manager.list_table_descriptors_by_namespace,
            namespace,
        )

    def list_table_names_by_namespace(self, namespace: str) -> list[TableName]:
        return self._submit(
            "list_table_names_by_namespace",
            self.manager.list_table_names_by_namespace,
            namespace,
        )

    def disable_table(self, name: TableName | str) -> None:
        self._submit("disable_table", self.manager.disable_table, _table_name(name), deadline=True)

    def enable_table(self, name: TableName | str) -> None:
        self._submit("enable_table", self.manager.enable_table, _table_name(name), deadline=True)

    def delete_table(self, name: TableName | str) -> None:
        """Delete a disabled table and drop its cached row store."""
        table_name = _table_name(name)
        self._submit("delete_table", self.manager.delete_table, table_name, deadline=True)
        with self._row_stores_lock:
            self._row_stores.pop(table_name, None)

    def get_descriptor(self, name: TableName | str) -> TableDescriptor:
        return self._submit(
            "get_descriptor", self.manager.get_table_descriptor, _table_name(name)
        )

    def table_exists(self, name: TableName | str) -> bool:
        return self._submit("table_exists", self.manager.table_exists, _table_name(name))

    def table_state(self, name: TableName | str) -> str:
        return self._submit("table_state", self.manager.table_state, _table_name(name)).value

    # Data path

    def get_table(self, name: TableName | str) -> RowStore:
        """Return the row store of a table, shared between callers.

        Raises:
            TableNotFoundError: If the table does not exist.
        """
        table_name = _table_name(name)
        descriptor = self.get_descriptor(table_name)
        with self._row_stores_lock:
            store = self._row_stores.get(table_name)
            if store is None:
                path = self.manager.layout.table_path(table_name.namespace, table_name.qualifier)
                store = RowStore(descriptor, Path(path), logger=self._logger)
                self._row_stores[table_name] = store
            return store

    def flush(self, name: TableName | str) -> list[Path]:
        """Flush a table's memstore to its directory."""
        return self.get_table(name).flush()

    # Lifecycle

    def close(self) -> None:
        """Stop the manager, shut down the worker pool and release the store."""
        if self._closed:
            return
        self._closed = True
        self.manager.stop()
        self._pool.shutdown(wait=True)
        if self._store is not None:
            self._store.dispose()
        self._logger.debug("catalog_admin_closed")

    def __enter__(self) -> CatalogAdmin:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def _submit(
        self,
        operation: str,
        func: Callable[..., R],
        *args: Any,
        deadline: bool = False,
    ) -> R:
        if self._closed:
            raise CatalogUnavailableError("Catalog admin is closed")
        kwargs: dict[str, Any] = {}
        if deadline:
            kwargs["deadline"] = time.monotonic() + self.operation_timeout
        future = self._pool.submit(func, *args, **kwargs)
        try:
            return future.result(timeout=self.operation_timeout)
        except FutureTimeoutError as exc:
            self._logger.warning(
                "operation_timed_out",
                operation=operation,
                timeout_seconds=self.operation_timeout,
            )
            raise CatalogTimeoutError(operation, self.operation_timeout) from exc

