"""Namespace lifecycle manager.

Entry point for every catalog mutation. Each mutation holds the keyed lock
of its namespace, validates its preconditions, records an intent and then
drives the intent to completion through the shared IntentExecutor:

    lock -> leftover intents -> preconditions -> deadline check -> intent -> mutate -> complete

Failures before the intent is recorded leave no trace. Failures after it
leave the intent pending. The next mutation of the same namespace finishes
it before recording its own intent, and otherwise the recovery reconciler
finishes it on the next start. Replay therefore never applies an intent
that a newer one on the same name has overtaken.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from floe_catalog.bootstrap import bootstrap_catalog
from floe_catalog.errors import (
    CatalogTimeoutError,
    CatalogUnavailableError,
    NamespaceExistsError,
    NamespaceNotEmptyError,
    NamespaceNotFoundError,
    NamespaceReservedError,
    TableExistsError,
    TableNamespaceNotFoundError,
    TableNotDisabledError,
    TableNotFoundError,
)
from floe_catalog.executor import IntentExecutor
from floe_catalog.hooks import AssignmentHook, NoopAssignmentHook
from floe_catalog.intents import IntentLog, IntentOperation
from floe_catalog.locking import KeyedLock
from floe_catalog.models import (
    NamespaceDescriptor,
    NamespaceState,
    TableDescriptor,
    TableName,
    TableState,
    is_reserved,
)
from floe_catalog.namespaces import NamespaceCatalog
from floe_catalog.observability import catalog_operation, get_logger
from floe_catalog.reconciler import ReconcileReport, RecoveryReconciler
from floe_catalog.tables import TableCatalog

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.layout import StorageLayout
    from floe_catalog.store import CatalogStore


class NamespaceLifecycleManager:
    """Serialize, validate and apply namespace and table mutations.

    Reads take no lock. Deadlines are absolute ``time.monotonic()`` values;
    a request whose deadline passes before its intent is recorded is
    abandoned with CatalogTimeoutError and has no side effects.

    Attributes:
        namespaces: Namespace catalog.
        tables: Table catalog.
        intents: Durable intent log.
        layout: Storage layout synchronizer.
        last_report: Report of the most recent start-up reconciliation.

    Example:
        >>> manager = NamespaceLifecycleManager(store, layout)
        >>> manager.start()
        >>> manager.create_namespace(NamespaceDescriptor(name="NS1"))
        >>> manager.list_namespaces()
        ['NS1', 'default', 'system']
    """

    def __init__(
        self,
        store: CatalogStore,
        layout: StorageLayout,
        *,
        lock_timeout: float | None = None,
        hook: AssignmentHook | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._store = store
        self._logger = logger or get_logger()
        self.layout = layout
        self.namespaces = NamespaceCatalog(store, logger=self._logger)
        self.tables = TableCatalog(store, logger=self._logger)
        self.intents = IntentLog(store, logger=self._logger)
        self.executor = IntentExecutor(
            self.namespaces,
            self.tables,
            self.intents,
            layout,
            hook or NoopAssignmentHook(),
            logger=self._logger,
        )
        self._locks = KeyedLock()
        self._lock_timeout = lock_timeout
        self._available = threading.Event()
        self.last_report: ReconcileReport | None = None

    @property
    def is_available(self) -> bool:
        """Whether start-up reconciliation has completed."""
        return self._available.is_set()

    def start(self) -> ReconcileReport:
        """Initialize the store, bootstrap and reconcile, then accept requests.

        Returns:
            The report of the start-up reconciliation pass.
        """
        with catalog_operation("start"):
            self._store.initialize()
            bootstrap_catalog(self.namespaces, self.tables, self.layout, logger=self._logger)
            report = self.reconciler().run()
            self.last_report = report
            self._available.set()
        self._logger.info("catalog_available", reconciled=report.changed)
        return report

    def stop(self) -> None:
        """Stop accepting requests."""
        self._available.clear()

    def reconciler(self) -> RecoveryReconciler:
        """Build a reconciler over this manager's catalogs."""
        return RecoveryReconciler(
            self.namespaces,
            self.tables,
            self.intents,
            self.layout,
            self.executor,
            logger=self._logger,
        )

    # Namespace operations

    def create_namespace(
        self,
        descriptor: NamespaceDescriptor,
        *,
        deadline: float | None = None,
    ) -> None:
        """Create a namespace and its directory.

        Raises:
            NamespaceReservedError: If the name is reserved.
            NamespaceExistsError: If the namespace exists in any state.
            CatalogTimeoutError: If the deadline passed before the intent.
            StorageLayoutError: If the directory could not be created.
        """
        name = descriptor.name
        with self._mutation("create_namespace", name, deadline, namespace=name):
            if is_reserved(name):
                raise NamespaceReservedError(name, "create")
            if self.namespaces.lookup(name) is not None:
                raise NamespaceExistsError(name)
            self._check_deadline("create_namespace", deadline)
            intent = self.intents.append(
                IntentOperation.CREATE_NAMESPACE,
                name,
                payload={"descriptor": descriptor.model_dump(mode="json")},
            )
            self.executor.apply(intent)

    def modify_namespace(
        self,
        descriptor: NamespaceDescriptor,
        *,
        deadline: float | None = None,
    ) -> None:
        """Replace the configuration of an existing namespace.

        Raises:
            NamespaceReservedError: If the name is reserved.
            NamespaceNotFoundError: If the namespace does not exist.
            CatalogTimeoutError: If the deadline passed before the intent.
        """
        name = descriptor.name
        with self._mutation("modify_namespace", name, deadline, namespace=name):
            if is_reserved(name):
                raise NamespaceReservedError(name, "modify")
            self.namespaces.get(name)
            self._check_deadline("modify_namespace", deadline)
            intent = self.intents.append(
                IntentOperation.MODIFY_NAMESPACE,
                name,
                payload={"descriptor": descriptor.model_dump(mode="json")},
            )
            self.executor.apply(intent)

    def delete_namespace(self, name: str, *, deadline: float | None = None) -> None:
        """Delete an empty namespace and its directory.

        Raises:
            NamespaceReservedError: If the name is reserved.
            NamespaceNotFoundError: If the namespace does not exist.
            NamespaceNotEmptyError: If tables are bound to it.
            CatalogTimeoutError: If the deadline passed before the intent.
            StorageLayoutError: If the directory could not be removed.
        """
        with self._mutation("delete_namespace", name, deadline, namespace=name):
            self._check_namespace_deletable(name)
            self._check_deadline("delete_namespace", deadline)
            intent = self.intents.append(IntentOperation.DELETE_NAMESPACE, name)
            self.executor.apply(intent)

    def get_namespace_descriptor(self, name: str) -> NamespaceDescriptor:
        """Return an existing namespace.

        Raises:
            NamespaceNotFoundError: If the namespace does not exist.
        """
        self._ensure_available()
        return self.namespaces.get(name)

    def list_namespace_descriptors(self) -> list[NamespaceDescriptor]:
        """Return every namespace, reserved ones included."""
        self._ensure_available()
        return self.namespaces.list()

    def list_namespaces(self) -> list[str]:
        """Return the names of every namespace, reserved ones included."""
        return [d.name for d in self.list_namespace_descriptors()]

    # Table operations

    def create_table(
        self,
        descriptor: TableDescriptor,
        *,
        deadline: float | None = None,
    ) -> None:
        """Create a table in an existing namespace.

        The assignment hook is notified once the directory exists, before
        the table becomes visible.

        Raises:
            TableNamespaceNotFoundError: If the namespace does not exist.
            TableExistsError: If the table exists.
            CatalogTimeoutError: If the deadline passed before the intent.
            StorageLayoutError: If the directory could not be created.
        """
        table_name = descriptor.table_name
        with self._mutation(
            "create_table",
            table_name.namespace,
            deadline,
            namespace=table_name.namespace,
            table=str(table_name),
        ):
            if not self.namespaces.exists(table_name.namespace):
                raise TableNamespaceNotFoundError(table_name.namespace, str(table_name))
            if self.tables.lookup(table_name) is not None:
                raise TableExistsError(str(table_name))
            self._check_deadline("create_table", deadline)
            intent = self.intents.append(
                IntentOperation.CREATE_TABLE,
                table_name.namespace,
                qualifier=table_name.qualifier,
                payload={"descriptor": descriptor.model_dump(mode="json")},
            )
            self.executor.apply(intent)

    def disable_table(self, table_name: TableName, *, deadline: float | None = None) -> None:
        """Take an enabled table offline. Disabling twice is a no-op.

        Raises:
            TableNotFoundError: If the table does not exist.
        """
        self._set_table_state("disable_table", table_name, TableState.DISABLED, deadline)

    def enable_table(self, table_name: TableName, *, deadline: float | None = None) -> None:
        """Bring a disabled table back online. Enabling twice is a no-op.

        Raises:
            TableNotFoundError: If the table does not exist.
        """
        self._set_table_state("enable_table", table_name, TableState.ENABLED, deadline)

    def delete_table(self, table_name: TableName, *, deadline: float | None = None) -> None:
        """Delete a disabled table and its directory.

        Raises:
            TableNotFoundError: If the table does not exist.
            TableNotDisabledError: If the table is not disabled.
            CatalogTimeoutError: If the deadline passed before the intent.
            StorageLayoutError: If the directory could not be removed.
        """
        with self._mutation(
            "delete_table",
            table_name.namespace,
            deadline,
            namespace=table_name.namespace,
            table=str(table_name),
        ):
            state = self._visible_state(table_name)
            if state is not TableState.DISABLED:
                raise TableNotDisabledError(str(table_name), state.value)
            self._check_deadline("delete_table", deadline)
            intent = self.intents.append(
                IntentOperation.DELETE_TABLE,
                table_name.namespace,
                qualifier=table_name.qualifier,
                payload={"table": str(table_name)},
            )
            self.executor.apply(intent)

    def get_table_descriptor(self, table_name: TableName) -> TableDescriptor:
        """Return a visible table.

        Raises:
            TableNotFoundError: If the table does not exist.
        """
        self._ensure_available()
        return self.tables.get(table_name)

    def table_exists(self, table_name: TableName) -> bool:
        self._ensure_available()
        return self.tables.exists(table_name)

    def table_state(self, table_name: TableName) -> TableState:
        """Return the state of a visible table.

        Raises:
            TableNotFoundError: If the table does not exist.
        """
        self._ensure_available()
        return self._visible_state(table_name)

    def list_table_descriptors(self, pattern: str | None = None) -> list[TableDescriptor]:
        """Return user tables, optionally filtered by a name regex."""
        self._ensure_available()
        return self.tables.list_all(pattern)

    def list_table_descriptors_by_namespace(self, namespace: str) -> list[TableDescriptor]:
        """Return the tables of one namespace.

        Raises:
            NamespaceNotFoundError: If the namespace does not exist.
        """
        self._ensure_available()
        return self.tables.list_by_namespace(namespace)

    def list_table_names_by_namespace(self, namespace: str) -> list[TableName]:
        return [d.table_name for d in self.list_table_descriptors_by_namespace(namespace)]

    # Internals

    @contextmanager
    def _mutation(
        self,
        operation: str,
        key: str,
        deadline: float | None,
        *,
        namespace: str | None = None,
        table: str | None = None,
    ) -> Iterator[None]:
        self._ensure_available()
        with catalog_operation(operation, namespace=namespace, table=table):
            with self._locks.hold(key, timeout=self._lock_wait(deadline)):
                self._finish_pending(key)
                yield

    def _finish_pending(self, namespace: str) -> None:
        # At most one unfinished intent per namespace: leftovers go first
        for intent in self.intents.pending(namespace):
            self._logger.info(
                "pending_intent_finished",
                intent_id=intent.id,
                operation=intent.operation.value,
                target=intent.target,
            )
            self.executor.apply(intent)

    def _lock_wait(self, deadline: float | None) -> float | None:
        if deadline is None:
            return self._lock_timeout
        remaining = max(deadline - time.monotonic(), 0.0)
        if self._lock_timeout is None:
            return remaining
        return min(remaining, self._lock_timeout)

    @staticmethod
    def _check_deadline(operation: str, deadline: float | None) -> None:
        if deadline is not None and time.monotonic() >= deadline:
            raise CatalogTimeoutError(
                operation,
                None,
                message=f"Deadline passed before {operation} was recorded",
            )

    def _ensure_available(self) -> None:
        if not self._available.is_set():
            raise CatalogUnavailableError()

    def _check_namespace_deletable(self, name: str) -> None:
        if is_reserved(name):
            raise NamespaceReservedError(name, "delete")
        record = self.namespaces.lookup(name)
        if record is None or record.state is not NamespaceState.ACTIVE:
            raise NamespaceNotFoundError(name)
        if record.table_count > 0:
            raise NamespaceNotEmptyError(name, record.table_count)

    def _visible_state(self, table_name: TableName) -> TableState:
        record = self.tables.lookup(table_name)
        if record is None or record.state is TableState.CREATING:
            raise TableNotFoundError(str(table_name))
        return record.state

    def _set_table_state(
        self,
        operation: str,
        table_name: TableName,
        state: TableState,
        deadline: float | None,
    ) -> None:
        with self._mutation(
            operation,
            table_name.namespace,
            deadline,
            namespace=table_name.namespace,
            table=str(table_name),
        ):
            if self._visible_state(table_name) is state:
                return
            self._check_deadline(operation, deadline)
            self.tables.set_state(table_name, state)
            self._logger.info(f"table_{state.value}", table=str(table_name))
