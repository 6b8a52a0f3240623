"""Drive recorded intents to completion.

The same code path finishes an operation on the coordinator that recorded
it and, after a failover, in the recovery reconciler. Each step checks the
current catalog and filesystem state first and only performs what is
missing, so applying an intent any number of times converges on the same
result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from floe_catalog.intents import Intent, IntentOperation
from floe_catalog.models import (
    NamespaceDescriptor,
    NamespaceState,
    TableDescriptor,
    TableName,
    TableState,
)
from floe_catalog.observability import get_logger

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.hooks import AssignmentHook
    from floe_catalog.intents import IntentLog
    from floe_catalog.layout import StorageLayout
    from floe_catalog.namespaces import NamespaceCatalog
    from floe_catalog.tables import TableCatalog


class IntentExecutor:
    """Apply intents against the catalogs, the layout and the assignment hook."""

    def __init__(
        self,
        namespaces: NamespaceCatalog,
        tables: TableCatalog,
        intents: IntentLog,
        layout: StorageLayout,
        hook: AssignmentHook,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._namespaces = namespaces
        self._tables = tables
        self._intents = intents
        self._layout = layout
        self._hook = hook
        self._logger = logger or get_logger()
        self._handlers = {
            IntentOperation.CREATE_NAMESPACE: self._create_namespace,
            IntentOperation.MODIFY_NAMESPACE: self._modify_namespace,
            IntentOperation.DELETE_NAMESPACE: self._delete_namespace,
            IntentOperation.CREATE_TABLE: self._create_table,
            IntentOperation.DELETE_TABLE: self._delete_table,
        }

    def apply(self, intent: Intent) -> None:
        """Finish ``intent`` and mark it complete.

        Raises:
            StorageLayoutError: If a directory step keeps failing; the intent
                stays pending.
            CatalogStoreError: If the store fails; the intent stays pending.
        """
        self._handlers[intent.operation](intent)
        self._intents.complete(intent.id)

    def _create_namespace(self, intent: Intent) -> None:
        descriptor = NamespaceDescriptor.model_validate(intent.payload["descriptor"])
        record = self._namespaces.lookup(descriptor.name)
        if record is None:
            record = self._namespaces.create(descriptor, state=NamespaceState.CREATING)
        if record.state is NamespaceState.DELETING:
            # A later delete already took over this name
            return
        self._layout.ensure_namespace_dir(descriptor.name)
        if record.state is NamespaceState.CREATING:
            self._namespaces.set_state(descriptor.name, NamespaceState.ACTIVE)

    def _modify_namespace(self, intent: Intent) -> None:
        descriptor = NamespaceDescriptor.model_validate(intent.payload["descriptor"])
        record = self._namespaces.lookup(descriptor.name)
        if record is None or record.state is not NamespaceState.ACTIVE:
            self._logger.warning(
                "intent_target_missing",
                intent_id=intent.id,
                operation=intent.operation.value,
                target=intent.target,
            )
            return
        self._namespaces.modify(descriptor)

    def _delete_namespace(self, intent: Intent) -> None:
        name = intent.namespace
        record = self._namespaces.lookup(name)
        if record is not None:
            if record.table_count > 0:
                # Tables were bound after the intent; the namespace must survive
                self._logger.warning(
                    "namespace_delete_abandoned",
                    intent_id=intent.id,
                    namespace=name,
                    table_count=record.table_count,
                )
                if record.state is not NamespaceState.ACTIVE:
                    self._namespaces.set_state(name, NamespaceState.ACTIVE)
                return
            if record.state is NamespaceState.ACTIVE:
                self._namespaces.begin_delete(name)
            self._namespaces.delete(name)
        self._layout.remove_namespace_dir(name)

    def _create_table(self, intent: Intent) -> None:
        descriptor = TableDescriptor.model_validate(intent.payload["descriptor"])
        table_name = descriptor.table_name
        record = self._tables.lookup(table_name)
        if record is None:
            namespace = self._namespaces.lookup(table_name.namespace)
            if namespace is None or namespace.state is not NamespaceState.ACTIVE:
                self._logger.warning(
                    "table_create_abandoned",
                    intent_id=intent.id,
                    table=str(table_name),
                )
                return
            record = self._tables.create(descriptor, state=TableState.CREATING)
        self._layout.ensure_table_dir(table_name.namespace, table_name.qualifier)
        if record.state is TableState.CREATING:
            self._hook.table_created(record.descriptor)
            self._tables.set_state(table_name, TableState.ENABLED)

    def _delete_table(self, intent: Intent) -> None:
        table_name = TableName.from_string(intent.payload["table"])
        record = self._tables.lookup(table_name)
        if record is not None:
            if record.state is not TableState.DISABLED:
                # Only a later create can put a live record under this name
                self._logger.warning(
                    "table_delete_superseded",
                    intent_id=intent.id,
                    table=str(table_name),
                    state=record.state.value,
                )
                return
            self._tables.drop(table_name)
        self._layout.remove_table_dir(table_name.namespace, table_name.qualifier)
        self._hook.table_deleted(table_name)
