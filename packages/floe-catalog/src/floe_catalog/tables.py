"""Table catalog: durable mapping from (namespace, qualifier) to table descriptor.

Every insert or delete adjusts the owning namespace's ``table_count`` in the
same transaction, so the count always equals the number of table records of
the namespace. A table record can only be inserted into an ACTIVE namespace.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import sqlalchemy as sql
from pydantic import BaseModel, ConfigDict

from floe_catalog.errors import (
    NamespaceNotFoundError,
    TableExistsError,
    TableNamespaceNotFoundError,
    TableNotDisabledError,
    TableNotFoundError,
)
from floe_catalog.models import (
    SYSTEM_NAMESPACE_NAME,
    NamespaceState,
    TableDescriptor,
    TableName,
    TableState,
)
from floe_catalog.observability import get_logger
from floe_catalog.store import namespaces_table, tables_table

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.store import CatalogStore


class TableRecord(BaseModel):
    """A table catalog entry in any lifecycle state."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    descriptor: TableDescriptor
    state: TableState

    @property
    def table_name(self) -> TableName:
        return self.descriptor.table_name


def _record_from_row(row: sql.Row) -> TableRecord:
    return TableRecord(
        descriptor=TableDescriptor.model_validate(row.descriptor),
        state=TableState(row.state),
    )


def _key_clause(table_name: TableName) -> sql.ColumnElement[bool]:
    return sql.and_(
        tables_table.c.namespace == table_name.namespace,
        tables_table.c.qualifier == table_name.qualifier,
    )


def _namespace_state(conn: sql.Connection, name: str) -> NamespaceState | None:
    state = conn.execute(
        sql.select(namespaces_table.c.state).where(namespaces_table.c.name == name)
    ).scalar_one_or_none()
    return NamespaceState(state) if state is not None else None


def _adjust_count(conn: sql.Connection, namespace: str, delta: int) -> None:
    conn.execute(
        sql.update(namespaces_table)
        .where(namespaces_table.c.name == namespace)
        .where(namespaces_table.c.table_count + delta >= 0)
        .values(table_count=namespaces_table.c.table_count + delta)
    )


class TableCatalog:
    """Table catalog operations against the durable store.

    Example:
        >>> tables = TableCatalog(store)
        >>> tables.create(TableDescriptor.of("NS1:T1", "cf"), state=TableState.ENABLED)
        >>> [str(t.table_name) for t in tables.list_by_namespace("NS1")]
        ['NS1:T1']
    """

    def __init__(self, store: CatalogStore, *, logger: BoundLogger | None = None) -> None:
        self._store = store
        self._logger = logger or get_logger()

    def create(
        self,
        descriptor: TableDescriptor,
        *,
        state: TableState = TableState.CREATING,
    ) -> TableRecord:
        """Insert a table record and increment its namespace's table count.

        Raises:
            TableNamespaceNotFoundError: If the namespace is not ACTIVE.
            TableExistsError: If the table is already recorded.
        """
        table_name = descriptor.table_name
        with self._store.transaction() as conn:
            if _namespace_state(conn, table_name.namespace) is not NamespaceState.ACTIVE:
                raise TableNamespaceNotFoundError(table_name.namespace, str(table_name))
            self._insert(conn, descriptor, state)
        self._logger.debug("table_recorded", table=str(table_name), state=state.value)
        return TableRecord(descriptor=descriptor, state=state)

    def insert_if_absent(self, descriptor: TableDescriptor, state: TableState) -> bool:
        """Insert a record unless one exists. Used by bootstrap and recovery.

        Returns:
            True if the record was inserted.

        Raises:
            TableNamespaceNotFoundError: If the namespace has no record.
        """
        table_name = descriptor.table_name
        with self._store.transaction() as conn:
            if _namespace_state(conn, table_name.namespace) is None:
                raise TableNamespaceNotFoundError(table_name.namespace, str(table_name))
            if self._select(conn, table_name) is not None:
                return False
            self._insert(conn, descriptor, state)
        return True

    def get(self, table_name: TableName) -> TableDescriptor:
        """Return the descriptor of a visible table.

        Raises:
            TableNotFoundError: If the table is absent or still being created.
        """
        record = self.lookup(table_name)
        if record is None or record.state is TableState.CREATING:
            raise TableNotFoundError(str(table_name))
        return record.descriptor

    def lookup(self, table_name: TableName) -> TableRecord | None:
        """Return the record in any state, or None."""
        with self._store.transaction() as conn:
            return self._select(conn, table_name)

    def exists(self, table_name: TableName) -> bool:
        """Return True if the table is visible."""
        record = self.lookup(table_name)
        return record is not None and record.state is not TableState.CREATING

    def state(self, table_name: TableName) -> TableState:
        """Return the state of a recorded table.

        Raises:
            TableNotFoundError: If the table is not recorded.
        """
        record = self.lookup(table_name)
        if record is None:
            raise TableNotFoundError(str(table_name))
        return record.state

    def set_state(self, table_name: TableName, state: TableState) -> None:
        """Set the state of a recorded table.

        Raises:
            TableNotFoundError: If the table is not recorded.
        """
        with self._store.transaction() as conn:
            result = conn.execute(
                sql.update(tables_table).where(_key_clause(table_name)).values(state=state.value)
            )
            if result.rowcount == 0:
                raise TableNotFoundError(str(table_name))

    def drop(self, table_name: TableName) -> TableDescriptor:
        """Delete a disabled table and decrement its namespace's table count.

        Raises:
            TableNotFoundError: If the table is not recorded.
            TableNotDisabledError: If the table is not DISABLED.
        """
        with self._store.transaction() as conn:
            record = self._select(conn, table_name)
            if record is None:
                raise TableNotFoundError(str(table_name))
            if record.state is not TableState.DISABLED:
                raise TableNotDisabledError(str(table_name), record.state.value)
            self._delete(conn, table_name)
        self._logger.debug("table_record_removed", table=str(table_name))
        return record.descriptor

    def list_by_namespace(self, namespace: str) -> list[TableDescriptor]:
        """Return the visible tables of an ACTIVE namespace, system tables included.

        Raises:
            NamespaceNotFoundError: If the namespace is not ACTIVE.
        """
        with self._store.transaction() as conn:
            if _namespace_state(conn, namespace) is not NamespaceState.ACTIVE:
                raise NamespaceNotFoundError(namespace)
            rows = conn.execute(
                sql.select(tables_table)
                .where(tables_table.c.namespace == namespace)
                .where(tables_table.c.state != TableState.CREATING.value)
                .order_by(tables_table.c.qualifier)
            ).all()
        return [_record_from_row(row).descriptor for row in rows]

    def list_all(self, pattern: str | None = None) -> list[TableDescriptor]:
        """Return visible tables outside the system namespace.

        Args:
            pattern: Optional regular expression that must match the whole
                ``namespace:qualifier`` string.
        """
        with self._store.transaction() as conn:
            rows = conn.execute(
                sql.select(tables_table)
                .where(tables_table.c.namespace != SYSTEM_NAMESPACE_NAME)
                .where(tables_table.c.state != TableState.CREATING.value)
                .order_by(tables_table.c.namespace, tables_table.c.qualifier)
            ).all()
        descriptors = [_record_from_row(row).descriptor for row in rows]
        if pattern is None:
            return descriptors
        regex = re.compile(pattern)
        return [d for d in descriptors if regex.fullmatch(str(d.table_name))]

    def records(self) -> list[TableRecord]:
        """Return every table record in any state."""
        with self._store.transaction() as conn:
            rows = conn.execute(
                sql.select(tables_table).order_by(
                    tables_table.c.namespace, tables_table.c.qualifier
                )
            ).all()
        return [_record_from_row(row) for row in rows]

    def count_by_namespace(self) -> dict[str, int]:
        """Return the number of table records per namespace."""
        with self._store.transaction() as conn:
            rows = conn.execute(
                sql.select(tables_table.c.namespace, sql.func.count()).group_by(
                    tables_table.c.namespace
                )
            ).all()
        return {namespace: count for namespace, count in rows}

    def _select(self, conn: sql.Connection, table_name: TableName) -> TableRecord | None:
        row = conn.execute(sql.select(tables_table).where(_key_clause(table_name))).one_or_none()
        return _record_from_row(row) if row is not None else None

    def _insert(self, conn: sql.Connection, descriptor: TableDescriptor, state: TableState) -> None:
        table_name = descriptor.table_name
        if self._select(conn, table_name) is not None:
            raise TableExistsError(str(table_name))
        conn.execute(
            sql.insert(tables_table).values(
                namespace=table_name.namespace,
                qualifier=table_name.qualifier,
                descriptor=descriptor.model_dump(mode="json"),
                state=state.value,
            )
        )
        _adjust_count(conn, table_name.namespace, 1)

    @staticmethod
    def _delete(conn: sql.Connection, table_name: TableName) -> None:
        conn.execute(sql.delete(tables_table).where(_key_clause(table_name)))
        _adjust_count(conn, table_name.namespace, -1)
