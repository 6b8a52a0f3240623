"""Namespace catalog: durable mapping from namespace name to descriptor.

This module provides namespace operations:
- create / register_reserved
- get / lookup / list / records
- modify
- begin_delete / delete
- set_state / repair_count

Only ACTIVE namespaces are visible to get and list. Records in CREATING or
DELETING state still block a create of the same name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sql
from pydantic import BaseModel, ConfigDict, Field

from floe_catalog.errors import (
    NamespaceExistsError,
    NamespaceNotEmptyError,
    NamespaceNotFoundError,
    NamespaceReservedError,
)
from floe_catalog.models import NamespaceDescriptor, NamespaceState, is_reserved
from floe_catalog.observability import get_logger
from floe_catalog.store import namespaces_table

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.store import CatalogStore


class NamespaceRecord(BaseModel):
    """A namespace catalog entry in any lifecycle state."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    descriptor: NamespaceDescriptor
    state: NamespaceState
    table_count: int = Field(default=0, ge=0)

    @property
    def name(self) -> str:
        return self.descriptor.name


def _record_from_row(row: sql.Row) -> NamespaceRecord:
    return NamespaceRecord(
        descriptor=NamespaceDescriptor(name=row.name, configuration=dict(row.configuration)),
        state=NamespaceState(row.state),
        table_count=row.table_count,
    )


def _select_record(conn: sql.Connection, name: str) -> NamespaceRecord | None:
    row = conn.execute(
        sql.select(namespaces_table).where(namespaces_table.c.name == name)
    ).one_or_none()
    return _record_from_row(row) if row is not None else None


class NamespaceCatalog:
    """Namespace catalog operations against the durable store.

    Example:
        >>> catalog = NamespaceCatalog(store)
        >>> catalog.create(NamespaceDescriptor(name="bronze"), state=NamespaceState.ACTIVE)
        >>> [ns.name for ns in catalog.list()]
        ['bronze', 'default', 'system']
    """

    def __init__(self, store: CatalogStore, *, logger: BoundLogger | None = None) -> None:
        self._store = store
        self._logger = logger or get_logger()

    def create(
        self,
        descriptor: NamespaceDescriptor,
        *,
        state: NamespaceState = NamespaceState.CREATING,
    ) -> NamespaceRecord:
        """Insert a new namespace record.

        Raises:
            NamespaceReservedError: If the name is reserved.
            NamespaceExistsError: If a record with this name exists in any state.
        """
        if is_reserved(descriptor.name):
            raise NamespaceReservedError(descriptor.name, "create")
        with self._store.transaction() as conn:
            if _select_record(conn, descriptor.name) is not None:
                raise NamespaceExistsError(descriptor.name)
            self._insert(conn, descriptor, state)
        self._logger.debug("namespace_recorded", namespace=descriptor.name, state=state.value)
        return NamespaceRecord(descriptor=descriptor, state=state)

    def register_reserved(self, descriptor: NamespaceDescriptor) -> bool:
        """Record a reserved namespace as ACTIVE if it is not recorded yet.

        Used by bootstrap only.

        Returns:
            True if the record was inserted.
        """
        with self._store.transaction() as conn:
            existing = _select_record(conn, descriptor.name)
            if existing is not None:
                if existing.state is not NamespaceState.ACTIVE:
                    self._update_state(conn, descriptor.name, NamespaceState.ACTIVE)
                return False
            self._insert(conn, descriptor, NamespaceState.ACTIVE)
        self._logger.info("reserved_namespace_registered", namespace=descriptor.name)
        return True

    def get(self, name: str) -> NamespaceDescriptor:
        """Return the descriptor of an ACTIVE namespace.

        Raises:
            NamespaceNotFoundError: If no ACTIVE namespace has this name.
        """
        record = self.lookup(name)
        if record is None or record.state is not NamespaceState.ACTIVE:
            raise NamespaceNotFoundError(name)
        return record.descriptor

    def lookup(self, name: str) -> NamespaceRecord | None:
        """Return the record for ``name`` in any state, or None."""
        with self._store.transaction() as conn:
            return _select_record(conn, name)

    def exists(self, name: str) -> bool:
        """Return True if an ACTIVE namespace has this name."""
        record = self.lookup(name)
        return record is not None and record.state is NamespaceState.ACTIVE

    def list(self) -> list[NamespaceDescriptor]:
        """Return every ACTIVE namespace, reserved ones included."""
        return [r.descriptor for r in self.records() if r.state is NamespaceState.ACTIVE]

    def records(self) -> list[NamespaceRecord]:
        """Return every namespace record in any state, ordered by name."""
        with self._store.transaction() as conn:
            rows = conn.execute(
                sql.select(namespaces_table).order_by(namespaces_table.c.name)
            ).all()
        return [_record_from_row(row) for row in rows]

    def modify(self, descriptor: NamespaceDescriptor) -> NamespaceDescriptor:
        """Replace the configuration of an ACTIVE namespace.

        Raises:
            NamespaceReservedError: If the name is reserved.
            NamespaceNotFoundError: If no ACTIVE namespace has this name.
        """
        if is_reserved(descriptor.name):
            raise NamespaceReservedError(descriptor.name, "modify")
        with self._store.transaction() as conn:
            record = _select_record(conn, descriptor.name)
            if record is None or record.state is not NamespaceState.ACTIVE:
                raise NamespaceNotFoundError(descriptor.name)
            self.write_configuration(conn, descriptor)
        return descriptor

    @staticmethod
    def write_configuration(conn: sql.Connection, descriptor: NamespaceDescriptor) -> None:
        """Overwrite the stored configuration within an open transaction."""
        conn.execute(
            sql.update(namespaces_table)
            .where(namespaces_table.c.name == descriptor.name)
            .values(configuration=dict(descriptor.configuration))
        )

    def begin_delete(self, name: str) -> NamespaceRecord:
        """Move an empty ACTIVE namespace to DELETING.

        Raises:
            NamespaceReservedError: If the name is reserved.
            NamespaceNotFoundError: If no ACTIVE namespace has this name.
            NamespaceNotEmptyError: If tables are still bound to it.
        """
        with self._store.transaction() as conn:
            record = self._check_deletable(conn, name)
            self._update_state(conn, name, NamespaceState.DELETING)
        return record.model_copy(update={"state": NamespaceState.DELETING})

    def delete(self, name: str) -> None:
        """Remove an empty namespace record.

        Accepts ACTIVE records and records already moved to DELETING.

        Raises:
            NamespaceReservedError: If the name is reserved.
            NamespaceNotFoundError: If no such record exists.
            NamespaceNotEmptyError: If tables are still bound to it.
        """
        with self._store.transaction() as conn:
            self._check_deletable(conn, name, allow_deleting=True)
            conn.execute(sql.delete(namespaces_table).where(namespaces_table.c.name == name))
        self._logger.debug("namespace_record_removed", namespace=name)

    def set_state(self, name: str, state: NamespaceState) -> None:
        """Set the lifecycle state of an existing record.

        Raises:
            NamespaceNotFoundError: If no record exists.
        """
        with self._store.transaction() as conn:
            if _select_record(conn, name) is None:
                raise NamespaceNotFoundError(name)
            self._update_state(conn, name, state)

    def repair_count(self, name: str, table_count: int) -> None:
        """Overwrite the stored table count. Used by the reconciler only."""
        with self._store.transaction() as conn:
            conn.execute(
                sql.update(namespaces_table)
                .where(namespaces_table.c.name == name)
                .values(table_count=table_count)
            )

    def _check_deletable(
        self,
        conn: sql.Connection,
        name: str,
        *,
        allow_deleting: bool = False,
    ) -> NamespaceRecord:
        if is_reserved(name):
            raise NamespaceReservedError(name, "delete")
        record = _select_record(conn, name)
        allowed = {NamespaceState.ACTIVE}
        if allow_deleting:
            allowed.add(NamespaceState.DELETING)
        if record is None or record.state not in allowed:
            raise NamespaceNotFoundError(name)
        if record.table_count > 0:
            raise NamespaceNotEmptyError(name, record.table_count)
        return record

    @staticmethod
    def _insert(
        conn: sql.Connection,
        descriptor: NamespaceDescriptor,
        state: NamespaceState,
    ) -> None:
        conn.execute(
            sql.insert(namespaces_table).values(
                name=descriptor.name,
                configuration=dict(descriptor.configuration),
                state=state.value,
                table_count=0,
            )
        )

    @staticmethod
    def _update_state(conn: sql.Connection, name: str, state: NamespaceState) -> None:
        conn.execute(
            sql.update(namespaces_table)
            .where(namespaces_table.c.name == name)
            .values(state=state.value)
        )
