"""Hooks into external collaborators invoked by the lifecycle manager.

Region assignment lives outside the catalog. The manager notifies it after a
table directory has been created (before the table becomes visible) and after
a table directory has been removed. Notifications are repeated when recovery
finishes an interrupted operation, so implementations must be idempotent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from floe_catalog.models import TableDescriptor, TableName


@runtime_checkable
class AssignmentHook(Protocol):
    """Receives table availability changes."""

    def table_created(self, descriptor: TableDescriptor) -> None:
        """Called once the table's directory exists."""
        ...

    def table_deleted(self, table_name: TableName) -> None:
        """Called once the table's directory has been removed."""
        ...


class NoopAssignmentHook:
    """Assignment hook that does nothing."""

    def table_created(self, descriptor: TableDescriptor) -> None:
        return None

    def table_deleted(self, table_name: TableName) -> None:
        return None
