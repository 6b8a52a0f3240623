"""Recovery reconciler run once when a coordinator starts.

Restores agreement between the catalog and the storage layout after an
interrupted operation:

1. Replays every pending intent in log order.
2. Finishes records left in CREATING or DELETING without an intent.
3. Repairs namespace table counts from the table records.
4. Removes directories without a catalog record and recreates directories
   missing for existing records.

The pass is idempotent: running it again right away reports no changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from floe_catalog.models import NamespaceState, TableState
from floe_catalog.observability import catalog_operation, get_logger

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.executor import IntentExecutor
    from floe_catalog.intents import IntentLog
    from floe_catalog.layout import StorageLayout
    from floe_catalog.namespaces import NamespaceCatalog
    from floe_catalog.tables import TableCatalog


class ReconcileReport(BaseModel):
    """What a reconciliation pass changed.

    Directory entries are paths relative to the base directory
    (``NS1`` or ``NS1/T1``).
    """

    intents_replayed: int = 0
    records_finalized: int = 0
    counts_repaired: int = 0
    directories_created: list[str] = Field(default_factory=list)
    directories_removed: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Whether the pass modified the catalog or the filesystem."""
        return bool(
            self.intents_replayed
            or self.records_finalized
            or self.counts_repaired
            or self.directories_created
            or self.directories_removed
        )


class RecoveryReconciler:
    """Repair partially applied mutations after a coordinator restart.

    Must run before the coordinator accepts requests; nothing else mutates
    the catalog while it runs.
    """

    def __init__(
        self,
        namespaces: NamespaceCatalog,
        tables: TableCatalog,
        intents: IntentLog,
        layout: StorageLayout,
        executor: IntentExecutor,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._namespaces = namespaces
        self._tables = tables
        self._intents = intents
        self._layout = layout
        self._executor = executor
        self._logger = logger or get_logger()

    def run(self) -> ReconcileReport:
        """Run one reconciliation pass, then purge completed intents.

        Raises:
            StorageLayoutError: If a directory cannot be repaired.
            CatalogStoreError: If the store fails.
        """
        report = ReconcileReport()
        with catalog_operation("reconcile"):
            self._replay_intents(report)
            self._finalize_records(report)
            self._repair_counts(report)
            self._sync_directories(report)
            purged = self._intents.purge_completed()

        self._logger.info(
            "reconcile_finished",
            intents_purged=purged,
            changed=report.changed,
            **report.model_dump(),
        )
        return report

    def _replay_intents(self, report: ReconcileReport) -> None:
        for intent in self._intents.pending():
            self._logger.info(
                "intent_replayed",
                intent_id=intent.id,
                operation=intent.operation.value,
                target=intent.target,
            )
            self._executor.apply(intent)
            report.intents_replayed += 1

    def _finalize_records(self, report: ReconcileReport) -> None:
        for record in self._namespaces.records():
            if record.state is NamespaceState.CREATING:
                self._layout.ensure_namespace_dir(record.name)
                self._namespaces.set_state(record.name, NamespaceState.ACTIVE)
                report.records_finalized += 1
            elif record.state is NamespaceState.DELETING:
                if record.table_count == 0:
                    self._namespaces.delete(record.name)
                    self._layout.remove_namespace_dir(record.name)
                else:
                    self._namespaces.set_state(record.name, NamespaceState.ACTIVE)
                report.records_finalized += 1

        for table in self._tables.records():
            if table.state is TableState.CREATING:
                name = table.table_name
                self._layout.ensure_table_dir(name.namespace, name.qualifier)
                self._tables.set_state(name, TableState.ENABLED)
                report.records_finalized += 1

    def _repair_counts(self, report: ReconcileReport) -> None:
        counts = self._tables.count_by_namespace()
        for record in self._namespaces.records():
            expected = counts.get(record.name, 0)
            if record.table_count != expected:
                self._logger.warning(
                    "table_count_repaired",
                    namespace=record.name,
                    recorded=record.table_count,
                    actual=expected,
                )
                self._namespaces.repair_count(record.name, expected)
                report.counts_repaired += 1

    def _sync_directories(self, report: ReconcileReport) -> None:
        self._layout.ensure_base_dir()
        expected: dict[str, set[str]] = {r.name: set() for r in self._namespaces.records()}
        for table in self._tables.records():
            expected.setdefault(table.table_name.namespace, set()).add(table.table_name.qualifier)

        for name in self._layout.list_namespace_dirs():
            if name not in expected:
                self._layout.remove_namespace_dir(name)
                report.directories_removed.append(name)

        for namespace, qualifiers in sorted(expected.items()):
            if not self._layout.namespace_dir_exists(namespace):
                self._layout.ensure_namespace_dir(namespace)
                report.directories_created.append(namespace)
            for qualifier in self._layout.list_table_dirs(namespace):
                if qualifier not in qualifiers:
                    self._layout.remove_table_dir(namespace, qualifier)
                    report.directories_removed.append(f"{namespace}/{qualifier}")
            for qualifier in sorted(qualifiers):
                if not self._layout.table_dir_exists(namespace, qualifier):
                    self._layout.ensure_table_dir(namespace, qualifier)
                    report.directories_created.append(f"{namespace}/{qualifier}")

        for entry in report.directories_removed:
            self._logger.warning("orphan_directory_removed", path=entry)
        for entry in report.directories_created:
            self._logger.warning("missing_directory_created", path=entry)
