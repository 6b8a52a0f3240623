"""Unit tests for intent replay and start-up reconciliation.

Each crash test records an intent, applies only some of its steps by hand,
then restarts a coordinator over the same store and directory tree.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import Mock

import pytest

from floe_catalog.errors import NamespaceExistsError, StorageLayoutError, TableExistsError
from floe_catalog.intents import IntentOperation
from floe_catalog.layout import StorageLayout
from floe_catalog.lifecycle import NamespaceLifecycleManager
from floe_catalog.models import (
    NamespaceDescriptor,
    NamespaceState,
    TableDescriptor,
    TableName,
    TableState,
)
from floe_catalog.reconciler import ReconcileReport
from floe_catalog.store import CatalogStore

T1 = TableName(namespace="NS1", qualifier="T1")


def _restart(
    store: CatalogStore,
    layout: StorageLayout,
    hook: Mock | None = None,
) -> tuple[NamespaceLifecycleManager, ReconcileReport]:
    manager = NamespaceLifecycleManager(store, layout, hook=hook)
    report = manager.start()
    return manager, report


def _descriptor_payload(descriptor: NamespaceDescriptor | TableDescriptor) -> dict[str, object]:
    return {"descriptor": descriptor.model_dump(mode="json")}


def _failing(attempts: list[Path]) -> Callable[[Path], object]:
    def fail(path: Path) -> object:
        attempts.append(path)
        raise OSError(5, "Input/output error", str(path))

    return fail


class TestReconcileReport:
    """Tests for ReconcileReport."""

    def test_empty_report_unchanged(self) -> None:
        assert ReconcileReport().changed is False

    def test_any_entry_marks_changed(self) -> None:
        assert ReconcileReport(directories_removed=["NS9"]).changed is True


class TestCleanStart:
    """Tests for starts without anything to repair."""

    def test_restart_reports_no_changes(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.create_table(TableDescriptor.of(T1, "cf"))

        _, report = _restart(store, layout)

        assert report.changed is False


class TestNamespaceCrashes:
    """Crash simulations for namespace intents."""

    def test_create_after_intent_only(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        descriptor = NamespaceDescriptor(name="NS1", configuration={"a": "1"})
        manager.intents.append(
            IntentOperation.CREATE_NAMESPACE, "NS1", payload=_descriptor_payload(descriptor)
        )

        restarted, report = _restart(store, layout)

        assert report.intents_replayed == 1
        assert restarted.get_namespace_descriptor("NS1") == descriptor
        assert layout.namespace_dir_exists("NS1")
        assert restarted.intents.pending() == []

    def test_create_after_record_before_directory(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        descriptor = NamespaceDescriptor(name="NS1")
        manager.intents.append(
            IntentOperation.CREATE_NAMESPACE, "NS1", payload=_descriptor_payload(descriptor)
        )
        manager.namespaces.create(descriptor, state=NamespaceState.CREATING)

        restarted, _ = _restart(store, layout)

        assert restarted.list_namespaces() == ["NS1", "default", "system"]
        assert layout.namespace_dir_exists("NS1")

    def test_modify_after_intent_only(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        updated = NamespaceDescriptor(name="NS1", configuration={"owner": "me"})
        manager.intents.append(
            IntentOperation.MODIFY_NAMESPACE, "NS1", payload=_descriptor_payload(updated)
        )

        restarted, _ = _restart(store, layout)

        assert restarted.get_namespace_descriptor("NS1").configuration == {"owner": "me"}

    def test_delete_after_intent_only(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.intents.append(IntentOperation.DELETE_NAMESPACE, "NS1")

        restarted, _ = _restart(store, layout)

        assert "NS1" not in restarted.list_namespaces()
        assert not layout.namespace_dir_exists("NS1")

    def test_delete_after_record_before_directory(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.intents.append(IntentOperation.DELETE_NAMESPACE, "NS1")
        manager.namespaces.delete("NS1")

        _restart(store, layout)

        assert not layout.namespace_dir_exists("NS1")

    def test_delete_abandoned_when_tables_remain(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.create_table(TableDescriptor.of(T1, "cf"))
        manager.intents.append(IntentOperation.DELETE_NAMESPACE, "NS1")

        restarted, report = _restart(store, layout)

        assert report.intents_replayed == 1
        assert restarted.namespaces.exists("NS1")
        assert restarted.table_exists(T1)
        assert restarted.intents.pending() == []

    def test_deleting_record_without_intent(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.namespaces.begin_delete("NS1")

        restarted, report = _restart(store, layout)

        assert report.records_finalized == 1
        assert restarted.namespaces.lookup("NS1") is None
        assert not layout.namespace_dir_exists("NS1")


class TestTableCrashes:
    """Crash simulations for table intents."""

    def test_create_after_record_before_directory(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        descriptor = TableDescriptor.of(T1, "cf")
        manager.intents.append(
            IntentOperation.CREATE_TABLE,
            "NS1",
            qualifier="T1",
            payload=_descriptor_payload(descriptor),
        )
        manager.tables.create(descriptor, state=TableState.CREATING)
        hook = Mock()

        restarted, _ = _restart(store, layout, hook=hook)

        assert restarted.get_table_descriptor(T1) == descriptor
        assert restarted.table_state(T1) is TableState.ENABLED
        assert layout.table_dir_exists("NS1", "T1")
        hook.table_created.assert_called_once_with(descriptor)

    def test_create_abandoned_when_namespace_gone(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        descriptor = TableDescriptor.of(T1, "cf")
        manager.intents.append(
            IntentOperation.CREATE_TABLE,
            "NS1",
            qualifier="T1",
            payload=_descriptor_payload(descriptor),
        )

        restarted, report = _restart(store, layout)

        assert report.intents_replayed == 1
        assert restarted.tables.lookup(T1) is None
        assert not layout.namespace_dir_exists("NS1")

    def test_delete_after_record_before_directory(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.create_table(TableDescriptor.of(T1, "cf"))
        manager.disable_table(T1)
        manager.intents.append(
            IntentOperation.DELETE_TABLE, "NS1", qualifier="T1", payload={"table": str(T1)}
        )
        manager.tables.drop(T1)
        hook = Mock()

        restarted, _ = _restart(store, layout, hook=hook)

        assert not layout.table_dir_exists("NS1", "T1")
        assert restarted.namespaces.lookup("NS1").table_count == 0  # type: ignore[union-attr]
        hook.table_deleted.assert_called_once_with(T1)

    def test_creating_table_without_intent(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.tables.create(TableDescriptor.of(T1, "cf"), state=TableState.CREATING)

        restarted, report = _restart(store, layout)

        assert report.records_finalized == 1
        assert restarted.table_exists(T1)
        assert layout.table_dir_exists("NS1", "T1")


class TestRepairs:
    """Tests for count and directory repair."""

    def test_count_drift_is_repaired(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.create_table(TableDescriptor.of(T1, "cf"))
        manager.namespaces.repair_count("NS1", 5)

        restarted, report = _restart(store, layout)

        assert report.counts_repaired == 1
        assert restarted.namespaces.lookup("NS1").table_count == 1  # type: ignore[union-attr]

    def test_orphan_directories_removed(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        layout.ensure_table_dir("GHOST", "T9")
        layout.ensure_table_dir("NS1", "stale")

        _, report = _restart(store, layout)

        assert report.directories_removed == ["GHOST", "NS1/stale"]
        assert not layout.namespace_dir_exists("GHOST")
        assert layout.namespace_dir_exists("NS1")
        assert not layout.table_dir_exists("NS1", "stale")

    def test_missing_directories_recreated(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.create_table(TableDescriptor.of(T1, "cf"))
        layout.remove_namespace_dir("NS1")

        _, report = _restart(store, layout)

        assert report.directories_created == ["NS1", "NS1/T1"]
        assert layout.table_dir_exists("NS1", "T1")

    def test_second_pass_is_a_no_op(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.intents.append(IntentOperation.DELETE_NAMESPACE, "NS1")
        layout.ensure_namespace_dir("GHOST")

        restarted, first = _restart(store, layout)
        second = restarted.reconciler().run()

        assert first.changed is True
        assert second.changed is False


class TestStorageFailures:
    """Directory failures during live operations, followed by restarts."""

    def test_failed_namespace_directory_is_retried_then_reported(
        self,
        manager: NamespaceLifecycleManager,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        attempts: list[Path] = []
        monkeypatch.setattr(layout, "_mkdir", _failing(attempts))

        with pytest.raises(StorageLayoutError):
            manager.create_namespace(NamespaceDescriptor(name="NS1"))

        assert attempts == [layout.namespace_path("NS1")] * 2
        assert [i.operation for i in manager.intents.pending()] == [
            IntentOperation.CREATE_NAMESPACE
        ]
        assert manager.namespaces.lookup("NS1").state is NamespaceState.CREATING  # type: ignore[union-attr]
        assert "NS1" not in manager.list_namespaces()

    def test_failed_namespace_create_finished_on_restart(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        descriptor = NamespaceDescriptor(name="NS1", configuration={"a": "1"})
        with monkeypatch.context() as m:
            m.setattr(layout, "_mkdir", _failing([]))
            with pytest.raises(StorageLayoutError):
                manager.create_namespace(descriptor)

        restarted, report = _restart(store, layout)

        assert report.intents_replayed == 1
        assert restarted.get_namespace_descriptor("NS1") == descriptor
        assert layout.namespace_dir_exists("NS1")
        assert restarted.intents.pending() == []

    def test_create_after_failed_create_finishes_the_first(
        self,
        manager: NamespaceLifecycleManager,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        with monkeypatch.context() as m:
            m.setattr(layout, "_mkdir", _failing([]))
            with pytest.raises(StorageLayoutError):
                manager.create_namespace(NamespaceDescriptor(name="NS1"))

        with pytest.raises(NamespaceExistsError):
            manager.create_namespace(NamespaceDescriptor(name="NS1"))

        assert manager.namespaces.exists("NS1")
        assert layout.namespace_dir_exists("NS1")
        assert manager.intents.pending() == []

    def test_recreated_namespace_survives_restart_after_failed_delete(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        with monkeypatch.context() as m:
            m.setattr(layout, "_rmtree", _failing([]))
            with pytest.raises(StorageLayoutError):
                manager.delete_namespace("NS1")
        assert [i.operation for i in manager.intents.pending()] == [
            IntentOperation.DELETE_NAMESPACE
        ]
        assert "NS1" not in manager.list_namespaces()

        recreated = NamespaceDescriptor(name="NS1", configuration={"generation": "2"})
        manager.create_namespace(recreated)
        assert manager.intents.pending() == []

        restarted, report = _restart(store, layout)

        assert report.intents_replayed == 0
        assert restarted.get_namespace_descriptor("NS1") == recreated
        assert layout.namespace_dir_exists("NS1")

    def test_recreate_blocked_while_old_directory_cannot_be_removed(
        self,
        manager: NamespaceLifecycleManager,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        monkeypatch.setattr(layout, "_rmtree", _failing([]))
        with pytest.raises(StorageLayoutError):
            manager.delete_namespace("NS1")

        with pytest.raises(StorageLayoutError):
            manager.create_namespace(NamespaceDescriptor(name="NS1"))

        assert manager.namespaces.lookup("NS1") is None
        assert [i.operation for i in manager.intents.pending()] == [
            IntentOperation.DELETE_NAMESPACE
        ]

    def test_failed_table_create_finished_on_restart(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        descriptor = TableDescriptor.of(T1, "cf")
        with monkeypatch.context() as m:
            m.setattr(layout, "_mkdir", _failing([]))
            with pytest.raises(StorageLayoutError):
                manager.create_table(descriptor)
        assert not manager.table_exists(T1)
        assert [i.operation for i in manager.intents.pending()] == [IntentOperation.CREATE_TABLE]

        restarted, _ = _restart(store, layout)

        assert restarted.table_state(T1) is TableState.ENABLED
        assert layout.table_dir_exists("NS1", "T1")
        assert restarted.namespaces.lookup("NS1").table_count == 1  # type: ignore[union-attr]

    def test_table_create_after_failed_create_finishes_the_first(
        self,
        manager: NamespaceLifecycleManager,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        with monkeypatch.context() as m:
            m.setattr(layout, "_mkdir", _failing([]))
            with pytest.raises(StorageLayoutError):
                manager.create_table(TableDescriptor.of(T1, "cf"))

        with pytest.raises(TableExistsError):
            manager.create_table(TableDescriptor.of(T1, "cf"))

        assert manager.table_state(T1) is TableState.ENABLED
        assert manager.intents.pending() == []

    def test_recreated_table_survives_restart_after_failed_delete(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.create_table(TableDescriptor.of(T1, "cf"))
        manager.disable_table(T1)
        with monkeypatch.context() as m:
            m.setattr(layout, "_rmtree", _failing([]))
            with pytest.raises(StorageLayoutError):
                manager.delete_table(T1)
        assert not manager.table_exists(T1)
        assert [i.operation for i in manager.intents.pending()] == [IntentOperation.DELETE_TABLE]

        recreated = TableDescriptor.of(T1, "cf", "meta")
        manager.create_table(recreated)
        hook = Mock()

        restarted, report = _restart(store, layout, hook=hook)

        assert report.intents_replayed == 0
        assert restarted.get_table_descriptor(T1) == recreated
        assert restarted.table_state(T1) is TableState.ENABLED
        assert layout.table_dir_exists("NS1", "T1")
        hook.table_deleted.assert_not_called()

    def test_failed_table_delete_finished_on_restart(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.create_table(TableDescriptor.of(T1, "cf"))
        manager.disable_table(T1)
        with monkeypatch.context() as m:
            m.setattr(layout, "_rmtree", _failing([]))
            with pytest.raises(StorageLayoutError):
                manager.delete_table(T1)

        restarted, report = _restart(store, layout)

        assert report.intents_replayed == 1
        assert not layout.table_dir_exists("NS1", "T1")
        restarted.delete_namespace("NS1")
        assert not layout.namespace_dir_exists("NS1")


class TestIntentOrdering:
    """A newer mutation of a name finishes older intents on it first."""

    def test_leftover_modify_does_not_override_newer_one(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        older = NamespaceDescriptor(name="NS1", configuration={"owner": "old"})
        manager.intents.append(
            IntentOperation.MODIFY_NAMESPACE, "NS1", payload=_descriptor_payload(older)
        )

        manager.modify_namespace(NamespaceDescriptor(name="NS1", configuration={"owner": "new"}))
        restarted, _ = _restart(store, layout)

        assert restarted.get_namespace_descriptor("NS1").configuration == {"owner": "new"}

    def test_other_namespaces_are_not_touched(
        self,
        manager: NamespaceLifecycleManager,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.intents.append(IntentOperation.DELETE_NAMESPACE, "NS1")

        manager.create_namespace(NamespaceDescriptor(name="NS2"))

        assert manager.namespaces.exists("NS1")
        assert [i.namespace for i in manager.intents.pending()] == ["NS1"]

    def test_completed_intents_purged_on_start(
        self,
        manager: NamespaceLifecycleManager,
        store: CatalogStore,
        layout: StorageLayout,
    ) -> None:
        manager.create_namespace(NamespaceDescriptor(name="NS1"))
        manager.create_table(TableDescriptor.of(T1, "cf"))

        restarted, _ = _restart(store, layout)

        assert restarted.intents.purge_completed() == 0
        assert restarted.intents.pending() == []
