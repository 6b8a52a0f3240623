"""Unit tests for reserved namespace bootstrap."""

from __future__ import annotations

from floe_catalog.bootstrap import META_TABLE_DESCRIPTOR, bootstrap_catalog
from floe_catalog.layout import StorageLayout
from floe_catalog.models import META_TABLE_NAME, NamespaceState, TableState
from floe_catalog.namespaces import NamespaceCatalog
from floe_catalog.tables import TableCatalog


class TestBootstrap:
    """Tests for bootstrap_catalog."""

    def test_first_start_creates_reserved_namespaces(
        self,
        namespaces: NamespaceCatalog,
        tables: TableCatalog,
        layout: StorageLayout,
    ) -> None:
        assert bootstrap_catalog(namespaces, tables, layout) is True

        assert [d.name for d in namespaces.list()] == ["default", "system"]
        assert tables.get(META_TABLE_NAME) == META_TABLE_DESCRIPTOR
        assert tables.state(META_TABLE_NAME) is TableState.ENABLED
        assert layout.namespace_dir_exists("default")
        assert layout.table_dir_exists("system", "meta")

    def test_second_start_changes_nothing(
        self,
        namespaces: NamespaceCatalog,
        tables: TableCatalog,
        layout: StorageLayout,
    ) -> None:
        bootstrap_catalog(namespaces, tables, layout)

        assert bootstrap_catalog(namespaces, tables, layout) is False
        record = namespaces.lookup("system")
        assert record is not None
        assert record.table_count == 1

    def test_interrupted_bootstrap_is_completed(
        self,
        namespaces: NamespaceCatalog,
        tables: TableCatalog,
        layout: StorageLayout,
    ) -> None:
        # Crash after the system record, before its directory and the meta table
        bootstrap_catalog(namespaces, tables, layout)
        tables.set_state(META_TABLE_NAME, TableState.DISABLED)
        tables.drop(META_TABLE_NAME)
        layout.remove_namespace_dir("system")
        namespaces.set_state("default", NamespaceState.CREATING)

        assert bootstrap_catalog(namespaces, tables, layout) is True
        assert namespaces.exists("default")
        assert tables.exists(META_TABLE_NAME)
        assert layout.table_dir_exists("system", "meta")
