"""Unit tests for the administrative client surface."""

from __future__ import annotations

import threading
import time
from unittest.mock import Mock

import pytest

from floe_catalog.admin import CatalogAdmin
from floe_catalog.errors import (
    CatalogTimeoutError,
    CatalogUnavailableError,
    NamespaceNotFoundError,
    TableNotFoundError,
)
from floe_catalog.models import NamespaceDescriptor, TableDescriptor, TableName

NS1 = NamespaceDescriptor(name="NS1")


class TestTimeouts:
    """Tests for caller-side timeouts against a slow manager."""

    def test_slow_request_times_out(self) -> None:
        release = threading.Event()
        manager = Mock()
        manager.create_namespace.side_effect = lambda *args, **kwargs: release.wait(5)
        admin = CatalogAdmin(manager, operation_timeout=0.05, max_workers=1)

        try:
            with pytest.raises(CatalogTimeoutError) as exc_info:
                admin.create_namespace(NS1)
        finally:
            release.set()
            admin.close()

        assert exc_info.value.operation == "create_namespace"
        assert exc_info.value.retryable is True

    def test_mutations_receive_deadline(self) -> None:
        manager = Mock()
        admin = CatalogAdmin(manager, operation_timeout=5)

        before = time.monotonic()
        admin.delete_namespace("NS1")
        admin.close()

        _, kwargs = manager.delete_namespace.call_args
        assert before + 5 <= kwargs["deadline"] <= time.monotonic() + 5

    def test_reads_receive_no_deadline(self) -> None:
        manager = Mock()
        manager.list_namespaces.return_value = ["default", "system"]
        admin = CatalogAdmin(manager)

        assert admin.list_namespaces() == ["default", "system"]
        manager.list_namespaces.assert_called_once_with()
        admin.close()

    def test_string_table_names_are_parsed(self) -> None:
        manager = Mock()
        admin = CatalogAdmin(manager)

        admin.disable_table("NS1:T1")
        admin.close()

        args, _ = manager.disable_table.call_args
        assert args == (TableName(namespace="NS1", qualifier="T1"),)

    def test_closed_admin_rejects_requests(self) -> None:
        manager = Mock()
        admin = CatalogAdmin(manager)
        admin.close()
        admin.close()

        with pytest.raises(CatalogUnavailableError):
            admin.list_namespaces()
        manager.stop.assert_called_once_with()


class TestAgainstCoordinator:
    """Tests through a real coordinator."""

    def test_namespace_round_trip(self, admin: CatalogAdmin) -> None:
        admin.create_namespace(NS1)

        assert admin.get_namespace_descriptor("NS1") == NS1
        assert [d.name for d in admin.list_namespace_descriptors()] == [
            "NS1",
            "default",
            "system",
        ]
        admin.delete_namespace("NS1")
        with pytest.raises(NamespaceNotFoundError):
            admin.get_namespace_descriptor("NS1")

    def test_table_round_trip(self, admin: CatalogAdmin) -> None:
        admin.create_namespace(NS1)
        admin.create_table(TableDescriptor.of("NS1:T1", "cf"))

        assert admin.table_exists("NS1:T1")
        assert admin.table_state("NS1:T1") == "enabled"
        assert [str(d.table_name) for d in admin.list_table_descriptors_by_namespace("NS1")] == [
            "NS1:T1"
        ]
        admin.disable_table("NS1:T1")
        admin.delete_table("NS1:T1")
        assert not admin.table_exists("NS1:T1")

    def test_row_store_flush_persists(self, admin: CatalogAdmin) -> None:
        admin.create_namespace(NS1)
        admin.create_table(TableDescriptor.of("NS1:T1", "cf"))

        table = admin.get_table("NS1:T1")
        table.put("row1", "cf", "col", "value1")
        written = admin.flush("NS1:T1")

        assert admin.get_table("NS1:T1") is table
        assert len(written) == 1
        assert written[0].parent == admin.manager.layout.table_path("NS1", "T1") / "cf"

    def test_delete_evicts_row_store(self, admin: CatalogAdmin) -> None:
        admin.create_namespace(NS1)
        admin.create_table(TableDescriptor.of("NS1:T1", "cf"))
        admin.get_table("NS1:T1")
        admin.disable_table("NS1:T1")
        admin.delete_table("NS1:T1")

        with pytest.raises(TableNotFoundError):
            admin.get_table("NS1:T1")

    def test_context_manager_closes(self, admin: CatalogAdmin) -> None:
        with admin:
            pass

        with pytest.raises(CatalogUnavailableError):
            admin.list_namespaces()
