"""Unit tests for the row store data path."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from floe_catalog.data import RowStore
from floe_catalog.errors import StorageLayoutError
from floe_catalog.models import TableDescriptor

DESCRIPTOR = TableDescriptor.of("NS1:T1", "cf", "meta")


@pytest.fixture
def table_dir(tmp_path: Path) -> Path:
    path = tmp_path / "NS1" / "T1"
    path.mkdir(parents=True)
    return path


class TestRowStore:
    """Tests for RowStore."""

    def test_put_and_get_from_memstore(self, table_dir: Path) -> None:
        store = RowStore(DESCRIPTOR, table_dir)

        store.put("row1", "cf", "col", "v1")

        assert store.get("row1") == {"cf": {"col": "v1"}}
        assert store.exists("row1")
        assert not store.exists("row2")
        assert store.memstore_size == 1

    def test_unknown_family(self, table_dir: Path) -> None:
        store = RowStore(DESCRIPTOR, table_dir)

        with pytest.raises(ValueError, match="Unknown column family"):
            store.put("row1", "nope", "col", "v1")

    def test_flush_writes_family_files(self, table_dir: Path) -> None:
        store = RowStore(DESCRIPTOR, table_dir)
        store.put("row1", "cf", "col", "v1")
        store.put("row1", "meta", "owner", "me")

        written = store.flush()

        assert sorted(p.relative_to(table_dir).as_posix() for p in written) == [
            "cf/0000000001.json",
            "meta/0000000001.json",
        ]
        assert json.loads((table_dir / "cf" / "0000000001.json").read_text()) == {
            "row1": {"col": "v1"}
        }
        assert store.memstore_size == 0

    def test_flushed_rows_readable_by_new_store(self, table_dir: Path) -> None:
        store = RowStore(DESCRIPTOR, table_dir)
        store.put("row1", "cf", "col", "v1")
        store.flush()
        store.put("row1", "cf", "col", "v2")
        store.flush()

        reopened = RowStore(DESCRIPTOR, table_dir)

        assert reopened.get("row1") == {"cf": {"col": "v2"}}

    def test_memstore_overrides_flushed(self, table_dir: Path) -> None:
        store = RowStore(DESCRIPTOR, table_dir)
        store.put("row1", "cf", "col", "old")
        store.flush()
        store.put("row1", "cf", "col", "new")

        assert store.get("row1") == {"cf": {"col": "new"}}

    def test_flush_without_directory_keeps_memstore(self, tmp_path: Path) -> None:
        store = RowStore(DESCRIPTOR, tmp_path / "missing")
        store.put("row1", "cf", "col", "v1")

        with pytest.raises(StorageLayoutError):
            store.flush()

        assert store.memstore_size == 1
        assert store.get("row1") == {"cf": {"col": "v1"}}
