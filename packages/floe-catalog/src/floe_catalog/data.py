"""Minimal table data path used to exercise the storage layout.

RowStore keeps recent writes in a memstore and flushes them as JSON files
beneath the table directory, one subdirectory per column family::

    <table dir>/<family>/<sequence>.json

Reads merge the flushed files in sequence order and then the memstore, so a
later write to the same cell wins.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from floe_catalog.errors import StorageLayoutError
from floe_catalog.observability import get_logger

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.models import TableDescriptor

# family -> row -> column -> value
_FamilyCells = dict[str, dict[str, dict[str, str]]]


class RowStore:
    """Row reads and writes for one table.

    Example:
        >>> store = RowStore(descriptor, layout.table_path("NS1", "T1"))
        >>> store.put("row1", "my_cf", "my_col", "value1")
        >>> store.flush()
        >>> store.exists("row1")
        True
    """

    def __init__(
        self,
        descriptor: TableDescriptor,
        table_dir: Path,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.table_dir = Path(table_dir)
        self._logger = logger or get_logger()
        self._lock = threading.Lock()
        self._memstore: _FamilyCells = {}

    @property
    def memstore_size(self) -> int:
        """Number of cells not flushed yet."""
        with self._lock:
            return sum(
                len(columns) for rows in self._memstore.values() for columns in rows.values()
            )

    def put(self, row: str, family: str, column: str, value: str) -> None:
        """Write one cell to the memstore.

        Raises:
            ValueError: If the family is not part of the table.
        """
        self._check_family(family)
        with self._lock:
            self._memstore.setdefault(family, {}).setdefault(row, {})[column] = value

    def get(self, row: str) -> dict[str, dict[str, str]] | None:
        """Return ``{family: {column: value}}`` for a row, or None if absent."""
        result: dict[str, dict[str, str]] = {}
        for family in self.descriptor.family_names:
            for path in self._flushed_files(family):
                cells = self._read_file(path).get(row)
                if cells:
                    result.setdefault(family, {}).update(cells)
        with self._lock:
            for family, rows in self._memstore.items():
                if row in rows:
                    result.setdefault(family, {}).update(rows[row])
        return result or None

    def exists(self, row: str) -> bool:
        return self.get(row) is not None

    def flush(self) -> list[Path]:
        """Write the memstore to disk and clear it.

        Returns:
            The files written, one per family with pending cells.

        Raises:
            StorageLayoutError: If the table directory is missing or unwritable.
        """
        with self._lock:
            pending, self._memstore = self._memstore, {}
        if not self.table_dir.is_dir():
            with self._lock:
                self._restore(pending)
            raise StorageLayoutError("Table directory does not exist", path=str(self.table_dir))

        written: list[Path] = []
        try:
            for family, rows in sorted(pending.items()):
                family_dir = self.table_dir / family
                family_dir.mkdir(exist_ok=True)
                path = family_dir / f"{self._next_sequence(family):010d}.json"
                tmp = path.with_suffix(".tmp")
                tmp.write_text(json.dumps(rows, sort_keys=True))
                tmp.replace(path)
                written.append(path)
        except OSError as exc:
            with self._lock:
                self._restore(pending)
            raise StorageLayoutError(
                "Flush failed",
                path=str(self.table_dir),
                cause=str(exc),
            ) from exc

        self._logger.info(
            "table_flushed",
            table=str(self.descriptor.table_name),
            files=len(written),
        )
        return written

    def _check_family(self, family: str) -> None:
        if not self.descriptor.has_family(family):
            msg = f"Unknown column family {family!r} for table {self.descriptor.table_name}"
            raise ValueError(msg)

    def _flushed_files(self, family: str) -> list[Path]:
        family_dir = self.table_dir / family
        if not family_dir.is_dir():
            return []
        return sorted(family_dir.glob("*.json"))

    def _next_sequence(self, family: str) -> int:
        files = self._flushed_files(family)
        return int(files[-1].stem) + 1 if files else 1

    @staticmethod
    def _read_file(path: Path) -> dict[str, dict[str, str]]:
        return json.loads(path.read_text())

    def _restore(self, pending: _FamilyCells) -> None:
        # Writes that arrived during the failed flush are newer than ``pending``
        for family, rows in pending.items():
            target = self._memstore.setdefault(family, {})
            for row, columns in rows.items():
                target[row] = {**columns, **target.get(row, {})}
