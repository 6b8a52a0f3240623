"""Storage layout synchronizer.

Maintains the physical directory tree that mirrors the catalog::

    <root_dir>/<data_dir_name>/<namespace>/<qualifier>/

All operations are idempotent. Filesystem errors are retried with
exponential backoff; when the retries are exhausted the failure is raised as
StorageLayoutError and the next recovery pass repairs the tree.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from floe_catalog.config import RetryConfig
from floe_catalog.errors import StorageLayoutError
from floe_catalog.observability import get_logger
from floe_catalog.retry import create_retry_decorator

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

T = TypeVar("T")


class StorageLayout:
    """Create and remove namespace and table directories.

    Attributes:
        base_dir: Directory holding one subdirectory per namespace.

    Example:
        >>> layout = StorageLayout(Path("/var/lib/floe/data"))
        >>> layout.ensure_namespace_dir("NS1")
        PosixPath('/var/lib/floe/data/NS1')
    """

    def __init__(
        self,
        base_dir: Path,
        *,
        retry: RetryConfig | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        self._retry_config = retry or RetryConfig()
        self._logger = logger or get_logger()

    def namespace_path(self, namespace: str) -> Path:
        return self.base_dir / namespace

    def table_path(self, namespace: str, qualifier: str) -> Path:
        return self.base_dir / namespace / qualifier

    def ensure_base_dir(self) -> Path:
        return self._run("ensure_base_dir", self._mkdir, self.base_dir)

    def ensure_namespace_dir(self, namespace: str) -> Path:
        """Create the namespace directory if it is missing."""
        return self._run("ensure_namespace_dir", self._mkdir, self.namespace_path(namespace))

    def remove_namespace_dir(self, namespace: str) -> bool:
        """Remove the namespace directory and anything left beneath it.

        Returns:
            True if a directory was removed.
        """
        return self._run("remove_namespace_dir", self._rmtree, self.namespace_path(namespace))

    def ensure_table_dir(self, namespace: str, qualifier: str) -> Path:
        """Create the table directory beneath its namespace directory."""
        return self._run("ensure_table_dir", self._mkdir, self.table_path(namespace, qualifier))

    def remove_table_dir(self, namespace: str, qualifier: str) -> bool:
        """Remove the table directory and its contents.

        Returns:
            True if a directory was removed.
        """
        return self._run("remove_table_dir", self._rmtree, self.table_path(namespace, qualifier))

    def namespace_dir_exists(self, namespace: str) -> bool:
        return self.namespace_path(namespace).is_dir()

    def table_dir_exists(self, namespace: str, qualifier: str) -> bool:
        return self.table_path(namespace, qualifier).is_dir()

    def list_namespace_dirs(self) -> list[str]:
        """Return the names of all namespace directories."""
        if not self.base_dir.is_dir():
            return []
        return sorted(p.name for p in self.base_dir.iterdir() if p.is_dir())

    def list_table_dirs(self, namespace: str) -> list[str]:
        """Return the qualifiers of all table directories of a namespace."""
        ns_path = self.namespace_path(namespace)
        if not ns_path.is_dir():
            return []
        return sorted(p.name for p in ns_path.iterdir() if p.is_dir())

    def _run(self, operation: str, func: Callable[[Path], T], path: Path) -> T:
        retrying = create_retry_decorator(self._retry_config, operation_name=operation)(func)
        try:
            return retrying(path)
        except OSError as exc:
            self._logger.error(
                "storage_layout_failed",
                operation=operation,
                path=str(path),
                error=str(exc),
            )
            raise StorageLayoutError(
                f"Storage layout operation {operation} failed",
                path=str(path),
                cause=str(exc),
            ) from exc

    def _mkdir(self, path: Path) -> Path:
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _rmtree(self, path: Path) -> bool:
        if not path.exists():
            return False
        shutil.rmtree(path)
        return True
