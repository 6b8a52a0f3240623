"""Coordinator factory.

This module provides the create_coordinator() factory function that wires a
store, a storage layout and a lifecycle manager from a CatalogConfig, runs
start-up recovery and returns the administrative client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from floe_catalog.admin import CatalogAdmin
from floe_catalog.config import CatalogConfig
from floe_catalog.errors import StorageLayoutError
from floe_catalog.layout import StorageLayout
from floe_catalog.lifecycle import NamespaceLifecycleManager
from floe_catalog.observability import catalog_operation, get_logger
from floe_catalog.store import CatalogStore

if TYPE_CHECKING:
    from floe_catalog.hooks import AssignmentHook


def create_coordinator(
    config: CatalogConfig,
    *,
    hook: AssignmentHook | None = None,
) -> CatalogAdmin:
    """Start a catalog coordinator from configuration.

    This is the primary entry point. The returned admin only accepts
    requests once bootstrap and recovery have completed.

    Args:
        config: Catalog configuration.
        hook: Optional region assignment hook. Defaults to a no-op.

    Returns:
        CatalogAdmin: Started administrative client. Close it when done.

    Raises:
        CatalogStoreError: If the store cannot be opened or initialized.
        StorageLayoutError: If recovery cannot repair the directory tree.

    Example:
        >>> from floe_catalog import CatalogConfig, create_coordinator
        >>> with create_coordinator(CatalogConfig(root_dir="/var/lib/floe")) as admin:
        ...     admin.list_namespaces()
        ['default', 'system']
    """
    logger = get_logger()
    database_url = config.get_database_url()

    with catalog_operation("create_coordinator"):
        logger.info(
            "creating_coordinator",
            root_dir=str(config.root_dir),
            data_path=str(config.data_path),
        )
        if config.database_url is None:
            try:
                config.root_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageLayoutError(
                    "Failed to create catalog root directory",
                    path=str(config.root_dir),
                    cause=str(exc),
                ) from exc
        store = CatalogStore(database_url, logger=logger)
        layout = StorageLayout(config.data_path, retry=config.retry, logger=logger)
        manager = NamespaceLifecycleManager(
            store,
            layout,
            lock_timeout=config.lock_timeout_seconds,
            hook=hook,
            logger=logger,
        )
        try:
            manager.start()
        except Exception:
            store.dispose()
            raise
        return CatalogAdmin(
            manager,
            operation_timeout=config.operation_timeout_seconds,
            max_workers=config.max_workers,
            store=store,
            logger=logger,
        )
