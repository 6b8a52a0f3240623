"""First-start initialization of the reserved namespaces.

Creates the ``default`` and ``system`` namespaces and the catalog's
bookkeeping table ``system:meta``, together with their directories. Safe to
run on every start: anything already present is left untouched, and a
bootstrap interrupted by a crash is finished on the next start.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from floe_catalog.models import (
    DEFAULT_NAMESPACE,
    META_TABLE_NAME,
    SYSTEM_NAMESPACE,
    ColumnFamilyDescriptor,
    TableDescriptor,
    TableState,
)
from floe_catalog.observability import catalog_operation, get_logger

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.layout import StorageLayout
    from floe_catalog.namespaces import NamespaceCatalog
    from floe_catalog.tables import TableCatalog

META_TABLE_DESCRIPTOR = TableDescriptor(
    table_name=META_TABLE_NAME,
    column_families=(ColumnFamilyDescriptor(name="info"),),
    configuration={"catalog.internal": "true"},
)


def bootstrap_catalog(
    namespaces: NamespaceCatalog,
    tables: TableCatalog,
    layout: StorageLayout,
    *,
    logger: BoundLogger | None = None,
) -> bool:
    """Ensure the reserved namespaces and the bookkeeping table exist.

    Catalog records are written before their directories.

    Returns:
        True if anything was created (first start), False otherwise.
    """
    log = logger or get_logger()
    created = False

    with catalog_operation("bootstrap"):
        layout.ensure_base_dir()
        for descriptor in (DEFAULT_NAMESPACE, SYSTEM_NAMESPACE):
            created |= namespaces.register_reserved(descriptor)
            layout.ensure_namespace_dir(descriptor.name)

        created |= tables.insert_if_absent(META_TABLE_DESCRIPTOR, TableState.ENABLED)
        layout.ensure_table_dir(META_TABLE_NAME.namespace, META_TABLE_NAME.qualifier)
        if tables.state(META_TABLE_NAME) is not TableState.ENABLED:
            tables.set_state(META_TABLE_NAME, TableState.ENABLED)

    if created:
        log.info(
            "catalog_bootstrapped",
            namespaces=[DEFAULT_NAMESPACE.name, SYSTEM_NAMESPACE.name],
            table=str(META_TABLE_NAME),
        )
    return created
