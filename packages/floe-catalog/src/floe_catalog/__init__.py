"""floe-catalog: namespace catalog and lifecycle manager for floe-runtime.

This package keeps a durable hierarchy of namespaces and the tables bound to
them, in sync with a directory tree on disk:
- Serialized per-namespace mutations with durable intents
- Start-up recovery of interrupted operations
- Structured logging via structlog
- OpenTelemetry span tracing

Example:
    >>> from floe_catalog import CatalogConfig, NamespaceDescriptor, create_coordinator
    >>> admin = create_coordinator(CatalogConfig(root_dir="/var/lib/floe"))
    >>> admin.create_namespace(NamespaceDescriptor(name="bronze"))
    >>> admin.list_namespaces()
    ['bronze', 'default', 'system']
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    # Factory function
    "create_coordinator",
    # Client and manager
    "CatalogAdmin",
    "NamespaceLifecycleManager",
    "RecoveryReconciler",
    "ReconcileReport",
    # Configuration models
    "CatalogConfig",
    "RetryConfig",
    # Observability
    "configure_logging",
    # Data models
    "NamespaceDescriptor",
    "ColumnFamilyDescriptor",
    "TableDescriptor",
    "TableName",
    "NamespaceState",
    "TableState",
    "RESERVED_NAMESPACES",
    # Hooks
    "AssignmentHook",
    "NoopAssignmentHook",
    # Exceptions
    "FloeCatalogError",
    "NamespaceExistsError",
    "NamespaceNotFoundError",
    "TableNamespaceNotFoundError",
    "NamespaceReservedError",
    "NamespaceNotEmptyError",
    "TableExistsError",
    "TableNotFoundError",
    "TableNotDisabledError",
    "CatalogUnavailableError",
    "CatalogTimeoutError",
    "LockTimeoutError",
    "CatalogStorageError",
    "StorageLayoutError",
    "CatalogStoreError",
]

_MODULES = {
    "create_coordinator": "factory",
    "CatalogAdmin": "admin",
    "NamespaceLifecycleManager": "lifecycle",
    "RecoveryReconciler": "reconciler",
    "ReconcileReport": "reconciler",
    "CatalogConfig": "config",
    "RetryConfig": "config",
    "configure_logging": "observability",
    "NamespaceDescriptor": "models",
    "ColumnFamilyDescriptor": "models",
    "TableDescriptor": "models",
    "TableName": "models",
    "NamespaceState": "models",
    "TableState": "models",
    "RESERVED_NAMESPACES": "models",
    "AssignmentHook": "hooks",
    "NoopAssignmentHook": "hooks",
}


def __getattr__(name: str) -> object:
    """Lazy import of public API members."""
    if name in _MODULES:
        import importlib

        module = importlib.import_module(f"floe_catalog.{_MODULES[name]}")
        return getattr(module, name)
    if name in __all__:
        from floe_catalog import errors as errors_module

        return getattr(errors_module, name)
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
