"""Shared pytest fixtures for floe-catalog tests.

Every fixture works on a fresh root directory under ``tmp_path`` with a
SQLite store, so tests need no external services.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from pathlib import Path

from click.testing import CliRunner
import pytest
import structlog

from floe_catalog.admin import CatalogAdmin
from floe_catalog.config import CatalogConfig, RetryConfig
from floe_catalog.factory import create_coordinator
from floe_catalog.intents import IntentLog
from floe_catalog.layout import StorageLayout
from floe_catalog.lifecycle import NamespaceLifecycleManager
from floe_catalog.namespaces import NamespaceCatalog
from floe_catalog.store import CatalogStore
from floe_catalog.tables import TableCatalog


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry policy without noticeable backoff."""
    return RetryConfig(
        max_attempts=2,
        initial_wait_seconds=0.01,
        max_wait_seconds=0.01,
        jitter_seconds=0,
    )


@pytest.fixture
def root_dir(tmp_path: Path) -> Path:
    return tmp_path / "root"


@pytest.fixture
def catalog_config(root_dir: Path, fast_retry: RetryConfig) -> CatalogConfig:
    """Catalog configuration rooted in a temporary directory."""
    return CatalogConfig(root_dir=root_dir, operation_timeout_seconds=10, retry=fast_retry)


@pytest.fixture
def store(tmp_path: Path) -> Generator[CatalogStore, None, None]:
    """Initialized SQLite catalog store."""
    catalog_store = CatalogStore(f"sqlite:///{tmp_path / 'catalog.db'}")
    catalog_store.initialize()
    yield catalog_store
    catalog_store.dispose()


@pytest.fixture
def layout(tmp_path: Path, fast_retry: RetryConfig) -> StorageLayout:
    return StorageLayout(tmp_path / "data", retry=fast_retry)


@pytest.fixture
def namespaces(store: CatalogStore) -> NamespaceCatalog:
    return NamespaceCatalog(store)


@pytest.fixture
def tables(store: CatalogStore) -> TableCatalog:
    return TableCatalog(store)


@pytest.fixture
def intents(store: CatalogStore) -> IntentLog:
    return IntentLog(store)


@pytest.fixture
def manager(store: CatalogStore, layout: StorageLayout) -> NamespaceLifecycleManager:
    """Started lifecycle manager."""
    lifecycle = NamespaceLifecycleManager(store, layout)
    lifecycle.start()
    return lifecycle


@pytest.fixture
def admin(catalog_config: CatalogConfig) -> Generator[CatalogAdmin, None, None]:
    """Started coordinator behind the administrative surface."""
    catalog_admin = create_coordinator(catalog_config)
    yield catalog_admin
    catalog_admin.close()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()
