"""Durable catalog store backed by SQLAlchemy.

The namespace catalog, the table catalog and the intent log share one
database so that a table insert and its namespace count update commit in the
same transaction. Every mutation is committed before the calling operation
returns.

Schema:
- namespaces: name, configuration, state, table_count
- tables: (namespace, qualifier), descriptor, state; namespace references namespaces.name
- intents: id, operation, namespace, qualifier, payload, status, timestamps
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import sqlalchemy as sql
import sqlalchemy.exc as sql_exc
from sqlalchemy import event

from floe_catalog.errors import CatalogStoreError
from floe_catalog.observability import get_logger

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

metadata = sql.MetaData()

namespaces_table = sql.Table(
    "namespaces",
    metadata,
    sql.Column("name", sql.String(255), primary_key=True),
    sql.Column("configuration", sql.JSON, nullable=False),
    sql.Column("state", sql.String(16), nullable=False),
    sql.Column("table_count", sql.Integer, nullable=False, default=0),
    sql.CheckConstraint("table_count >= 0", name="ck_namespaces_table_count"),
)

tables_table = sql.Table(
    "tables",
    metadata,
    sql.Column(
        "namespace",
        sql.String(255),
        sql.ForeignKey("namespaces.name"),
        primary_key=True,
    ),
    sql.Column("qualifier", sql.String(255), primary_key=True),
    sql.Column("descriptor", sql.JSON, nullable=False),
    sql.Column("state", sql.String(16), nullable=False),
)

intents_table = sql.Table(
    "intents",
    metadata,
    sql.Column("id", sql.Integer, primary_key=True, autoincrement=True),
    sql.Column("operation", sql.String(32), nullable=False),
    sql.Column("namespace", sql.String(255), nullable=False),
    sql.Column("qualifier", sql.String(255), nullable=True),
    sql.Column("payload", sql.JSON, nullable=False),
    sql.Column("status", sql.String(16), nullable=False, index=True),
    sql.Column("created_at", sql.DateTime(timezone=True), nullable=False),
    sql.Column("completed_at", sql.DateTime(timezone=True), nullable=True),
)


def _configure_sqlite_connection(dbapi_connection: Any, connection_record: Any) -> None:
    """Take over transaction control from pysqlite and harden durability."""
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA synchronous=FULL")
    finally:
        cursor.close()


def _begin_immediate(conn: sql.Connection) -> None:
    # Acquire the write lock up front so concurrent writers queue on the
    # busy timeout instead of failing on lock upgrade.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


class CatalogStore:
    """Connection management for the durable catalog database.

    Attributes:
        url: SQLAlchemy database URL.

    Example:
        >>> store = CatalogStore("sqlite:////var/lib/floe/catalog.db")
        >>> store.initialize()
        >>> with store.transaction() as conn:
        ...     conn.execute(sql.select(namespaces_table)).all()
    """

    def __init__(self, url: str, *, logger: BoundLogger | None = None) -> None:
        """Initialize CatalogStore.

        Args:
            url: SQLAlchemy database URL.
            logger: Optional structlog logger. Uses default if not provided.
        """
        self.url = url
        self._logger = logger or get_logger()
        connect_args: dict[str, Any] = {}
        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False, "timeout": 30}
        try:
            self._engine = sql.create_engine(url, connect_args=connect_args)
        except (sql_exc.SQLAlchemyError, ImportError) as exc:
            raise CatalogStoreError(
                "Failed to open catalog store",
                path=url,
                cause=str(exc),
            ) from exc
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine, "connect", _configure_sqlite_connection)
            event.listen(self._engine, "begin", _begin_immediate)

    @property
    def engine(self) -> sql.Engine:
        """The underlying SQLAlchemy engine."""
        return self._engine

    def initialize(self) -> None:
        """Create the catalog schema if it does not exist yet."""
        with self.transaction() as conn:
            metadata.create_all(conn)
        self._logger.debug("catalog_store_initialized", url=self._engine.url.render_as_string())

    @contextmanager
    def transaction(self) -> Iterator[sql.Connection]:
        """Yield a connection inside a transaction committed on successful exit.

        Catalog errors raised inside the block roll the transaction back and
        propagate unchanged; database errors are converted to CatalogStoreError.

        Raises:
            CatalogStoreError: If the database rejects or fails the transaction.
        """
        try:
            with self._engine.begin() as conn:
                yield conn
        except sql_exc.SQLAlchemyError as exc:
            self._logger.error("catalog_store_error", error=str(exc))
            raise CatalogStoreError(
                "Catalog store transaction failed",
                path=self._engine.url.render_as_string(),
                cause=str(exc),
            ) from exc

    def dispose(self) -> None:
        """Close all pooled connections."""
        self._engine.dispose()
