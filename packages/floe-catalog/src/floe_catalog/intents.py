"""Durable intent log for structural catalog mutations.

An intent is appended before a mutation touches the catalog or the
filesystem, and marked COMPLETED once both are done. A PENDING intent found
at start-up is driven to completion by the recovery reconciler; intents are
never rolled back.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

import sqlalchemy as sql
from pydantic import BaseModel, ConfigDict, Field

from floe_catalog.observability import get_logger
from floe_catalog.store import intents_table

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from floe_catalog.store import CatalogStore


class IntentOperation(str, Enum):
    """Structural mutation recorded in the intent log."""

    CREATE_NAMESPACE = "create_namespace"
    MODIFY_NAMESPACE = "modify_namespace"
    DELETE_NAMESPACE = "delete_namespace"
    CREATE_TABLE = "create_table"
    DELETE_TABLE = "delete_table"


class IntentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Intent(BaseModel):
    """A recorded intent.

    Attributes:
        id: Monotonic log position.
        operation: The mutation to perform.
        namespace: Target namespace (owning namespace for table operations).
        qualifier: Target table qualifier for table operations.
        payload: Operation arguments needed to re-derive the target state.
        status: PENDING until the mutation is fully applied.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    operation: IntentOperation
    namespace: str
    qualifier: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    status: IntentStatus = IntentStatus.PENDING
    created_at: datetime
    completed_at: datetime | None = None

    @property
    def target(self) -> str:
        """Human-readable target for logging."""
        if self.qualifier is None:
            return self.namespace
        return f"{self.namespace}:{self.qualifier}"


def _intent_from_row(row: sql.Row) -> Intent:
    return Intent(
        id=row.id,
        operation=IntentOperation(row.operation),
        namespace=row.namespace,
        qualifier=row.qualifier,
        payload=dict(row.payload),
        status=IntentStatus(row.status),
        created_at=row.created_at,
        completed_at=row.completed_at,
    )


class IntentLog:
    """Append-only intent log stored in the catalog database."""

    def __init__(self, store: CatalogStore, *, logger: BoundLogger | None = None) -> None:
        self._store = store
        self._logger = logger or get_logger()

    def append(
        self,
        operation: IntentOperation,
        namespace: str,
        *,
        qualifier: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Intent:
        """Durably record an intent and return it.

        Once this returns the operation must be driven to completion.
        """
        now = datetime.now(timezone.utc)
        values = {
            "operation": operation.value,
            "namespace": namespace,
            "qualifier": qualifier,
            "payload": payload or {},
            "status": IntentStatus.PENDING.value,
            "created_at": now,
        }
        with self._store.transaction() as conn:
            result = conn.execute(sql.insert(intents_table).values(**values))
            intent_id = result.inserted_primary_key[0]
        intent = Intent(id=intent_id, **{**values, "operation": operation, "status": IntentStatus.PENDING})
        self._logger.debug(
            "intent_recorded",
            intent_id=intent.id,
            operation=operation.value,
            target=intent.target,
        )
        return intent

    def complete(self, intent_id: int) -> None:
        """Mark an intent as fully applied. Completing twice is a no-op."""
        with self._store.transaction() as conn:
            conn.execute(
                sql.update(intents_table)
                .where(intents_table.c.id == intent_id)
                .where(intents_table.c.status == IntentStatus.PENDING.value)
                .values(status=IntentStatus.COMPLETED.value, completed_at=datetime.now(timezone.utc))
            )
        self._logger.debug("intent_completed", intent_id=intent_id)

    def get(self, intent_id: int) -> Intent | None:
        with self._store.transaction() as conn:
            row = conn.execute(
                sql.select(intents_table).where(intents_table.c.id == intent_id)
            ).one_or_none()
        return _intent_from_row(row) if row is not None else None

    def pending(self, namespace: str | None = None) -> list[Intent]:
        """Return PENDING intents in log order.

        Args:
            namespace: Only intents targeting this namespace or its tables.
        """
        query = sql.select(intents_table).where(
            intents_table.c.status == IntentStatus.PENDING.value
        )
        if namespace is not None:
            query = query.where(intents_table.c.namespace == namespace)
        with self._store.transaction() as conn:
            rows = conn.execute(query.order_by(intents_table.c.id)).all()
        return [_intent_from_row(row) for row in rows]

    def purge_completed(self) -> int:
        """Delete COMPLETED intents and return how many were removed."""
        with self._store.transaction() as conn:
            result = conn.execute(
                sql.delete(intents_table).where(
                    intents_table.c.status == IntentStatus.COMPLETED.value
                )
            )
        return result.rowcount
