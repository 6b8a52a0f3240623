"""Keyed serializer: per-name mutual exclusion.

Requests holding the same key are strictly serialized; requests holding
different keys proceed in parallel. Per-key locks are reference counted and
discarded once nobody holds or waits for them.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from floe_catalog.errors import LockTimeoutError


class _KeyEntry:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


class KeyedLock:
    """Map of exclusive locks keyed by namespace name.

    Example:
        >>> locks = KeyedLock()
        >>> with locks.hold("NS1"):
        ...     manager_work()
    """

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._entries: dict[str, _KeyEntry] = {}

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        """Hold exclusive access to ``key`` for the duration of the block.

        Args:
            key: The key to serialize on.
            timeout: Seconds to wait for the lock; None waits indefinitely.

        Raises:
            LockTimeoutError: If the lock could not be acquired in time.
        """
        with self._mutex:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _KeyEntry()
            entry.refs += 1

        acquired = False
        try:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise LockTimeoutError(key, timeout)
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._mutex:
                entry.refs -= 1
                if entry.refs == 0:
                    del self._entries[key]

    def is_held(self, key: str) -> bool:
        """Return True if some thread currently holds ``key``."""
        with self._mutex:
            entry = self._entries.get(key)
            return entry is not None and entry.lock.locked()

    def active_keys(self) -> set[str]:
        """Keys currently held or waited for."""
        with self._mutex:
            return set(self._entries)
