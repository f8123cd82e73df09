"""Per-key mutual exclusion for operations that touch the same movie."""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager

__all__ = ["KeyedLock"]


class KeyedLock:
    """Hand out one :class:`threading.Lock` per key.

    Locks are reference counted and discarded once no caller holds or waits
    on them, so the registry does not grow with every identifier ever seen.
    Distinct keys never block each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Block until *key* is free and keep it for the ``with`` body."""

        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                remaining = self._waiters[key] - 1
                if remaining:
                    self._waiters[key] = remaining
                else:
                    del self._waiters[key]
                    del self._locks[key]

    def active_keys(self) -> list[Hashable]:
        """Return keys currently held or awaited."""

        with self._guard:
            return list(self._locks)
