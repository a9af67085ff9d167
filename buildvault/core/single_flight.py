"""Per-key locking so only one operation per key is in flight.

Two layers:
- an in-process ``threading.Lock`` per key, always used;
- an optional ``filelock.FileLock`` so separate processes sharing a cache
  directory also serialize on the same entry.

Callers that arrive while another holds the key wait, then re-check state
themselves (e.g. find a freshly verified cache entry) rather than redoing
the work.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock


class KeyedLocks:
    """Registry of reference-counted locks keyed by string."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._refs: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str, lock_file: Path | None = None) -> Iterator[None]:
        """Hold ``key`` exclusively, optionally also across processes."""
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._refs[key] = self._refs.get(key, 0) + 1
        try:
            with lock:
                if lock_file is None:
                    yield
                else:
                    lock_file.parent.mkdir(parents=True, exist_ok=True)
                    with FileLock(str(lock_file)):
                        yield
        finally:
            with self._guard:
                self._refs[key] -= 1
                if self._refs[key] == 0:
                    del self._refs[key]
                    del self._locks[key]

    def active_keys(self) -> list[str]:
        """Keys currently held or waited on."""
        with self._guard:
            return sorted(self._locks)
