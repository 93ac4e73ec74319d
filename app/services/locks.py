"""Process-wide keyed mutexes for admission.

Keys are always acquired in sorted order, so two admissions that share some
slots but not others cannot deadlock. Database row locks (``FOR UPDATE``) cover
the multi-process case; these cover threads inside one worker, including
SQLite deployments where row locks do not exist.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterable, List

from app.core.exceptions import SlotBusy


class KeyedLockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, keys: Iterable[Hashable], timeout: float):
        """Acquire every key in the given order; raise ``SlotBusy`` on timeout."""
        acquired: List[threading.Lock] = []
        try:
            for key in keys:
                lock = self._lock_for(key)
                if not lock.acquire(timeout=timeout):
                    raise SlotBusy(f"Timed out waiting for {key}; retry the request")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


slot_locks = KeyedLockRegistry()
