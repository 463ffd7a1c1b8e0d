from __future__ import annotations

import threading


class KeyLockRegistry:
    """
    One lock per store key, shared by every location under that key.

    A hash key keeps all of its fields in one file, so patches on two fields of
    the same hash must serialize on the key, and a plain write must wait for a
    hash write under the same name before its type check runs.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


GLOBAL_KEY_LOCKS = KeyLockRegistry()
