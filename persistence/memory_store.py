from __future__ import annotations

from patch_engine.errors import WrongTypeError

from .interfaces import DocumentLocation, R, Transform
from .locks import KeyLockRegistry
from .programs import ProgramHostStore


class MemoryDocumentStore(ProgramHostStore):
    """
    In-process store holding plain string values and hashes of strings.

    - One lock per outer key; a hash field shares its key's lock.
    - Reading a hash as a plain value (or the reverse) raises WrongTypeError.
    """

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[str, str | dict[str, str]] = {}
        self._locks = KeyLockRegistry()

    # Plain/hash accessors, mostly for seeding and inspection.

    def get(self, key: str) -> str | None:
        return self.read(DocumentLocation(key))

    def set(self, key: str, text: str) -> None:
        self.write(DocumentLocation(key), text)

    def hget(self, key: str, field: str) -> str | None:
        return self.read(DocumentLocation(key, field))

    def hset(self, key: str, field: str, text: str) -> None:
        self.write(DocumentLocation(key, field), text)

    def delete(self, key: str) -> bool:
        with self._locks.lock_for(key):
            return self._data.pop(key, None) is not None

    # AtomicDocumentStore

    def read(self, location: DocumentLocation) -> str | None:
        with self._locks.lock_for(location.key):
            return self._read_unlocked(location)

    def write(self, location: DocumentLocation, text: str) -> None:
        with self._locks.lock_for(location.key):
            self._write_unlocked(location, text)

    def atomic_update(self, location: DocumentLocation, transform: Transform[R]) -> R:
        with self._locks.lock_for(location.key):
            new_text, result = transform(self._read_unlocked(location))
            if new_text is not None:
                self._write_unlocked(location, new_text)
            return result

    def _read_unlocked(self, location: DocumentLocation) -> str | None:
        value = self._data.get(location.key)
        if value is None:
            return None
        if location.hash_field is None:
            if not isinstance(value, str):
                raise WrongTypeError(f"key {location.key!r} holds a hash, not a plain value")
            return value
        if not isinstance(value, dict):
            raise WrongTypeError(f"key {location.key!r} holds a plain value, not a hash")
        return value.get(location.hash_field)

    def _write_unlocked(self, location: DocumentLocation, text: str) -> None:
        if location.hash_field is None:
            if isinstance(self._data.get(location.key), dict):
                raise WrongTypeError(f"key {location.key!r} holds a hash, not a plain value")
            self._data[location.key] = text
            return
        value = self._data.setdefault(location.key, {})
        if not isinstance(value, dict):
            raise WrongTypeError(f"key {location.key!r} holds a plain value, not a hash")
        value[location.hash_field] = text
