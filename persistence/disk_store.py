from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from json_store import atomic_write_json, atomic_write_text, read_json, read_text
from patch_engine.errors import ProgramRegistrationError, TransportError, WrongTypeError

from .interfaces import DocumentLocation, R, Transform
from .locks import GLOBAL_KEY_LOCKS
from .paths import ensure_dir, hash_path, key_filename, plain_path
from .programs import ProgramHostStore

logger = logging.getLogger(__name__)


class DiskDocumentStore(ProgramHostStore):
    """
    Stores documents on disk under a base directory, one file per key:

    - <key>.doc.json: the document text of a plain key, byte for byte
    - <key>.hash.json: a JSON object mapping hash fields to document text

    Writes are atomic (temp file then replace) and serialized per file with
    process-wide locks.
    """

    def __init__(self, data_dir: Path):
        super().__init__()
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _check_ready(self) -> None:
        try:
            ensure_dir(self._data_dir)
        except OSError as e:
            raise ProgramRegistrationError(f"data dir {self._data_dir} is not usable: {e}") from e

    def _lock(self, location: DocumentLocation):
        # One lock per key covers both its plain and hash files.
        return GLOBAL_KEY_LOCKS.lock_for(str(self._data_dir.resolve() / key_filename(location.key)))

    def read(self, location: DocumentLocation) -> str | None:
        with self._lock(location):
            return self._read_unlocked(location)

    def write(self, location: DocumentLocation, text: str) -> None:
        with self._lock(location):
            self._write_unlocked(location, text)

    def atomic_update(self, location: DocumentLocation, transform: Transform[R]) -> R:
        with self._lock(location):
            new_text, result = transform(self._read_unlocked(location))
            if new_text is not None:
                self._write_unlocked(location, new_text)
            return result

    def _check_type(self, location: DocumentLocation) -> None:
        if location.is_hash:
            if plain_path(self._data_dir, location.key).exists():
                raise WrongTypeError(f"key {location.key!r} holds a plain value, not a hash")
        elif hash_path(self._data_dir, location.key).exists():
            raise WrongTypeError(f"key {location.key!r} holds a hash, not a plain value")

    def _load_hash(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        data = read_json(path)
        if not isinstance(data, dict):
            raise TransportError(f"hash file {path} is corrupt")
        return data

    def _read_unlocked(self, location: DocumentLocation) -> str | None:
        self._check_type(location)
        try:
            if location.hash_field is None:
                return read_text(plain_path(self._data_dir, location.key))
            value = self._load_hash(hash_path(self._data_dir, location.key)).get(location.hash_field)
        except OSError as e:
            raise TransportError(f"failed to read {location.describe()}: {e}") from e
        return value if isinstance(value, str) else None

    def _write_unlocked(self, location: DocumentLocation, text: str) -> None:
        self._check_type(location)
        try:
            if location.hash_field is None:
                atomic_write_text(plain_path(self._data_dir, location.key), text)
                return
            path = hash_path(self._data_dir, location.key)
            data = self._load_hash(path)
            data[location.hash_field] = text
            atomic_write_json(path, data)
        except OSError as e:
            logger.warning("STORE DISK: failed to write %s: %r", location.describe(), e)
            raise TransportError(f"failed to write {location.describe()}: {e}") from e
