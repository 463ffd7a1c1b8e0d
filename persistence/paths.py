from __future__ import annotations

from pathlib import Path
from urllib.parse import quote


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def key_filename(key: str) -> str:
    """
    Filesystem-safe stem for a store key.

    Percent-encoding keeps the mapping one-to-one, so distinct keys never share
    a file. Stems such as "", "." and ".." are safe because callers always
    append a suffix.
    """
    return quote(key, safe="")


def plain_path(data_dir: Path, key: str) -> Path:
    return data_dir / f"{key_filename(key)}.doc.json"


def hash_path(data_dir: Path, key: str) -> Path:
    return data_dir / f"{key_filename(key)}.hash.json"
