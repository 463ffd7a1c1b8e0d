from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    # Store selection: "memory", "disk" or "redis"
    store_backend: str

    # Redis
    redis_url: str
    cas_max_retries: int

    # Disk
    data_dir: Path

    # Debug
    debug_log_patches: bool


def get_settings() -> Settings:
    store_backend = os.getenv("STORE_BACKEND", "memory").strip().lower()

    redis_url = os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0")
    # WATCH/MULTI attempts before giving up on a hot key.
    cas_max_retries = max(1, _env_int("CAS_MAX_RETRIES", 16))

    data_dir = Path(os.getenv("DATA_DIR", "data")).expanduser()

    # Logs full document text before/after each patch; off by default.
    debug_log_patches = _env_bool("DEBUG_LOG_PATCHES", False)

    return Settings(
        store_backend=store_backend,
        redis_url=redis_url,
        cas_max_retries=cas_max_retries,
        data_dir=data_dir,
        debug_log_patches=debug_log_patches,
    )
