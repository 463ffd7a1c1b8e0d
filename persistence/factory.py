from __future__ import annotations

from settings import Settings

from .disk_store import DiskDocumentStore
from .memory_store import MemoryDocumentStore
from .programs import ProgramHostStore
from .redis_store import RedisDocumentStore


def create_store(settings: Settings) -> ProgramHostStore:
    backend = settings.store_backend
    if backend == "memory":
        return MemoryDocumentStore()
    if backend == "disk":
        return DiskDocumentStore(settings.data_dir)
    if backend == "redis":
        return RedisDocumentStore(settings.redis_url, max_retries=settings.cas_max_retries)
    raise ValueError(f"unknown STORE_BACKEND {backend!r} (expected memory, disk or redis)")
