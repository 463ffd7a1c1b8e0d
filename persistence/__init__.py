from __future__ import annotations

from .client import AsyncJsonPatchClient, JsonPatchClient
from .disk_store import DiskDocumentStore
from .factory import create_store
from .interfaces import AtomicDocumentStore, DocumentLocation
from .memory_store import MemoryDocumentStore
from .redis_store import RedisDocumentStore

__all__ = [
    "AsyncJsonPatchClient",
    "JsonPatchClient",
    "DiskDocumentStore",
    "create_store",
    "AtomicDocumentStore",
    "DocumentLocation",
    "MemoryDocumentStore",
    "RedisDocumentStore",
]
