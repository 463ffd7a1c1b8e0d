from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable, Mapping, Sequence

from patch_engine.errors import FailureKind, PatchResult, ProgramRegistrationError, TransportError
from patch_engine.operations import (
    FieldOperation,
    IncrementField,
    SetField,
    from_flat_args,
    increment_operations,
    set_operations,
)
from patch_engine.programs import PROGRAMS
from settings import Settings, get_settings

from .factory import create_store
from .interfaces import AtomicDocumentStore, DocumentLocation

logger = logging.getLogger(__name__)

SetPairs = Mapping[str, Any] | Iterable[tuple[str, Any]]
IncrPairs = Mapping[str, int | float] | Iterable[str | tuple[str, int | float]]


class JsonPatchClient:
    """
    Patches top-level fields of JSON documents kept as text in a store.

    Every call is one atomic invocation against one location: the store reads
    the current text, the patch program applies the whole batch, and the result
    is written back only if every operation succeeded. Calls return a
    PatchResult holding either the new document text or a failure.

    If no store is given, one is built from settings and closed by close();
    a store passed in is left open.
    """

    def __init__(self, store: AtomicDocumentStore | None = None, *, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._own_store = store is None
        self._store: AtomicDocumentStore = store if store is not None else create_store(self._settings)
        self.program_handles: dict[str, str] = {}

    @property
    def store(self) -> AtomicDocumentStore:
        return self._store

    def init(self) -> None:
        """Load the patch programs into the store. Raises ProgramRegistrationError."""
        for name, program in PROGRAMS.items():
            self.program_handles[name] = self._store.load_program(name, program)
        logger.info("PATCH INIT: loaded programs %s", sorted(self.program_handles))

    def close(self) -> None:
        if self._own_store:
            self._store.close()

    def __enter__(self) -> "JsonPatchClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- plain-value documents -------------------------------------------

    def set_field(self, key: str, field: str, value: Any) -> PatchResult:
        return self.set_fields(key, [(field, value)])

    def set_fields(self, key: str, values: SetPairs) -> PatchResult:
        return self._call("set_fields", DocumentLocation(key), set_operations(values))

    def incr_field(self, key: str, field: str, delta: int | float = 1) -> PatchResult:
        return self.incr_fields(key, [(field, delta)])

    def incr_fields(self, key: str, deltas: IncrPairs) -> PatchResult:
        return self._call("incr_fields", DocumentLocation(key), increment_operations(deltas))

    # --- hash-field documents --------------------------------------------

    def set_hash_field(self, key: str, hash_field: str, field: str, value: Any) -> PatchResult:
        return self.set_hash_fields(key, hash_field, [(field, value)])

    def set_hash_fields(self, key: str, hash_field: str, values: SetPairs) -> PatchResult:
        return self._call("set_fields", DocumentLocation(key, hash_field), set_operations(values))

    def incr_hash_field(self, key: str, hash_field: str, field: str, delta: int | float = 1) -> PatchResult:
        return self.incr_hash_fields(key, hash_field, [(field, delta)])

    def incr_hash_fields(self, key: str, hash_field: str, deltas: IncrPairs) -> PatchResult:
        return self._call("incr_fields", DocumentLocation(key, hash_field), increment_operations(deltas))

    # --- variadic name/value forms ---------------------------------------

    def set_key(self, key: str, *args: Any) -> PatchResult:
        return self._call("set_fields", DocumentLocation(key), from_flat_args("set", args))

    def incr_key(self, key: str, *args: Any) -> PatchResult:
        return self._call("incr_fields", DocumentLocation(key), from_flat_args("incr", args))

    def set_hash_key(self, key: str, hash_field: str, *args: Any) -> PatchResult:
        return self._call("set_fields", DocumentLocation(key, hash_field), from_flat_args("set", args))

    def incr_hash_key(self, key: str, hash_field: str, *args: Any) -> PatchResult:
        return self._call("incr_fields", DocumentLocation(key, hash_field), from_flat_args("incr", args))

    # --- mixed batches and raw access ------------------------------------

    def apply(self, location: DocumentLocation, operations: Sequence[FieldOperation]) -> PatchResult:
        """Apply a mixed set/increment batch in one atomic call."""
        ops = list(operations)
        if all(isinstance(op, SetField) for op in ops):
            return self._call("set_fields", location, ops)
        if all(isinstance(op, IncrementField) for op in ops):
            return self._call("incr_fields", location, ops)
        return self._call("patch_fields", location, ops)

    def get_document(self, key: str, hash_field: str | None = None) -> str | None:
        return self._store.read(DocumentLocation(key, hash_field))

    def put_document(self, key: str, document: str | Mapping[str, Any], hash_field: str | None = None) -> None:
        """Store a whole document; mappings are serialized compactly, text is kept verbatim."""
        text = document if isinstance(document, str) else json.dumps(document, separators=(",", ":"))
        self._store.write(DocumentLocation(key, hash_field), text)

    def _call(self, program: str, location: DocumentLocation, operations: Sequence[FieldOperation]) -> PatchResult:
        if program not in self.program_handles:
            self.init()
        try:
            try:
                result = self._store.invoke(self.program_handles[program], location, operations)
            except ProgramRegistrationError:
                # The store dropped its programs; reload once and retry.
                logger.info("PATCH CALL: program %s missing from store, reloading", program)
                self.init()
                result = self._store.invoke(self.program_handles[program], location, operations)
        except TransportError as e:
            logger.warning("PATCH CALL: %s on %s failed: %r", program, location.describe(), e)
            return PatchResult.failure(FailureKind.TRANSPORT_FAILURE, str(e))

        if result.error is not None:
            logger.info(
                "PATCH CALL: %s on %s rejected (%s): %s",
                program,
                location.describe(),
                result.error.kind.value,
                result.error.message,
            )
        elif self._settings.debug_log_patches:
            logger.debug("PATCH CALL: %s on %s -> %s", program, location.describe(), result.document)
        return result


class AsyncJsonPatchClient:
    """
    Async wrapper around JsonPatchClient.
    Uses asyncio.to_thread to avoid blocking the event loop on store I/O.
    """

    def __init__(self, client: JsonPatchClient | None = None, **kwargs: Any) -> None:
        self._client = client if client is not None else JsonPatchClient(**kwargs)

    @property
    def sync_client(self) -> JsonPatchClient:
        return self._client

    async def init(self) -> None:
        await asyncio.to_thread(self._client.init)

    async def close(self) -> None:
        await asyncio.to_thread(self._client.close)

    async def set_field(self, key: str, field: str, value: Any) -> PatchResult:
        return await asyncio.to_thread(self._client.set_field, key, field, value)

    async def set_fields(self, key: str, values: SetPairs) -> PatchResult:
        return await asyncio.to_thread(self._client.set_fields, key, values)

    async def incr_field(self, key: str, field: str, delta: int | float = 1) -> PatchResult:
        return await asyncio.to_thread(self._client.incr_field, key, field, delta)

    async def incr_fields(self, key: str, deltas: IncrPairs) -> PatchResult:
        return await asyncio.to_thread(self._client.incr_fields, key, deltas)

    async def set_hash_field(self, key: str, hash_field: str, field: str, value: Any) -> PatchResult:
        return await asyncio.to_thread(self._client.set_hash_field, key, hash_field, field, value)

    async def set_hash_fields(self, key: str, hash_field: str, values: SetPairs) -> PatchResult:
        return await asyncio.to_thread(self._client.set_hash_fields, key, hash_field, values)

    async def incr_hash_field(self, key: str, hash_field: str, field: str, delta: int | float = 1) -> PatchResult:
        return await asyncio.to_thread(self._client.incr_hash_field, key, hash_field, field, delta)

    async def incr_hash_fields(self, key: str, hash_field: str, deltas: IncrPairs) -> PatchResult:
        return await asyncio.to_thread(self._client.incr_hash_fields, key, hash_field, deltas)

    async def apply(self, location: DocumentLocation, operations: Sequence[FieldOperation]) -> PatchResult:
        return await asyncio.to_thread(self._client.apply, location, operations)

    async def get_document(self, key: str, hash_field: str | None = None) -> str | None:
        return await asyncio.to_thread(self._client.get_document, key, hash_field)

    async def put_document(self, key: str, document: str | Mapping[str, Any], hash_field: str | None = None) -> None:
        await asyncio.to_thread(self._client.put_document, key, document, hash_field)
