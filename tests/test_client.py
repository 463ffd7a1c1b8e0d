from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from patch_engine.errors import FailureKind, ProgramRegistrationError, WrongTypeError
from patch_engine.operations import IncrementField, SetField
from persistence.client import AsyncJsonPatchClient, JsonPatchClient
from persistence.interfaces import DocumentLocation
from persistence.memory_store import MemoryDocumentStore

KEY = "test-obj"
HASH_FIELD = "doc"


class Variant:
    """Drives the same calls against a plain key or a hash field."""

    def __init__(self, kind: str, client: JsonPatchClient, store: MemoryDocumentStore):
        self.kind = kind
        self.client = client
        self.store = store

    def seed(self, doc: Any) -> str:
        text = doc if isinstance(doc, str) else json.dumps(doc)
        if self.kind == "plain":
            self.store.set(KEY, text)
        else:
            self.store.hset(KEY, HASH_FIELD, text)
        return text

    def stored(self) -> str | None:
        if self.kind == "plain":
            return self.store.get(KEY)
        return self.store.hget(KEY, HASH_FIELD)

    def set_field(self, field: str, value: Any):
        if self.kind == "plain":
            return self.client.set_field(KEY, field, value)
        return self.client.set_hash_field(KEY, HASH_FIELD, field, value)

    def set_fields(self, values):
        if self.kind == "plain":
            return self.client.set_fields(KEY, values)
        return self.client.set_hash_fields(KEY, HASH_FIELD, values)

    def incr_field(self, field: str, *delta):
        if self.kind == "plain":
            return self.client.incr_field(KEY, field, *delta)
        return self.client.incr_hash_field(KEY, HASH_FIELD, field, *delta)

    def incr_fields(self, deltas):
        if self.kind == "plain":
            return self.client.incr_fields(KEY, deltas)
        return self.client.incr_hash_fields(KEY, HASH_FIELD, deltas)

    def set_key(self, *args):
        if self.kind == "plain":
            return self.client.set_key(KEY, *args)
        return self.client.set_hash_key(KEY, HASH_FIELD, *args)

    def incr_key(self, *args):
        if self.kind == "plain":
            return self.client.incr_key(KEY, *args)
        return self.client.incr_hash_key(KEY, HASH_FIELD, *args)


@pytest.fixture(params=["plain", "hash"])
def variant(request, client, memory_store) -> Variant:
    return Variant(request.param, client, memory_store)


def test_set_single_field(variant):
    variant.seed({"a": 2, "b": "hello", "c": "test"})
    result = variant.set_field("b", "bye")
    assert result.ok
    assert result.document == variant.stored()
    assert variant.stored() == '{"a": 2, "b": "bye", "c": "test"}'


def test_set_multiple_fields(variant):
    variant.seed({"a": 2, "b": "hello", "c": "test"})
    variant.set_fields({"b": "bye", "a": 3, "c": "test2"}).unwrap()
    assert json.loads(variant.stored()) == {"a": 3, "b": "bye", "c": "test2"}


def test_set_key_variadic_form(variant):
    variant.seed({"a": 2, "b": "hello", "c": "test"})
    variant.set_key("b", "bye", "a", 3).unwrap()
    assert variant.stored() == '{"a": 3, "b": "bye", "c": "test"}'


def test_set_object_value(variant):
    variant.seed({"a": 2, "b": "hello"})
    nested = {"x": {"y": [1, 2]}, "s": "str"}
    variant.set_field("b", nested).unwrap()
    assert json.loads(variant.stored()) == {"a": 2, "b": nested}


def test_increment_default_and_explicit(variant):
    variant.seed({"a": 2, "b": "hello", "c": "test"})
    variant.incr_field("a").unwrap()
    assert json.loads(variant.stored())["a"] == 3
    variant.incr_field("a", 3).unwrap()
    assert json.loads(variant.stored()) == {"a": 6, "b": "hello", "c": "test"}


def test_increment_preserves_representation(variant):
    variant.seed({"n": 2, "s": "2"})
    variant.incr_fields(["n", "s"]).unwrap()
    assert variant.stored() == '{"n": 3, "s": "3"}'


def test_increment_batch(variant):
    variant.seed({"a": 2, "b": 4, "c": 6})
    variant.incr_key("a", 1, "b", 2, "c", 7).unwrap()
    assert json.loads(variant.stored()) == {"a": 3, "b": 6, "c": 13}


def test_incr_key_single_name_defaults_to_one(variant):
    variant.seed({"a": 2})
    variant.incr_key("a").unwrap()
    assert json.loads(variant.stored()) == {"a": 3}


def test_nested_field_is_not_mutated(variant):
    original = variant.seed({"outer": {"a": 1}, "b": 2})
    for result in (variant.set_field("a", 5), variant.incr_field("a")):
        assert result.error is not None
        assert result.error.kind is FailureKind.NOT_FOUND
    assert variant.stored() == original


def test_missing_field_leaves_document_unchanged(variant):
    original = variant.seed({"a": 2, "b": "hello"})
    result = variant.set_field("nope", 1)
    assert result.error.kind is FailureKind.NOT_FOUND
    result = variant.incr_field("nope")
    assert result.error.kind is FailureKind.NOT_FOUND
    assert variant.stored() == original


def test_failed_batch_is_all_or_nothing(variant):
    original = variant.seed({"a": 1, "b": "text", "c": 3})
    result = variant.incr_fields({"a": 1, "b": 1, "c": 1})
    assert result.error.kind is FailureKind.TYPE_MISMATCH
    assert result.error.index == 1
    assert variant.stored() == original


def test_missing_document_is_not_found(variant):
    result = variant.set_field("a", 1)
    assert result.error.kind is FailureKind.NOT_FOUND
    assert result.error.field is None
    assert variant.stored() is None


def test_mixed_batch_through_apply(client, memory_store):
    memory_store.set(KEY, '{"count":"9","label":"x"}')
    result = client.apply(
        DocumentLocation(KEY),
        [IncrementField(field="count"), SetField(field="label", value='"y"')],
    )
    assert result.unwrap() == '{"count":"10","label":"y"}'


def test_bad_set_value_leaves_document_untouched(client, memory_store):
    memory_store.set(KEY, '{"a":1,"b":2}')
    result = client.apply(DocumentLocation(KEY), [SetField(field="a", value="")])
    assert result.error.kind is FailureKind.MALFORMED_DOCUMENT
    assert memory_store.get(KEY) == '{"a":1,"b":2}'


def test_wrong_type_is_transport_failure(client, memory_store):
    memory_store.hset(KEY, HASH_FIELD, '{"a":1}')
    result = client.incr_field(KEY, "a")
    assert result.error.kind is FailureKind.TRANSPORT_FAILURE
    with pytest.raises(WrongTypeError):
        memory_store.get(KEY)


def test_put_and_get_document(client):
    client.put_document(KEY, {"a": 1})
    assert client.get_document(KEY) == '{"a":1}'
    client.put_document("other", '{ "b" : 2 }', hash_field=HASH_FIELD)
    assert client.get_document("other", HASH_FIELD) == '{ "b" : 2 }'
    assert client.get_document("other", "missing") is None


def test_programs_load_lazily(memory_store, settings):
    client = JsonPatchClient(memory_store, settings=settings)
    assert client.program_handles == {}
    memory_store.set(KEY, '{"a":1}')
    client.incr_field(KEY, "a").unwrap()
    assert set(client.program_handles) == {"set_fields", "incr_fields", "patch_fields"}


def test_programs_reload_when_store_forgets_them(client, memory_store):
    memory_store.set(KEY, '{"a":1}')
    client.program_handles["incr_fields"] = "0" * 40
    assert client.incr_field(KEY, "a").unwrap() == '{"a":2}'
    assert memory_store.has_program(client.program_handles["incr_fields"])


def test_invoke_unknown_handle_raises(memory_store):
    with pytest.raises(ProgramRegistrationError):
        memory_store.invoke("deadbeef", DocumentLocation(KEY), [])


def test_load_program_rejects_non_callable(memory_store):
    with pytest.raises(ProgramRegistrationError):
        memory_store.load_program("broken", "not a program")  # type: ignore[arg-type]


def test_client_owns_store_built_from_settings(settings):
    with JsonPatchClient(settings=settings) as client:
        assert isinstance(client.store, MemoryDocumentStore)


def test_async_client_basic_flow(memory_store, settings):
    async def _run():
        client = AsyncJsonPatchClient(store=memory_store, settings=settings)
        await client.init()
        await client.put_document(KEY, {"a": 2, "b": 4})
        r = await client.incr_fields(KEY, {"a": 1, "b": 2})
        assert r.document == '{"a":3,"b":6}'

        await client.put_document(KEY + ":h", {"s": "1"}, HASH_FIELD)
        r2 = await client.incr_hash_field(KEY + ":h", HASH_FIELD, "s", 41)
        assert r2.document == '{"s":"42"}'

        r3 = await client.set_hash_field(KEY + ":h", HASH_FIELD, "s", None)
        assert r3.document == '{"s":null}'
        assert await client.get_document(KEY + ":h", HASH_FIELD) == '{"s":null}'

        r4 = await client.incr_hash_fields(KEY + ":h", HASH_FIELD, ["s"])
        assert r4.error.kind is FailureKind.TYPE_MISMATCH
        await client.close()

    asyncio.run(_run())


def test_memory_store_delete_and_type_switch(memory_store):
    memory_store.set(KEY, '{"a":1}')
    with pytest.raises(WrongTypeError):
        memory_store.hset(KEY, HASH_FIELD, '{"a":1}')
    assert memory_store.delete(KEY) is True
    assert memory_store.delete(KEY) is False
    memory_store.hset(KEY, HASH_FIELD, '{"a":1}')
    assert memory_store.hget(KEY, HASH_FIELD) == '{"a":1}'
