from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from patch_engine.errors import FailureKind, PatchResult, TransportError
from patch_engine.operations import Delta
from persistence.client import AsyncJsonPatchClient
from settings import get_settings

router = APIRouter(tags=["documents"])

SETTINGS = get_settings()
PATCH_CLIENT = AsyncJsonPatchClient(settings=SETTINGS)

STATUS_BY_KIND = {
    FailureKind.NOT_FOUND: 404,
    FailureKind.TYPE_MISMATCH: 409,
    FailureKind.MALFORMED_DOCUMENT: 422,
    FailureKind.TRANSPORT_FAILURE: 503,
    FailureKind.PROGRAM_REGISTRATION_FAILURE: 503,
}


class SetFieldsBody(BaseModel):
    # Native JSON values; formatted into JSON text before patching.
    fields: dict[str, Any]


class IncrFieldsBody(BaseModel):
    fields: dict[str, Delta]


def _respond(result: PatchResult) -> dict[str, Any]:
    if result.error is not None:
        raise HTTPException(
            status_code=STATUS_BY_KIND[result.error.kind],
            detail=result.error.model_dump(mode="json"),
        )
    return {"document": result.document}


async def _read_object_body(request: Request) -> str:
    raw = await request.body()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail=f"body is not valid UTF-8: {e.reason}") from e
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"body is not valid JSON: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=400, detail="document must be a JSON object")
    return text


def _document_response(text: str | None) -> Response:
    if text is None:
        raise HTTPException(status_code=404, detail="document not found")
    return Response(content=text, media_type="application/json")


# -------------------------------------------------------------------
# Plain-key documents
# -------------------------------------------------------------------
@router.put("/documents/{key}", status_code=204)
async def put_document(key: str, request: Request) -> Response:
    text = await _read_object_body(request)
    try:
        await PATCH_CLIENT.put_document(key, text)
    except TransportError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return Response(status_code=204)


@router.get("/documents/{key}")
async def get_document(key: str) -> Response:
    try:
        text = await PATCH_CLIENT.get_document(key)
    except TransportError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return _document_response(text)


@router.post("/documents/{key}/set")
async def set_document_fields(key: str, body: SetFieldsBody) -> dict[str, Any]:
    return _respond(await PATCH_CLIENT.set_fields(key, body.fields))


@router.post("/documents/{key}/incr")
async def incr_document_fields(key: str, body: IncrFieldsBody) -> dict[str, Any]:
    return _respond(await PATCH_CLIENT.incr_fields(key, body.fields))


# -------------------------------------------------------------------
# Documents stored in a hash field
# -------------------------------------------------------------------
@router.put("/hashes/{key}/{hash_field}", status_code=204)
async def put_hash_document(key: str, hash_field: str, request: Request) -> Response:
    text = await _read_object_body(request)
    try:
        await PATCH_CLIENT.put_document(key, text, hash_field)
    except TransportError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return Response(status_code=204)


@router.get("/hashes/{key}/{hash_field}")
async def get_hash_document(key: str, hash_field: str) -> Response:
    try:
        text = await PATCH_CLIENT.get_document(key, hash_field)
    except TransportError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return _document_response(text)


@router.post("/hashes/{key}/{hash_field}/set")
async def set_hash_document_fields(key: str, hash_field: str, body: SetFieldsBody) -> dict[str, Any]:
    return _respond(await PATCH_CLIENT.set_hash_fields(key, hash_field, body.fields))


@router.post("/hashes/{key}/{hash_field}/incr")
async def incr_hash_document_fields(key: str, hash_field: str, body: IncrFieldsBody) -> dict[str, Any]:
    return _respond(await PATCH_CLIENT.incr_hash_fields(key, hash_field, body.fields))
