from __future__ import annotations

import logging
import math
from typing import Sequence

from .errors import FailureKind, MalformedDocumentError, PatchFailure, PatchResult
from .operations import FieldOperation, IncrementField, SetField
from .scanner import FieldLocation, ValueKind, is_single_value, locate_field

logger = logging.getLogger(__name__)

_INCREMENTABLE = (ValueKind.NUMBER, ValueKind.NUMERIC_STRING)


def set_field(document: str, field: str, value: str) -> PatchResult:
    return apply_operations(document, [SetField(field=field, value=value)])


def increment_field(document: str, field: str, delta: int | float = 1) -> PatchResult:
    return apply_operations(document, [IncrementField(field=field, delta=delta)])


def apply_operations(document: str, operations: Sequence[FieldOperation]) -> PatchResult:
    """
    Apply operations in order against a working copy of the document.

    Each operation locates its field again in the current text, so it sees the
    effect of the operations before it. The first failure ends the batch and is
    returned on its own; the input text is never partially patched.
    """
    text = document
    for index, op in enumerate(operations):
        try:
            if isinstance(op, SetField):
                outcome = _apply_set(text, op)
            else:
                outcome = _apply_increment(text, op)
        except MalformedDocumentError as e:
            outcome = PatchFailure(kind=FailureKind.MALFORMED_DOCUMENT, message=str(e), field=op.field)

        if isinstance(outcome, PatchFailure):
            failure = outcome.model_copy(update={"index": index})
            logger.debug(
                "PATCH APPLY: op #%d %s %r failed: %s", index, op.op, op.field, failure.message
            )
            return PatchResult(error=failure)
        text = outcome
    return PatchResult.success(text)


def _splice(document: str, location: FieldLocation, replacement: str) -> str:
    return document[: location.start] + replacement + document[location.end :]


def _not_found(field: str) -> PatchFailure:
    return PatchFailure(
        kind=FailureKind.NOT_FOUND, message=f"field {field!r} not found at the top level", field=field
    )


def _apply_set(document: str, op: SetField) -> str | PatchFailure:
    location = locate_field(document, op.field)
    if location is None:
        return _not_found(op.field)
    # Replacement must be exactly one JSON value.
    if not is_single_value(op.value):
        return PatchFailure(
            kind=FailureKind.MALFORMED_DOCUMENT,
            message=f"value for field {op.field!r} is not a single JSON value: {op.value!r}",
            field=op.field,
        )
    return _splice(document, location, op.value)


def _apply_increment(document: str, op: IncrementField) -> str | PatchFailure:
    location = locate_field(document, op.field)
    if location is None:
        return _not_found(op.field)
    if location.kind not in _INCREMENTABLE:
        return PatchFailure(
            kind=FailureKind.TYPE_MISMATCH,
            message=f"field {op.field!r} holds a {location.kind.value} value, not a number",
            field=op.field,
        )

    current = location.value_text(document)
    quoted = location.kind is ValueKind.NUMERIC_STRING
    if quoted:
        current = current[1:-1]

    try:
        total = add_to_literal(current, op.delta)
    except (OverflowError, ValueError) as e:
        return PatchFailure(
            kind=FailureKind.TYPE_MISMATCH,
            message=f"cannot increment field {op.field!r}: {e}",
            field=op.field,
        )
    return _splice(document, location, f'"{total}"' if quoted else total)


def add_to_literal(literal: str, delta: int | float) -> str:
    """
    Add `delta` to a JSON number literal and return the new literal.

    Integer literals plus integer deltas use exact integer arithmetic; anything
    with a fraction or exponent goes through float addition.
    """
    if isinstance(delta, int) and not any(c in literal for c in ".eE"):
        return str(int(literal) + delta)
    total = float(literal) + delta
    if not math.isfinite(total):
        raise OverflowError(f"{literal} + {delta} is out of range")
    return repr(total)
