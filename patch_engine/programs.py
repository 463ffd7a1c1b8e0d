from __future__ import annotations

from typing import Callable, Sequence

from .engine import apply_operations
from .errors import FailureKind, PatchResult
from .operations import FieldOperation, IncrementField, SetField

# A patch program receives the current text at a location (None if nothing is
# stored there) and returns (text to write or None, result for the caller).
PatchProgram = Callable[[str | None, Sequence[FieldOperation]], tuple[str | None, PatchResult]]


def _run(
    current: str | None,
    operations: Sequence[FieldOperation],
    expected: type[SetField] | type[IncrementField] | None,
) -> tuple[str | None, PatchResult]:
    if expected is not None:
        for op in operations:
            if not isinstance(op, expected):
                raise TypeError(f"{op.op!r} operation passed to a {expected.__name__} program")
    if current is None:
        return None, PatchResult.failure(FailureKind.NOT_FOUND, "no document stored at this location")

    result = apply_operations(current, operations)
    if not result.ok or result.document == current:
        return None, result
    return result.document, result


def set_fields_program(
    current: str | None, operations: Sequence[FieldOperation]
) -> tuple[str | None, PatchResult]:
    return _run(current, operations, SetField)


def incr_fields_program(
    current: str | None, operations: Sequence[FieldOperation]
) -> tuple[str | None, PatchResult]:
    return _run(current, operations, IncrementField)


def patch_fields_program(
    current: str | None, operations: Sequence[FieldOperation]
) -> tuple[str | None, PatchResult]:
    """Mixed set/increment batch."""
    return _run(current, operations, None)


PROGRAMS: dict[str, PatchProgram] = {
    "set_fields": set_fields_program,
    "incr_fields": incr_fields_program,
    "patch_fields": patch_fields_program,
}
