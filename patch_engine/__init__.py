from __future__ import annotations

from .engine import add_to_literal, apply_operations, increment_field, set_field
from .errors import (
    ConcurrentModificationError,
    FailureKind,
    MalformedDocumentError,
    PatchFailedError,
    PatchFailure,
    PatchResult,
    ProgramRegistrationError,
    TransportError,
    WrongTypeError,
)
from .formatting import RawJson, format_value
from .operations import (
    FieldOperation,
    IncrementField,
    SetField,
    from_flat_args,
    increment_operations,
    set_operations,
)
from .scanner import FieldLocation, ValueKind, classify, is_single_value, iter_fields, locate_field

__all__ = [
    "add_to_literal",
    "apply_operations",
    "increment_field",
    "set_field",
    "ConcurrentModificationError",
    "FailureKind",
    "MalformedDocumentError",
    "PatchFailedError",
    "PatchFailure",
    "PatchResult",
    "ProgramRegistrationError",
    "TransportError",
    "WrongTypeError",
    "RawJson",
    "format_value",
    "FieldOperation",
    "IncrementField",
    "SetField",
    "from_flat_args",
    "increment_operations",
    "set_operations",
    "FieldLocation",
    "ValueKind",
    "classify",
    "is_single_value",
    "iter_fields",
    "locate_field",
]
