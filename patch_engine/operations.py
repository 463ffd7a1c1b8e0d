from __future__ import annotations

from typing import Annotated, Any, Iterable, Literal, Mapping, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, TypeAdapter

from .formatting import format_value

Delta = Union[StrictInt, Annotated[float, Field(strict=True, allow_inf_nan=False)]]


class SetField(BaseModel):
    """Replace a field's value with already-formatted JSON text."""

    model_config = ConfigDict(frozen=True)

    op: Literal["set"] = "set"
    field: str
    value: str


class IncrementField(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["incr"] = "incr"
    field: str
    delta: Delta = 1


FieldOperation = Annotated[Union[SetField, IncrementField], Field(discriminator="op")]

OPERATION_LIST = TypeAdapter(list[FieldOperation])


def set_operations(pairs: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> list[SetField]:
    """Build set operations from native values, formatting each one for splicing."""
    items = pairs.items() if isinstance(pairs, Mapping) else pairs
    return [SetField(field=name, value=format_value(value)) for name, value in items]


def increment_operations(
    pairs: Mapping[str, int | float] | Iterable[str | tuple[str, int | float]],
) -> list[IncrementField]:
    """
    Build increment operations. Accepts a mapping of field -> delta, or an
    iterable mixing bare field names (delta 1) and (field, delta) tuples.
    """
    items = pairs.items() if isinstance(pairs, Mapping) else pairs
    ops: list[IncrementField] = []
    for item in items:
        if isinstance(item, str):
            ops.append(IncrementField(field=item))
        else:
            name, delta = item
            ops.append(IncrementField(field=name, delta=delta))
    return ops


def from_flat_args(op: Literal["set", "incr"], args: Sequence[Any]) -> list[SetField] | list[IncrementField]:
    """
    Convert the variadic `name, value, name, value, ...` calling convention.

    For increments a single lone field name means "increment by 1".
    """
    if op == "incr" and len(args) == 1:
        return [IncrementField(field=args[0])]
    if len(args) % 2 != 0:
        raise ValueError(f"expected name/value pairs, got {len(args)} arguments")
    pairs = list(zip(args[0::2], args[1::2]))
    if op == "set":
        return set_operations(pairs)
    return increment_operations(pairs)
