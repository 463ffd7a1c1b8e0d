from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class RawJson:
    """Value text that is already valid JSON and should be spliced as-is."""

    text: str


def format_value(value: Any) -> str:
    """
    Turn a native value into the JSON text that replaces a field's value.

    Strings become quoted, escaped JSON strings; containers and pydantic models
    are serialized compactly; numbers, booleans and None become their literals.
    """
    if isinstance(value, RawJson):
        return value.text
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    # bool before int: bool is an int subclass.
    if value is None or isinstance(value, (bool, str)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"cannot represent {value!r} in JSON")
        return json.dumps(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    raise TypeError(f"unsupported value type: {type(value).__name__}")
