from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from .errors import MalformedDocumentError

# JSON number grammar: optional minus, integer part without leading zeros,
# optional fraction, optional exponent.
NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")

_WHITESPACE = " \t\n\r"
_CLOSERS = {"{": "}", "[": "]"}
_LITERALS = ("true", "false", "null")


class ValueKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    NUMERIC_STRING = "numeric_string"
    OTHER = "other"


@dataclass(frozen=True)
class FieldLocation:
    """Half-open span [start, end) of a top-level field's value."""

    start: int
    end: int
    kind: ValueKind

    def value_text(self, document: str) -> str:
        return document[self.start : self.end]


def classify(value_text: str) -> ValueKind:
    if len(value_text) >= 2 and value_text[0] == '"':
        if NUMBER_RE.fullmatch(value_text[1:-1]):
            return ValueKind.NUMERIC_STRING
        return ValueKind.STRING
    if value_text and (value_text[0] == "-" or value_text[0].isdigit()):
        return ValueKind.NUMBER
    return ValueKind.OTHER


def locate_field(document: str, field: str) -> FieldLocation | None:
    """
    Find the value of a top-level field.

    Only keys of the outermost object are compared; a key with the same name
    inside a nested object or array is skipped over with the rest of that value.
    Returns None when the field is not present at the top level. If the key is
    duplicated, the first occurrence wins.
    """
    for key, location in iter_fields(document):
        if key == field:
            return location
    return None


def iter_fields(document: str) -> Iterator[tuple[str, FieldLocation]]:
    """Yield (decoded key, value location) for each top-level field, in order."""
    n = len(document)
    pos = _skip_ws(document, 0)
    if pos >= n or document[pos] != "{":
        raise MalformedDocumentError("document is not a JSON object", pos)
    pos = _skip_ws(document, pos + 1)
    if pos < n and document[pos] == "}":
        return

    while True:
        if pos >= n or document[pos] != '"':
            raise MalformedDocumentError("expected an object key", pos)
        key_end = _scan_string(document, pos)
        key = _decode_key(document[pos + 1 : key_end - 1], pos)

        pos = _skip_ws(document, key_end)
        if pos >= n or document[pos] != ":":
            raise MalformedDocumentError("expected ':' after key", pos)

        start = _skip_ws(document, pos + 1)
        end = _scan_value(document, start)
        yield key, FieldLocation(start, end, classify(document[start:end]))

        pos = _skip_ws(document, end)
        if pos >= n:
            raise MalformedDocumentError("unterminated object", pos)
        if document[pos] == "}":
            return
        if document[pos] != ",":
            raise MalformedDocumentError("expected ',' or '}'", pos)
        pos = _skip_ws(document, pos + 1)


def is_single_value(text: str) -> bool:
    """True if `text` holds exactly one JSON value, surrounding whitespace allowed."""
    try:
        end = _scan_value(text, _skip_ws(text, 0))
    except MalformedDocumentError:
        return False
    return _skip_ws(text, end) == len(text)


def _skip_ws(document: str, pos: int) -> int:
    n = len(document)
    while pos < n and document[pos] in _WHITESPACE:
        pos += 1
    return pos


def _scan_value(document: str, pos: int) -> int:
    if pos >= len(document):
        raise MalformedDocumentError("missing value", pos)
    c = document[pos]
    if c == '"':
        return _scan_string(document, pos)
    if c in _CLOSERS:
        return _scan_nested(document, pos)
    if c == "-" or c.isdigit():
        m = NUMBER_RE.match(document, pos)
        if m is None:
            raise MalformedDocumentError("invalid number", pos)
        return m.end()
    for literal in _LITERALS:
        if document.startswith(literal, pos):
            return pos + len(literal)
    raise MalformedDocumentError(f"unexpected character {c!r}", pos)


def _scan_string(document: str, pos: int) -> int:
    """`pos` is the opening quote; returns the offset just past the closing quote."""
    n = len(document)
    i = pos + 1
    while i < n:
        c = document[i]
        if c == "\\":
            i += 2
            continue
        if c == '"':
            return i + 1
        i += 1
    raise MalformedDocumentError("unterminated string", pos)


def _scan_nested(document: str, pos: int) -> int:
    n = len(document)
    expected: list[str] = []
    i = pos
    while i < n:
        c = document[i]
        if c == '"':
            i = _scan_string(document, i)
            continue
        if c in _CLOSERS:
            expected.append(_CLOSERS[c])
        elif c == "}" or c == "]":
            if not expected or expected.pop() != c:
                raise MalformedDocumentError(f"unbalanced {c!r}", i)
            if not expected:
                return i + 1
        i += 1
    raise MalformedDocumentError("unbalanced brackets", pos)


def _decode_key(raw: str, pos: int) -> str:
    if "\\" not in raw:
        return raw
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"invalid escape in key: {e.msg}", pos) from e
