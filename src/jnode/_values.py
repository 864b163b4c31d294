"""JSON value kinds and document text conversion."""

from __future__ import annotations

import json
from enum import Enum, auto

from .errors import DocumentParseError


class ValueKind(Enum):
    NULL = auto()
    BOOL = auto()
    NUMBER = auto()
    STRING = auto()
    ARRAY = auto()
    OBJECT = auto()


_COMPOUND = (ValueKind.ARRAY, ValueKind.OBJECT)


def kind_of(value: object) -> ValueKind:
    """Classify a parsed JSON value.

    ``bool`` is tested before numbers since it subclasses ``int``.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def is_compound(value: object) -> bool:
    return kind_of(value) in _COMPOUND


def scalar_text(value: object) -> str:
    """Canonical editable text of a scalar: strings verbatim, others as literals."""
    if kind_of(value) is ValueKind.STRING:
        return value  # type: ignore[return-value]
    return json.dumps(value, ensure_ascii=False)


def _reject_constant(name: str) -> object:
    raise ValueError(f"{name} is not valid JSON")


def loads_strict(text: str) -> object:
    """``json.loads`` without the NaN/Infinity extensions."""
    return json.loads(text, parse_constant=_reject_constant)


def parse_document(content: str) -> object:
    """Parse document text, raising DocumentParseError on invalid JSON."""
    try:
        return loads_strict(content)
    except json.JSONDecodeError as e:
        raise DocumentParseError(
            f"Invalid JSON: {e.msg} (line {e.lineno}, col {e.colno})",
            line=e.lineno,
            col=e.colno,
        ) from e
    except ValueError as e:
        raise DocumentParseError(f"Invalid JSON: {e}") from e


def dump_document(value: object, indent: int | None = 2) -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False)
