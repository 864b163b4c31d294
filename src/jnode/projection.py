"""Leaf-only projection of a node and merging of edited leaves."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from ._values import ValueKind, is_compound, kind_of, loads_strict, scalar_text
from .errors import EditValueParseError, SaveError

logger = logging.getLogger(__name__)

Projection = dict[str, str]


@dataclass
class NodeRow:
    """One displayed row of a selected node, as the selection side sees it."""

    key: str | None
    value: object
    type: str  # ValueKind name, lower case


def project(node: object) -> Projection:
    """Return the editable primitive fields of *node* as text.

    Only object nodes have fields; arrays and bare scalars project to ``{}``.
    """
    if kind_of(node) is not ValueKind.OBJECT:
        return {}
    return {
        key: scalar_text(value)
        for key, value in node.items()  # type: ignore[union-attr]
        if not is_compound(value)
    }


def _primitive_fields(node: dict) -> dict:
    return {key: value for key, value in node.items() if not is_compound(value)}


def render_node(node: object, indent: int | None = 2) -> str:
    """Display text for a node: objects lose their compound fields."""
    if kind_of(node) is ValueKind.OBJECT:
        node = _primitive_fields(node)  # type: ignore[arg-type]
    return json.dumps(node, indent=indent, ensure_ascii=False)


def parse_key_values(content: str) -> Projection:
    """Turn display text back into a projection; ``{}`` if it is not an object."""
    try:
        parsed = loads_strict(content)
    except ValueError:
        return {}
    return project(parsed)


def node_rows(node: object) -> list[NodeRow]:
    """Build display rows for a node.

    Objects give one keyed row per field, scalars a single unkeyed row,
    arrays no rows.
    """
    kind = kind_of(node)
    if kind is ValueKind.OBJECT:
        return [
            NodeRow(key, value, kind_of(value).name.lower())
            for key, value in node.items()  # type: ignore[union-attr]
        ]
    if kind is ValueKind.ARRAY:
        return []
    return [NodeRow(None, node, kind.name.lower())]


def normalize_rows(rows: list[NodeRow] | None, indent: int | None = 2) -> str:
    """Fallback display text built from rows when the document is unusable."""
    if not rows:
        return "{}"
    if len(rows) == 1 and rows[0].key is None:
        return scalar_text(rows[0].value)

    obj = {}
    for row in rows:
        if row.type not in ("array", "object") and row.key is not None:
            obj[row.key] = row.value
    return json.dumps(obj, indent=indent, ensure_ascii=False)


def parse_edit_value(key: str, text: str) -> object:
    """Reinterpret edited text as a JSON literal, or raise EditValueParseError."""
    try:
        return loads_strict(text)
    except ValueError as e:
        raise EditValueParseError(key, text) from e


def merge(node: object, edits: dict[str, str]) -> dict:
    """Apply edited field texts to a shallow copy of an object node.

    Text that is not a JSON literal is stored as a plain string.
    """
    kind = kind_of(node)
    if kind is not ValueKind.OBJECT:
        raise SaveError(f"Cannot edit fields of {kind.name.lower()} node")

    merged = dict(node)  # type: ignore[call-overload]
    for key, text in edits.items():
        try:
            merged[key] = parse_edit_value(key, text)
        except EditValueParseError:
            merged[key] = text
    logger.debug("Merged %d edited field(s)", len(edits))
    return merged
