"""Path addressing: resolve, write back, and display node paths."""

from __future__ import annotations

import copy
import json
import logging

from ._values import ValueKind, kind_of
from .errors import PathResolutionError

logger = logging.getLogger(__name__)

NodePath = list[str | int]


def format_path(path: NodePath | None) -> str:
    """Render a path in bracket notation, e.g. ``$["customer"][0]``.

    The root (empty or missing path) renders as ``$``.
    """
    if not path:
        return "$"
    parts: list[str] = []
    for seg in path:
        if isinstance(seg, int) and not isinstance(seg, bool):
            parts.append(f"[{seg}]")
        else:
            parts.append("[" + json.dumps(str(seg), ensure_ascii=False) + "]")
    return "$" + "".join(parts)


def parse_path(text: str) -> NodePath:
    """Parse bracket notation (and ``.key`` shorthand) back into a path.

    Accepts ``$``, ``$["a"][0]``, ``$['a']`` and ``$.a[0]``.
    """
    text = text.strip()
    if not text.startswith("$"):
        raise PathResolutionError("Path must start with $")

    rest = text[1:]
    path: NodePath = []
    pos = 0
    decoder = json.JSONDecoder()
    while pos < len(rest):
        ch = rest[pos]
        if ch == ".":
            end = pos + 1
            while end < len(rest) and rest[end] not in ".[":
                end += 1
            key = rest[pos + 1 : end]
            if not key:
                raise PathResolutionError(f"Empty key at offset {pos + 1}", path)
            path.append(key)
            pos = end
        elif ch == "[":
            inner = pos + 1
            if rest.startswith('"', inner):
                try:
                    key, end = decoder.raw_decode(rest, inner)
                except json.JSONDecodeError as e:
                    raise PathResolutionError(f"Bad quoted key: {e.msg}", path) from e
                path.append(key)
            elif rest.startswith("'", inner):
                close = rest.find("'", inner + 1)
                if close == -1:
                    raise PathResolutionError("Unclosed quote", path)
                path.append(rest[inner + 1 : close])
                end = close + 1
            else:
                end = rest.find("]", inner)
                if end == -1:
                    raise PathResolutionError("Unclosed bracket", path)
                token = rest[inner:end].strip()
                if token.isdigit():
                    path.append(int(token))
                elif token:
                    path.append(token)
                else:
                    raise PathResolutionError("Empty brackets", path)
            if not rest.startswith("]", end):
                raise PathResolutionError("Unclosed bracket", path)
            pos = end + 1
        else:
            raise PathResolutionError(f"Unexpected {ch!r} at offset {pos + 1}", path)
    return path


def _step(current: object, seg: str | int, path: NodePath, position: int) -> object:
    """Index one level down, or raise PathResolutionError."""
    kind = kind_of(current)
    where = format_path(path[:position])
    if isinstance(seg, bool):
        raise PathResolutionError(
            f"Invalid segment {seg!r} at {where}", path, position
        )
    if isinstance(seg, str):
        if kind is not ValueKind.OBJECT:
            raise PathResolutionError(
                f"Cannot read key {seg!r}: {where} is {kind.name.lower()}",
                path,
                position,
            )
        if seg not in current:  # type: ignore[operator]
            raise PathResolutionError(f"Key {seg!r} not found at {where}", path, position)
        return current[seg]  # type: ignore[index]
    if kind is not ValueKind.ARRAY:
        raise PathResolutionError(
            f"Cannot read index {seg}: {where} is {kind.name.lower()}", path, position
        )
    if not 0 <= seg < len(current):  # type: ignore[arg-type]
        raise PathResolutionError(
            f"Index {seg} out of range at {where}", path, position
        )
    return current[seg]  # type: ignore[index]


def resolve(document: object, path: NodePath | None) -> object:
    """Walk *document* along *path*, left to right, and return the node."""
    current = document
    path = list(path or [])
    for i, seg in enumerate(path):
        current = _step(current, seg, path, i)
    return current


def write(document: object, path: NodePath | None, value: object) -> object:
    """Return a new document with the node at *path* replaced by *value*.

    An empty path returns *value* itself. The input document is not mutated.
    """
    path = list(path or [])
    if not path:
        return value

    result = copy.deepcopy(document)
    parent = result
    for i, seg in enumerate(path[:-1]):
        parent = _step(parent, seg, path, i)

    last = path[-1]
    position = len(path) - 1
    kind = kind_of(parent)
    if isinstance(last, str) and kind is ValueKind.OBJECT:
        parent[last] = value  # type: ignore[index]
    elif (
        isinstance(last, int)
        and not isinstance(last, bool)
        and kind is ValueKind.ARRAY
    ):
        if not 0 <= last < len(parent):  # type: ignore[arg-type]
            raise PathResolutionError(
                f"Index {last} out of range at {format_path(path[:position])}",
                path,
                position,
            )
        parent[last] = value  # type: ignore[index]
    else:
        raise PathResolutionError(
            f"Cannot write {last!r}: {format_path(path[:position])} "
            f"is {kind.name.lower()}",
            path,
            position,
        )
    logger.debug("Replaced node at %s", format_path(path))
    return result
