"""Exceptions raised by the node read/merge/write pipeline."""

from __future__ import annotations


class NodeError(Exception):
    """Base class for all jnode errors."""


class DocumentParseError(NodeError, ValueError):
    """Document text is not valid JSON."""

    def __init__(self, message: str, line: int = 0, col: int = 0) -> None:
        super().__init__(message)
        self.line = line
        self.col = col


class PathResolutionError(NodeError, LookupError):
    """A path segment cannot be applied to the value it points into."""

    def __init__(
        self, message: str, path: list[str | int] | None = None, position: int = -1
    ) -> None:
        super().__init__(message)
        self.path: list[str | int] = list(path or [])
        self.position = position


class EditValueParseError(NodeError, ValueError):
    """An edited field's text is not a JSON literal."""

    def __init__(self, key: str, text: str) -> None:
        super().__init__(f"Invalid JSON value for {key!r}: {text!r}")
        self.key = key
        self.text = text


class SaveError(NodeError):
    """Merging or writing an edit failed."""


class SessionStateError(NodeError):
    """An edit session operation was called in the wrong state."""
