"""Edit session for one selected node: read path, edit buffer, save."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum, auto

from ._values import dump_document, parse_document
from .errors import (
    DocumentParseError,
    NodeError,
    PathResolutionError,
    SaveError,
    SessionStateError,
)
from .path import NodePath, format_path, resolve, write
from .projection import (
    NodeRow,
    Projection,
    merge,
    normalize_rows,
    parse_key_values,
    render_node,
)

logger = logging.getLogger(__name__)

# commit(contents, has_changes)
Commit = Callable[[str, bool], None]


class SessionState(Enum):
    CLOSED = auto()
    JUST_OPENED = auto()
    VIEWING = auto()
    EDITING = auto()


class OptimisticOverlay:
    """Last locally rendered content, shown until the next session opens."""

    def __init__(self) -> None:
        self._value: str | None = None

    @property
    def holding(self) -> bool:
        return self._value is not None

    @property
    def value(self) -> str | None:
        return self._value

    def hold(self, value: str) -> None:
        self._value = value

    def clear(self) -> None:
        self._value = None


class NodeSession:
    """State machine behind the node modal.

    CLOSED -> open -> JUST_OPENED -> begin_edit -> EDITING
    EDITING -> cancel / save -> VIEWING -> begin_edit -> EDITING
    Any state -> open -> JUST_OPENED, any state -> close -> CLOSED.

    The document is never stored: every read and the save take the current
    document text as an argument.
    """

    def __init__(self, *, indent: int | None = 2) -> None:
        self.indent = indent
        self.state: SessionState = SessionState.CLOSED
        self.path: NodePath = []
        self.rows: list[NodeRow] = []
        self.overlay = OptimisticOverlay()
        self._edits: dict[str, str] = {}

    # -- Helpers -----------------------------------------------------------

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            names = ", ".join(s.name for s in states)
            raise SessionStateError(
                f"Expected session state {names}, got {self.state.name}"
            )

    @property
    def is_editing(self) -> bool:
        return self.state is SessionState.EDITING

    @property
    def edits(self) -> Projection:
        """Copy of the edit buffer (empty unless editing)."""
        return dict(self._edits)

    @property
    def path_text(self) -> str:
        return format_path(self.path)

    # -- Transitions -------------------------------------------------------

    def open(self, path: NodePath | None, rows: list[NodeRow] | None = None) -> None:
        """Start a session on *path*, discarding any unsaved edits."""
        if self._edits:
            logger.debug("Discarding %d unsaved edit(s)", len(self._edits))
        self.path = list(path or [])
        self.rows = list(rows or [])
        self._edits = {}
        self.overlay.clear()
        self.state = SessionState.JUST_OPENED

    def close(self) -> None:
        self._edits = {}
        self.overlay.clear()
        self.state = SessionState.CLOSED

    def begin_edit(self, document_text: str) -> Projection:
        self._require(SessionState.JUST_OPENED, SessionState.VIEWING)
        self._edits = self.key_values(document_text)
        self.state = SessionState.EDITING
        return self.edits

    def change(self, key: str, text: str) -> None:
        self._require(SessionState.EDITING)
        if key not in self._edits:
            raise KeyError(key)
        self._edits[key] = text

    def cancel(self) -> None:
        self._require(SessionState.EDITING)
        self._edits = {}
        self.state = SessionState.VIEWING

    def save(self, document_text: str, commit: Commit) -> str:
        """Merge the edit buffer into the document and hand it to *commit*.

        Returns the new document text. On failure raises SaveError and
        leaves the buffer, the EDITING state and the overlay untouched.
        """
        self._require(SessionState.EDITING)
        try:
            document = parse_document(document_text)
            node = resolve(document, self.path)
            merged = merge(node, self._edits)
            contents = dump_document(write(document, self.path, merged), self.indent)
        except NodeError as e:
            raise SaveError(str(e)) from e

        try:
            commit(contents, True)
        except SaveError:
            raise
        except Exception as e:
            logger.debug("Commit rejected for %s: %s", self.path_text, e)
            raise SaveError(str(e) or type(e).__name__) from e

        self.overlay.hold(render_node(merged, self.indent))
        self._edits = {}
        self.state = SessionState.VIEWING
        logger.info("Saved node at %s", self.path_text)
        return contents

    # -- Read path ---------------------------------------------------------

    def content(self, document_text: str) -> str:
        """Display text for the current node. Never raises."""
        if self.overlay.holding:
            return self.overlay.value  # type: ignore[return-value]
        try:
            node = resolve(parse_document(document_text), self.path)
        except (DocumentParseError, PathResolutionError) as e:
            logger.debug("Falling back to row view for %s: %s", self.path_text, e)
            return normalize_rows(self.rows, self.indent)
        return render_node(node, self.indent)

    def key_values(self, document_text: str) -> Projection:
        return parse_key_values(self.content(document_text))

    def can_edit(self, document_text: str) -> bool:
        return bool(self.key_values(document_text))
