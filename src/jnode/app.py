"""Terminal app: browse a JSON document and edit nodes by path."""

from __future__ import annotations

import argparse
import logging
import sys

from rich.syntax import Syntax
from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Input, Static

from ._values import parse_document
from .errors import DocumentParseError, PathResolutionError, SaveError
from .modal import NodeModal
from .path import NodePath, format_path, parse_path, resolve
from .projection import NodeRow, node_rows
from .session import NodeSession
from .store import DocumentStore

logger = logging.getLogger("jnode")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_file: str | None = None, log_level: str = "INFO") -> None:
    """Configure the ``jnode`` logger.

    The terminal belongs to the app, so records only go to *log_file*;
    without one they are dropped.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    else:
        handler = logging.NullHandler()
    logger.addHandler(handler)


def select_node(contents: str, path: NodePath) -> list[NodeRow]:
    """Rows of the node at *path*, or ``[]`` when it cannot be resolved."""
    try:
        return node_rows(resolve(parse_document(contents), path))
    except (DocumentParseError, PathResolutionError) as exc:
        logger.debug("No rows for %s: %s", format_path(path), exc)
        return []


class NodeEditorApp(App):
    """TUI app that shows a document and opens NodeModal for a path."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #document-scroll {
        height: 1fr;
        border: solid $accent;
    }
    #path-input {
        height: auto;
    }
    """

    TITLE = "JSON Node Editor"
    BINDINGS = [("ctrl+s", "write", "Write file"), ("q", "quit", "Quit")]
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        store: DocumentStore,
        initial_path: NodePath | None = None,
        indent: int | None = 2,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.store = store
        self.initial_path = initial_path
        self.session = NodeSession(indent=indent)
        self._last_rows: dict[str, list[NodeRow]] = {}

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with VerticalScroll(id="document-scroll"):
            yield Static(id="document")
        yield Input(
            value=format_path(self.initial_path) if self.initial_path else "$",
            placeholder='$["key"][0]',
            id="path-input",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.store.subscribe(self._on_store_changed)
        self._refresh_document()
        self.query_one("#path-input").focus()
        if self.initial_path is not None:
            self.open_node(self.initial_path)

    def _update_title(self) -> None:
        name = self.store.file_path or "[new]"
        ro = " [RO]" if self.store.read_only else ""
        modified = " [+]" if self.store.has_changes else ""
        self.sub_title = name + ro + modified

    def _refresh_document(self) -> None:
        self.query_one("#document", Static).update(
            Syntax(self.store.contents, "json", line_numbers=True, word_wrap=True)
        )
        self._update_title()

    def _on_store_changed(self, contents: str) -> None:
        self._refresh_document()

    def open_node(self, path: NodePath) -> None:
        key = format_path(path)
        rows = select_node(self.store.contents, path)
        if rows:
            self._last_rows[key] = rows
        else:
            # keep showing the last rows seen for this path
            rows = self._last_rows.get(key, [])
        self.push_screen(NodeModal(self.store, self.session, path, rows))

    # -- Event handlers ----------------------------------------------------

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "path-input":
            return
        try:
            path = parse_path(event.value)
        except PathResolutionError as exc:
            self.notify(f"Invalid path: {exc}", severity="error", timeout=6)
            return
        self.open_node(path)

    def action_write(self) -> None:
        try:
            written = self.store.write_file()
        except SaveError as exc:
            self.notify(str(exc), severity="warning")
            return
        except OSError as exc:
            self.notify(f"Save failed: {exc}", severity="error", timeout=6)
            return
        self._update_title()
        self.notify(f"Saved: {written}", severity="information")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="jnode",
        description="Edit the fields of a JSON node by path",
    )
    parser.add_argument("file", help="JSON file to open")
    parser.add_argument(
        "-p", "--path",
        default=None,
        help='node to open on start, e.g. $["customer"][0]',
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="indent used when writing the document (default: 2)",
    )
    parser.add_argument(
        "-R", "--read-only",
        action="store_true",
        default=False,
        help="open in read-only mode",
    )
    parser.add_argument("--log-file", default=None, help="write a debug log here")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args()

    setup_logging(args.log_file, args.log_level)

    initial_path: NodePath | None = None
    if args.path is not None:
        try:
            initial_path = parse_path(args.path)
        except PathResolutionError as exc:
            print(f"jnode: invalid path: {exc}", file=sys.stderr)
            sys.exit(1)

    try:
        store = DocumentStore.from_file(args.file, read_only=args.read_only)
    except (PermissionError, UnicodeDecodeError) as exc:
        print(f"jnode: {exc}", file=sys.stderr)
        sys.exit(1)

    app = NodeEditorApp(store, initial_path=initial_path, indent=args.indent)
    app.run()


if __name__ == "__main__":
    main()
