"""Modal screen for viewing and editing one node of the document."""

from __future__ import annotations

from rich.syntax import Syntax
from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from .errors import SaveError
from .path import NodePath
from .projection import NodeRow
from .session import NodeSession
from .store import DocumentStore


class NodeModal(ModalScreen[None]):
    """Shows a node's primitive fields and lets the user edit them.

    All state lives in the NodeSession; this screen only renders it and
    forwards button presses and input changes.
    """

    DEFAULT_CSS = """
    NodeModal {
        align: center middle;
    }
    #node-dialog {
        width: auto;
        min-width: 50;
        max-width: 90;
        height: auto;
        max-height: 90%;
        padding: 0 1;
        background: $surface;
        border: solid $accent;
    }
    #node-header {
        height: auto;
    }
    #node-content-title {
        width: 1fr;
    }
    #node-header Button {
        min-width: 8;
        margin-left: 1;
    }
    #node-body {
        height: auto;
        max-height: 20;
    }
    #node-fields {
        height: auto;
    }
    .field-label {
        color: $text-muted;
        margin-top: 1;
    }
    #node-path-title {
        margin-top: 1;
    }
    """

    BINDINGS = [("escape", "close", "Close")]

    def __init__(
        self,
        store: DocumentStore,
        session: NodeSession,
        path: NodePath,
        rows: list[NodeRow] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.store = store
        self.session = session
        self._path = list(path)
        self._rows = list(rows or [])
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        with Vertical(id="node-dialog"):
            with Horizontal(id="node-header"):
                yield Static("[b]Content[/b]", id="node-content-title")
                yield Button("Edit", id="node-edit", variant="primary")
                yield Button("Save", id="node-save", variant="success")
                yield Button("Cancel", id="node-cancel", variant="error")
                yield Button("✕", id="node-close")
            with VerticalScroll(id="node-body"):
                yield Static(id="node-content")
                yield Vertical(id="node-fields")
            yield Static("[b]JSON Path[/b]", id="node-path-title")
            yield Static(id="node-path")

    def on_mount(self) -> None:
        self.session.open(self._path, self._rows)
        self._unsubscribe = self.store.subscribe(self._on_store_changed)
        self.query_one("#node-path", Static).update(Text(self.session.path_text))
        self._refresh_view()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -- Rendering ---------------------------------------------------------

    def _on_store_changed(self, contents: str) -> None:
        if not self.session.is_editing:
            self._refresh_view()

    def _refresh_view(self) -> None:
        document = self.store.contents
        editing = self.session.is_editing
        content = self.session.content(document)
        self.query_one("#node-content", Static).update(
            Syntax(content, "json", word_wrap=True)
        )
        self.query_one("#node-content").display = not editing
        self.query_one("#node-fields").display = editing
        self.query_one("#node-edit").display = (
            not editing and self.session.can_edit(document)
        )
        self.query_one("#node-save").display = editing
        self.query_one("#node-cancel").display = editing

    async def _show_fields(self) -> None:
        fields = self.query_one("#node-fields", Vertical)
        await fields.remove_children()
        widgets = []
        for key, text in self.session.edits.items():
            widgets.append(Label(Text(key), classes="field-label"))
            widgets.append(Input(value=text, name=key))
        await fields.mount_all(widgets)

    # -- Event handlers ----------------------------------------------------

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "node-edit":
            self.session.begin_edit(self.store.contents)
            await self._show_fields()
            self._refresh_view()
        elif button_id == "node-cancel":
            self.session.cancel()
            await self.query_one("#node-fields", Vertical).remove_children()
            self._refresh_view()
        elif button_id == "node-save":
            await self._save()
        elif button_id == "node-close":
            self.action_close()

    def on_input_changed(self, event: Input.Changed) -> None:
        key = event.input.name
        if self.session.is_editing and key in self.session.edits:
            self.session.change(key, event.value)

    async def _save(self) -> None:
        try:
            self.session.save(self.store.contents, self.store.set_contents)
        except SaveError as exc:
            self.app.notify(str(exc), severity="error", timeout=6)
            return
        self.app.notify("JSON updated successfully", severity="information")
        await self.query_one("#node-fields", Vertical).remove_children()
        self._refresh_view()

    def action_close(self) -> None:
        self.session.close()
        self.dismiss()
