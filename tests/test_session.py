"""Tests for NodeSession: read path, edit buffer, save and overlay."""

import json

import pytest

from jnode.errors import SaveError, SessionStateError
from jnode.projection import NodeRow
from jnode.session import NodeSession, OptimisticOverlay, SessionState
from jnode.store import DocumentStore


NESTED = '{"a": {"b": 1, "c": [1, 2]}}'


class FakeStore:
    """Collects commits; can be told to reject them."""

    def __init__(self, reject: bool = False) -> None:
        self.reject = reject
        self.commits: list[tuple[str, bool]] = []

    def set_contents(self, contents: str, has_changes: bool) -> None:
        if self.reject:
            raise SaveError("write rejected")
        self.commits.append((contents, has_changes))


class TestOptimisticOverlay:
    """Empty / Holding states."""

    def test_starts_empty(self):
        overlay = OptimisticOverlay()
        assert overlay.holding is False
        assert overlay.value is None

    def test_hold_and_clear(self):
        overlay = OptimisticOverlay()
        overlay.hold("{}")
        assert overlay.holding is True
        assert overlay.value == "{}"
        overlay.clear()
        assert overlay.holding is False

    def test_clear_when_empty(self):
        overlay = OptimisticOverlay()
        overlay.clear()
        assert overlay.holding is False


class TestReadPath:
    """content() never raises and degrades gracefully."""

    def test_projection_of_object(self):
        session = NodeSession()
        session.open(["a"])
        assert json.loads(session.content(NESTED)) == {"b": 1}
        assert session.key_values(NESTED) == {"b": "1"}

    def test_root_is_projected(self):
        session = NodeSession()
        session.open([])
        assert session.key_values('{"x": 5, "y": {"z": 1}}') == {"x": "5"}

    def test_malformed_document_uses_rows(self):
        session = NodeSession()
        session.open(["a"], [NodeRow("b", 1, "number"), NodeRow("c", [1], "array")])
        assert json.loads(session.content("{not json")) == {"b": 1}

    def test_malformed_document_without_rows(self):
        session = NodeSession()
        session.open(["a"])
        assert session.content("{not json") == "{}"
        assert session.can_edit("{not json") is False

    def test_unresolvable_path_uses_rows(self):
        session = NodeSession()
        session.open(["missing"], [NodeRow(None, 3, "number")])
        assert session.content(NESTED) == "3"

    def test_array_node_not_editable(self):
        session = NodeSession()
        session.open(["a", "c"])
        assert json.loads(session.content(NESTED)) == [1, 2]
        assert session.can_edit(NESTED) is False

    def test_path_text(self):
        session = NodeSession()
        session.open(["customer", 0])
        assert session.path_text == '$["customer"][0]'


class TestEditing:
    """Edit buffer transitions."""

    def test_initial_state(self):
        session = NodeSession()
        assert session.state is SessionState.CLOSED
        assert session.overlay.holding is False

    def test_open(self):
        session = NodeSession()
        session.open(["a"])
        assert session.state is SessionState.JUST_OPENED

    def test_begin_edit_seeds_buffer(self):
        session = NodeSession()
        session.open(["a"])
        assert session.begin_edit(NESTED) == {"b": "1"}
        assert session.state is SessionState.EDITING

    def test_change(self):
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "5")
        assert session.edits == {"b": "5"}

    def test_change_unknown_key(self):
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        with pytest.raises(KeyError):
            session.change("c", "[]")

    def test_change_outside_editing(self):
        session = NodeSession()
        session.open(["a"])
        with pytest.raises(SessionStateError):
            session.change("b", "5")

    def test_begin_edit_when_closed(self):
        session = NodeSession()
        with pytest.raises(SessionStateError):
            session.begin_edit(NESTED)

    def test_cancel_discards(self):
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "9")
        session.cancel()
        assert session.state is SessionState.VIEWING
        assert session.edits == {}
        assert session.begin_edit(NESTED) == {"b": "1"}

    def test_reopen_discards_edits(self):
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "9")
        session.open(["a"])
        assert session.state is SessionState.JUST_OPENED
        assert session.edits == {}

    def test_close(self):
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.close()
        assert session.state is SessionState.CLOSED
        assert session.edits == {}


class TestSave:
    """Merge, write and commit."""

    def test_nested_save(self):
        store = FakeStore()
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "5")
        contents = session.save(NESTED, store.set_contents)
        assert json.loads(contents) == {"a": {"b": 5, "c": [1, 2]}}
        assert store.commits == [(contents, True)]
        assert session.state is SessionState.VIEWING

    def test_root_save(self):
        store = FakeStore()
        session = NodeSession()
        session.open([])
        session.begin_edit('{"x": 5}')
        session.change("x", "hello")
        contents = session.save('{"x": 5}', store.set_contents)
        assert json.loads(contents) == {"x": "hello"}

    def test_save_uses_indent(self):
        store = FakeStore()
        session = NodeSession(indent=4)
        session.open([])
        session.begin_edit('{"x": 5}')
        contents = session.save('{"x": 5}', store.set_contents)
        assert contents == '{\n    "x": 5\n}'

    def test_input_text_unchanged(self):
        store = FakeStore()
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "5")
        document = NESTED
        session.save(document, store.set_contents)
        assert document == '{"a": {"b": 1, "c": [1, 2]}}'

    def test_save_outside_editing(self):
        session = NodeSession()
        session.open(["a"])
        with pytest.raises(SessionStateError):
            session.save(NESTED, FakeStore().set_contents)

    def test_rejected_write_keeps_buffer(self):
        store = FakeStore(reject=True)
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "5")
        with pytest.raises(SaveError):
            session.save(NESTED, store.set_contents)
        assert session.edits == {"b": "5"}
        assert session.state is SessionState.EDITING
        assert session.overlay.holding is False

    def test_commit_os_error_becomes_save_error(self):
        """Non-jnode failures from the commit still surface as SaveError."""

        def commit(contents: str, has_changes: bool) -> None:
            raise OSError("disk full")

        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "5")
        with pytest.raises(SaveError) as info:
            session.save(NESTED, commit)
        assert "disk full" in str(info.value)
        assert isinstance(info.value.__cause__, OSError)
        assert session.edits == {"b": "5"}
        assert session.state is SessionState.EDITING
        assert session.overlay.holding is False

    def test_failing_store_listener_becomes_save_error(self):
        store = DocumentStore(NESTED)

        def listener(contents: str) -> None:
            raise RuntimeError("render failed")

        store.subscribe(listener)
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(store.contents)
        session.change("b", "5")
        with pytest.raises(SaveError):
            session.save(store.contents, store.set_contents)
        assert session.is_editing
        assert session.edits == {"b": "5"}

    def test_unresolvable_path_surfaces(self):
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        with pytest.raises(SaveError) as info:
            session.save('{"other": 1}', FakeStore().set_contents)
        assert "not found" in str(info.value)
        assert session.is_editing

    def test_malformed_document_surfaces(self):
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        with pytest.raises(SaveError):
            session.save("{broken", FakeStore().set_contents)
        assert session.is_editing

    def test_retry_after_failure(self):
        store = FakeStore(reject=True)
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "5")
        with pytest.raises(SaveError):
            session.save(NESTED, store.set_contents)
        store.reject = False
        contents = session.save(NESTED, store.set_contents)
        assert json.loads(contents)["a"]["b"] == 5


class TestOverlayInSession:
    """Optimistic content after a save."""

    def _saved_session(self) -> NodeSession:
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "5")
        session.save(NESTED, FakeStore().set_contents)
        return session

    def test_held_after_save(self):
        session = self._saved_session()
        assert session.overlay.holding is True
        # stale document: the overlay wins
        assert json.loads(session.content(NESTED)) == {"b": 5}

    def test_overlay_matches_fresh_projection(self):
        store = FakeStore()
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(NESTED)
        session.change("b", "5")
        contents = session.save(NESTED, store.set_contents)
        held = session.content(NESTED)
        session.overlay.clear()
        assert session.content(contents) == held

    def test_store_update_does_not_clear(self):
        session = self._saved_session()
        session.content('{"a": {"b": 100}}')
        assert session.overlay.holding is True

    def test_open_clears(self):
        session = self._saved_session()
        session.open(["a"])
        assert session.overlay.holding is False
        assert json.loads(session.content(NESTED)) == {"b": 1}

    def test_close_clears(self):
        session = self._saved_session()
        session.close()
        assert session.overlay.holding is False

    def test_failed_save_keeps_previous_overlay(self):
        session = self._saved_session()
        held = session.overlay.value
        session.begin_edit(NESTED)
        session.change("b", "6")
        with pytest.raises(SaveError):
            session.save(NESTED, FakeStore(reject=True).set_contents)
        assert session.overlay.value == held

    def test_edit_after_save_seeds_from_overlay(self):
        session = self._saved_session()
        assert session.begin_edit(NESTED) == {"b": "5"}


class TestWithDocumentStore:
    """Session committing into the real store."""

    def test_store_receives_contents(self):
        store = DocumentStore(NESTED)
        seen: list[str] = []
        store.subscribe(seen.append)
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(store.contents)
        session.change("b", "5")
        session.save(store.contents, store.set_contents)
        assert store.has_changes is True
        assert json.loads(store.contents) == {"a": {"b": 5, "c": [1, 2]}}
        assert seen == [store.contents]

    def test_read_only_store_rejects(self):
        store = DocumentStore(NESTED, read_only=True)
        session = NodeSession()
        session.open(["a"])
        session.begin_edit(store.contents)
        session.change("b", "5")
        with pytest.raises(SaveError):
            session.save(store.contents, store.set_contents)
        assert store.contents == NESTED
        assert session.edits == {"b": "5"}
