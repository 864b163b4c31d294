"""In-process document store: holds the document text and its dirty flag."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from .errors import SaveError

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class DocumentStore:
    """Owns the current document text.

    Listeners are called synchronously, in subscription order, every time
    the contents change.
    """

    def __init__(
        self, contents: str = "", *, file_path: str = "", read_only: bool = False
    ) -> None:
        self.contents: str = contents
        self.has_changes: bool = False
        self.file_path: str = file_path
        self.read_only: bool = read_only
        self._listeners: list[Listener] = []

    @classmethod
    def from_file(cls, file_path: str, *, read_only: bool = False) -> DocumentStore:
        path = Path(file_path)
        contents = path.read_text(encoding="utf-8") if path.exists() else "{}"
        return cls(contents, file_path=file_path, read_only=read_only)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_contents(self, contents: str, has_changes: bool = True) -> None:
        if self.read_only:
            raise SaveError("Document is read-only")
        self.contents = contents
        self.has_changes = has_changes
        for listener in list(self._listeners):
            listener(contents)

    def write_file(self, file_path: str = "") -> str:
        """Write the contents to disk and clear the dirty flag.

        Returns the path written. Raises OSError from the filesystem.
        """
        target = file_path or self.file_path
        if not target:
            raise SaveError("No file name")
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.contents, encoding="utf-8")
        self.file_path = str(path)
        self.has_changes = False
        logger.info("Wrote %s", self.file_path)
        return self.file_path
