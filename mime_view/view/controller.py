"""Selection handling: which part is open and how it gets displayed."""

from __future__ import annotations

from contextlib import contextmanager
import logging
import os
from pathlib import Path
from typing import Callable, Iterator

from mime_view.errors import MimeViewError, MissingBody, SourceUnreadable
from mime_view.extract.extractor import PartExtractor
from mime_view.parts.model import Classification, Part, PartGraph
from mime_view.render.base import ImageView, TextView
from mime_view.storage.artifacts import discard
from mime_view.view.mode import ViewMode, ViewModeMachine


logger = logging.getLogger(__name__)

SelectionListener = Callable[[Part], None]
ErrorReporter = Callable[[str], None]


def log_error(message: str) -> None:
    logger.error(message)


class SelectionController:
    def __init__(
        self,
        modes: ViewModeMachine,
        text_view: TextView,
        extractor: PartExtractor,
        image_view: ImageView | None = None,
        reporter: ErrorReporter | None = None,
    ) -> None:
        self.modes = modes
        self.text_view = text_view
        self.image_view = image_view
        self.extractor = extractor
        self.reporter = reporter or log_error
        self.graph: PartGraph | None = None
        self.source_path: Path | None = None
        self.open_part: int | None = None
        self.listeners: list[SelectionListener] = []
        self._blocked = 0

    def bind(self, graph: PartGraph | None, source_path: str | Path | None) -> None:
        self.graph = graph
        self.source_path = Path(source_path) if source_path is not None else None
        self.reset()

    def reset(self) -> None:
        self.open_part = None

    @contextmanager
    def notifications_blocked(self) -> Iterator[None]:
        self._blocked += 1
        try:
            yield
        finally:
            self._blocked -= 1

    def on_row_selected(self, index: int) -> bool:
        """Entry point for selection-change notifications from the tree."""
        if self._blocked:
            return False
        return self.select(index)

    def select(self, index: int) -> bool:
        if self.graph is None:
            return False
        if index == self.open_part:
            return False
        self.open_part = index
        self.modes.surface.release_grab()

        part = self.graph[index]
        for listener in self.listeners:
            listener(part)
        DISPATCH[part.classification](self, part)
        return True

    def display_as_text(self) -> bool:
        if self.graph is None or self.open_part is None:
            return False
        self.show_message_part(self.graph[self.open_part])
        return True

    def show_message_part(self, part: Part) -> None:
        if part.source_offset is None:
            self._report(MissingBody(f"Part {part.index} has no body to display"))
            return
        source = self.text_source(part)
        if source is None:
            return
        try:
            with open(source, "rb") as handle:
                size = handle.seek(0, os.SEEK_END)
                if part.source_offset > size:
                    raise SourceUnreadable(f"Offset {part.source_offset} is past the end of {source}", path=source)
                handle.seek(part.source_offset)
                self.modes.set_mode(ViewMode.TEXT)
                self.text_view.show_text_part(part, handle)
        except OSError as exc:
            self._report(SourceUnreadable(f"Cannot read {source}: {exc}", path=source))
        except MimeViewError as exc:
            self._report(exc)

    def show_image_part(self, part: Part) -> None:
        if self.image_view is None:
            self._report(MimeViewError(f"No image viewer available for {part.content_type}"))
            return
        if self.source_path is None:
            return
        try:
            path = self.extractor.extract(self.source_path, part)
        except MimeViewError as exc:
            self._report(exc, "Can't get the part of multipart message")
            return
        try:
            self.image_view.show_image(part, path)
            self.modes.set_mode(ViewMode.IMAGE)
        except OSError as exc:
            self._report(MimeViewError(f"Cannot display image: {exc}"))
        finally:
            discard(path)

    def show_signature_part(self, part: Part) -> None:
        self.modes.set_mode(ViewMode.TEXT)
        self.text_view.show_signature_explanation(part)

    def show_mime_part(self, part: Part) -> None:
        self.modes.set_mode(ViewMode.TEXT)
        self.text_view.show_mime_part(part)

    def text_source(self, part: Part) -> Path | None:
        """Nearest decoded plaintext artifact of an ancestor, else the message file."""
        if self.graph is not None:
            for ancestor in self.graph.ancestors(part.index):
                if ancestor.plaintext_file is not None:
                    return ancestor.plaintext_file
        return self.source_path

    def _report(self, exc: MimeViewError, prefix: str | None = None) -> None:
        message = f"{prefix}: {exc}" if prefix else str(exc)
        logger.warning("Selection dispatch failed: %s", message)
        self.reporter(message)


DISPATCH: dict[Classification, Callable[[SelectionController, Part], None]] = {
    Classification.PLAIN_TEXT: SelectionController.show_message_part,
    Classification.HTML: SelectionController.show_message_part,
    Classification.EMBEDDED_MESSAGE: SelectionController.show_message_part,
    Classification.MULTIPART: SelectionController.show_message_part,
    Classification.IMAGE: SelectionController.show_image_part,
    Classification.SIGNATURE: SelectionController.show_signature_part,
    Classification.AUDIO: SelectionController.show_mime_part,
    Classification.OCTET_STREAM: SelectionController.show_mime_part,
    Classification.OTHER: SelectionController.show_mime_part,
}
