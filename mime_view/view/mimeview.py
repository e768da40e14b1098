"""Message view: ties the part tree, selection, extraction and signatures together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from mime_view.config import AppConfig
from mime_view.errors import MimeViewError, PreconditionFailed, VerificationUnavailable
from mime_view.extract.extractor import PartExtractor
from mime_view.launch.viewer import build_command, run_viewer
from mime_view.parts.model import Classification, Part, PartGraph
from mime_view.parts.scanner import load_message
from mime_view.render.base import ImageView, TextView
from mime_view.render.console import ConsoleSurface
from mime_view.signature.inspector import SignatureInspector
from mime_view.signature.verifier import SignatureVerifier
from mime_view.storage.artifacts import ArtifactStore
from mime_view.tree.flatten import DisplayRow, flatten
from mime_view.view.controller import ErrorReporter, SelectionController, log_error
from mime_view.view.mode import DisplaySurface, ViewMode, ViewModeMachine


logger = logging.getLogger(__name__)

TEXT_LIKE = {
    Classification.PLAIN_TEXT,
    Classification.HTML,
    Classification.EMBEDDED_MESSAGE,
    Classification.IMAGE,
    Classification.MULTIPART,
}

RowsListener = Callable[[list[DisplayRow]], None]
NamesListener = Callable[[], None]


class MimeView:
    def __init__(
        self,
        config: AppConfig,
        text_view: TextView,
        image_view: ImageView | None = None,
        surface: DisplaySurface | None = None,
        verifier: SignatureVerifier | None = None,
        reporter: ErrorReporter | None = None,
    ) -> None:
        self.config = config
        self.text_view = text_view
        if not config.image_preview:
            image_view = None
        self.store = ArtifactStore(config.tmp_dir)
        self.extractor = PartExtractor(self.store)
        self.surface = surface or ConsoleSurface()
        self.modes = ViewModeMachine(self.surface, text_view, image_view)
        self.reporter = reporter or log_error
        self.controller = SelectionController(
            self.modes,
            text_view,
            self.extractor,
            image_view=image_view,
            reporter=self.reporter,
        )
        self.inspector = SignatureInspector(verifier) if verifier is not None else None
        self.graph: PartGraph | None = None
        self.source_path: Path | None = None
        self.rows: list[DisplayRow] = []
        self.rows_listeners: list[RowsListener] = []
        self.names_listeners: list[NamesListener] = []

    @property
    def open_part(self) -> Part | None:
        if self.graph is None or self.controller.open_part is None:
            return None
        return self.graph[self.controller.open_part]

    @property
    def open_position(self) -> int | None:
        index = self.controller.open_part
        for position, row in enumerate(self.rows):
            if row.part == index:
                return position
        return None

    def show_message(self, path: str | Path, select_first: bool = True) -> list[DisplayRow]:
        self.clear()
        source = Path(path)
        graph = load_message(source)
        self.graph = graph
        self.source_path = source

        if self.inspector is not None:
            self.inspector.mark_unchecked(graph)
            if self.config.auto_check_signatures and self.inspector.is_signed(graph, source, 0):
                try:
                    self.inspector.check_signature(graph, source, 0)
                except MimeViewError as exc:
                    self.reporter(f"Signature check failed: {exc}")

        self.controller.bind(graph, source)
        with self.controller.notifications_blocked():
            self.rows = flatten(graph)
            for listener in self.rows_listeners:
                listener(self.rows)
        if self.rows and select_first:
            self.controller.select(self.rows[0].part)
        logger.info("Showing %s with %d rows", source, len(self.rows))
        return self.rows

    def clear(self) -> None:
        self.graph = None
        self.source_path = None
        self.rows = []
        self.controller.bind(None, None)
        self.text_view.clear()

    def row_selected(self, position: int) -> bool:
        return self.controller.on_row_selected(self.rows[position].part)

    def select_row(self, position: int) -> bool:
        if not 0 <= position < len(self.rows):
            raise IndexError(f"row {position} out of range (0-{len(self.rows) - 1})")
        return self.controller.select(self.rows[position].part)

    def select_next(self) -> bool:
        position = self.open_position
        if position is None or position + 1 >= len(self.rows):
            return False
        return self.select_row(position + 1)

    def select_prev(self) -> bool:
        position = self.open_position
        if position is None or position == 0:
            return False
        return self.select_row(position - 1)

    def display_as_text(self) -> bool:
        return self.controller.display_as_text()

    def menu_state(self) -> set[str]:
        part = self.open_part
        if part is None:
            return set()
        actions = {"save_as"}
        if part.classification is not Classification.OCTET_STREAM:
            actions.add("open")
        if part.classification not in TEXT_LIKE:
            actions.add("display_as_text")
        if self.is_signed():
            actions.add("check_signature")
        return actions

    def save_as(self, target: str | Path, confirm_overwrite: Callable[[Path], bool] | None = None) -> Path | None:
        """Save the open part; returns ``None`` if the user declined to overwrite."""
        part = self.open_part
        if part is None or self.source_path is None:
            return None
        path = Path(target)
        if path.exists():
            if confirm_overwrite is None or not confirm_overwrite(path):
                logger.info("Not overwriting %s", path)
                return None
        return self.extractor.extract(self.source_path, part, target=path, overwrite=True)

    def launch(self, cmdline: str | None = None) -> bool:
        part = self.open_part
        if part is None or self.source_path is None:
            return False
        with self.store.temporary(part) as path:
            argv = build_command(part, path, self.config, cmdline)
            if argv is None:
                logger.info("No viewer for %s", part.content_type)
                return False
            self.extractor.extract(self.source_path, part, target=path)
            run_viewer(argv)
        return True

    def open_with(self, cmdline: str) -> bool:
        return self.launch(cmdline)

    def drag_uri(self) -> str | None:
        part = self.open_part
        if part is None or self.source_path is None:
            return None
        path = self.store.export_path_for(part)
        if path is None:
            return None
        self.extractor.extract(self.source_path, part, target=path, overwrite=True)
        return path.resolve().as_uri()

    def is_signed(self) -> bool:
        if self.inspector is None:
            return False
        return self.inspector.is_signed(self.graph, self.source_path, self.controller.open_part)

    def check_signature(self) -> None:
        if self.inspector is None:
            raise VerificationUnavailable("No signature verifier is configured")
        if self.graph is None or self.source_path is None or self.controller.open_part is None:
            raise PreconditionFailed("No part is open")
        self.inspector.check_signature(self.graph, self.source_path, self.controller.open_part)
        for listener in self.names_listeners:
            listener()
        part = self.open_part
        if part is not None and part.classification is Classification.SIGNATURE:
            self.modes.set_mode(ViewMode.TEXT)
            self.text_view.show_signature_explanation(part)
