"""Rendering collaborator interfaces."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Protocol

from mime_view.parts.model import Part


class TextView(Protocol):
    def show_text_part(self, part: Part, fp: BinaryIO) -> None:
        ...

    def show_signature_explanation(self, part: Part) -> None:
        ...

    def show_mime_part(self, part: Part) -> None:
        ...

    def clear(self) -> None:
        ...


class ImageView(Protocol):
    def show_image(self, part: Part, artifact_path: Path) -> None:
        ...

    def clear(self) -> None:
        ...
