"""Console renderers used by the command line front end."""

from __future__ import annotations

from email import policy
from email import message_from_bytes
import importlib.util
import logging
from pathlib import Path
import sys
from typing import Any, BinaryIO, TextIO

from mime_view.parts.decode import decode_body, decode_text
from mime_view.parts.model import Classification, Part
from mime_view.render.calendar import format_events, parse_events
from mime_view.render.html import extract_links, html_to_text
from mime_view.tree.flatten import part_label, to_human_readable


logger = logging.getLogger(__name__)

SUMMARY_HEADERS = ("From", "To", "Cc", "Date", "Subject")


def image_support_available() -> bool:
    return importlib.util.find_spec("PIL") is not None


def read_body(part: Part, fp: BinaryIO) -> bytes:
    if part.source_end is None or part.source_offset is None:
        return fp.read()
    return fp.read(max(part.source_end - part.source_offset, 0))


class ConsoleTextView:
    name = "text"

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def show_text_part(self, part: Part, fp: BinaryIO) -> None:
        raw = read_body(part, fp)
        if part.classification is Classification.EMBEDDED_MESSAGE:
            self._write(self._format_message(raw))
            return
        if part.classification is Classification.MULTIPART:
            self._write(decode_text(raw, part.charset))
            return
        body = decode_body(raw, part.encoding)
        if part.content_type == "text/calendar":
            summary = self._format_calendar(body)
            if summary:
                self._write(summary)
                return
        text = decode_text(body, part.charset)
        if part.classification is Classification.HTML:
            links = extract_links(text)
            text = html_to_text(text) or ""
            if links:
                text += "\n\nLinks:\n" + "\n".join(f"  {link}" for link in links)
        self._write(text)

    def show_signature_explanation(self, part: Part) -> None:
        status = part.signature_status
        if status is None:
            self._write("Signature has not been checked.")
            return
        lines = [status.summary]
        if status.detail:
            lines.extend(["", status.detail])
        self._write("\n".join(lines))

    def show_mime_part(self, part: Part) -> None:
        lines = [
            f"Content-Type: {part.content_type or 'application/octet-stream'}",
            f"Size: {to_human_readable(part.declared_size)}",
        ]
        label = part_label(part)
        if label:
            lines.append(f"Name: {label}")
        lines.append("")
        lines.append("This part is not shown inline. Save or open it to view its contents.")
        self._write("\n".join(lines))

    def clear(self) -> None:
        self.stream.flush()

    def _format_calendar(self, data: bytes) -> str | None:
        try:
            events = parse_events(data)
        except ValueError as exc:
            logger.warning("Unparseable calendar part: %s", exc)
            return None
        return format_events(events) or None

    def _format_message(self, raw: bytes) -> str:
        message = message_from_bytes(raw, policy=policy.default)
        lines = [f"{key}: {message[key]}" for key in SUMMARY_HEADERS if message[key] is not None]
        body = message.get_body(preferencelist=("plain", "html"))
        if body is not None:
            try:
                content = body.get_content()
            except (LookupError, UnicodeDecodeError):
                content = decode_text(body.get_payload(decode=True) or b"", body.get_content_charset())
            if body.get_content_type() == "text/html":
                content = html_to_text(content) or ""
            lines.extend(["", content.strip()])
        return "\n".join(lines)

    def _write(self, text: str) -> None:
        self.stream.write(text)
        if not text.endswith("\n"):
            self.stream.write("\n")


class ConsoleImageView:
    name = "image"

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def show_image(self, part: Part, artifact_path: Path) -> None:
        try:
            from PIL import Image  # type: ignore
        except Exception as exc:  # pragma: no cover - import guard
            raise RuntimeError("Missing dependency: Pillow") from exc
        with Image.open(artifact_path) as image:
            width, height = image.size
            description = f"{image.format} image, {width}x{height}, mode {image.mode}"
        label = part_label(part) or part.content_type or "image"
        self.stream.write(f"[{label}] {description}\n")

    def clear(self) -> None:
        self.stream.flush()


class ConsoleSurface:
    """Tracks which view is attached; a terminal has no widgets to swap."""

    def __init__(self) -> None:
        self.attached: list[Any] = []
        self.grab_held = False

    def attach(self, handle: Any) -> None:
        self.attached.append(handle)

    def detach(self, handle: Any) -> None:
        if handle in self.attached:
            self.attached.remove(handle)

    def release_grab(self) -> None:
        self.grab_held = False
