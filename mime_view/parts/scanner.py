"""Header and multipart structure scanning with byte offsets.

The scanner records where every entity's header block and body live in the
source file so parts can be previewed or extracted later by seeking, without
keeping the decoded message in memory.
"""

from __future__ import annotations

from email import policy
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.message import Message
from email.parser import BytesHeaderParser
from email.utils import collapse_rfc2231_value
import logging
from pathlib import Path
from typing import BinaryIO

from mime_view.errors import SourceUnreadable
from mime_view.parts.model import Classification, Part, PartGraph


logger = logging.getLogger(__name__)

DEFAULT_TYPE = "text/plain"
DIGEST_DEFAULT_TYPE = "message/rfc822"


def load_message(path: str | Path) -> PartGraph:
    source = Path(path)
    graph = PartGraph()
    try:
        with source.open("rb") as handle:
            root = scan_header(graph, handle)
            scan_multipart(graph, root, handle)
    except OSError as exc:
        raise SourceUnreadable(f"Cannot read message file: {exc}", path=source) from exc
    logger.debug("Scanned %s: %d parts", source, len(graph))
    return graph


def scan_header(graph: PartGraph, fp: BinaryIO, parent: int | None = None) -> int:
    """Read a header block at the current position and add it as a part.

    Leaves ``fp`` positioned at the first byte of the body.
    """
    header_offset = fp.tell()
    lines = []
    while True:
        line = fp.readline()
        if not line or line in (b"\n", b"\r\n"):
            break
        lines.append(line)
    body_offset = fp.tell()
    fp.seek(0, 2)
    size = fp.tell()
    fp.seek(body_offset)

    part = part_from_headers(b"".join(lines), DEFAULT_TYPE)
    part.header_offset = header_offset
    part.source_offset = body_offset
    part.source_end = None
    part.declared_size = max(size - body_offset, 0)
    return graph.add(part, parent=parent)


def scan_multipart(graph: PartGraph, index: int, fp: BinaryIO) -> None:
    """Populate the nested structure of ``graph[index]`` from ``fp``.

    ``fp`` must be positioned at the part's body. Parts whose structure is
    already populated are left untouched, so calling this again before a
    signature check is safe.
    """
    part = graph[index]
    if part.children or part.sub is not None:
        return
    if part.classification not in (Classification.MULTIPART, Classification.EMBEDDED_MESSAGE):
        return
    base = fp.tell()
    if part.source_end is not None:
        data = fp.read(max(part.source_end - base, 0))
    else:
        data = fp.read()
    _scan_structure(graph, index, data, 0, len(data), base)


def part_from_headers(raw: bytes, default_type: str) -> Part:
    headers = BytesHeaderParser(policy=policy.compat32).parsebytes(raw)
    headers.set_default_type(default_type)
    content_type = headers.get_content_type().lower()
    encoding = headers.get("Content-Transfer-Encoding")
    return Part(
        content_type=content_type,
        name=_decoded_param(headers, "name"),
        filename=_decoded_filename(headers),
        encoding=encoding.strip().lower() if encoding else None,
        charset=headers.get_content_charset(),
        boundary=headers.get_boundary(),
        protocol=_plain_param(headers, "protocol"),
    )


def _scan_structure(graph: PartGraph, index: int, data: bytes, start: int, end: int, base: int) -> None:
    # Iterative; nesting depth is bounded only by the size of the input.
    pending = list(reversed(_nested_spans(graph[index], data, start, end)))
    while pending:
        parent, sub_start, sub_end, default_type, as_sub = pending.pop()
        body_start = _skip_header_block(data, sub_start, sub_end)
        part = part_from_headers(data[sub_start:body_start], default_type)
        part.header_offset = base + sub_start
        part.source_offset = base + body_start
        part.source_end = base + sub_end
        part.declared_size = sub_end - body_start
        part.is_envelope_main = as_sub
        graph.add(part, parent=parent, as_sub=as_sub)
        pending.extend(reversed(_nested_spans(part, data, body_start, sub_end)))


def _nested_spans(part: Part, data: bytes, start: int, end: int) -> list[tuple[int, int, int, str, bool]]:
    if part.classification is Classification.EMBEDDED_MESSAGE:
        return [(part.index, start, end, DEFAULT_TYPE, True)]
    if part.classification is not Classification.MULTIPART:
        return []
    if not part.boundary:
        logger.warning("Multipart part %d has no boundary; treating it as opaque", part.index)
        return []
    default_type = DIGEST_DEFAULT_TYPE if part.content_type == "multipart/digest" else DEFAULT_TYPE
    spans = _split_multipart(data, start, end, part.boundary.encode("ascii", "replace"))
    return [(part.index, sub_start, sub_end, default_type, False) for sub_start, sub_end in spans]


def _skip_header_block(data: bytes, start: int, end: int) -> int:
    pos = start
    while pos < end:
        newline = data.find(b"\n", pos, end)
        line_end = end if newline == -1 else newline + 1
        if data[pos:line_end] in (b"\n", b"\r\n"):
            return line_end
        pos = line_end
    return end


def _split_multipart(data: bytes, start: int, end: int, boundary: bytes) -> list[tuple[int, int]]:
    delimiter = b"--" + boundary
    spans: list[tuple[int, int]] = []
    part_start: int | None = None
    pos = start
    while pos < end:
        newline = data.find(b"\n", pos, end)
        line_end = end if newline == -1 else newline + 1
        line = data[pos:line_end].rstrip(b"\r\n")
        if line.startswith(delimiter):
            rest = line[len(delimiter):]
            closing = rest.startswith(b"--")
            if closing or not rest.strip():
                if part_start is not None:
                    spans.append((part_start, _trim_line_break(data, part_start, pos)))
                if closing:
                    return spans
                part_start = line_end
        pos = line_end
    if part_start is not None:
        logger.warning("Multipart body ended without closing boundary")
        spans.append((part_start, end))
    return spans


def _trim_line_break(data: bytes, start: int, end: int) -> int:
    # The line break before a delimiter belongs to the delimiter.
    if end > start and data[end - 1:end] == b"\n":
        end -= 1
        if end > start and data[end - 1:end] == b"\r":
            end -= 1
    return end


def _plain_param(headers: Message, param: str) -> str | None:
    value = headers.get_param(param)
    if value is None:
        return None
    return collapse_rfc2231_value(value).lower()


def _decoded_param(headers: Message, param: str) -> str | None:
    value = headers.get_param(param)
    if value is None:
        return None
    return _decode_words(collapse_rfc2231_value(value))


def _decoded_filename(headers: Message) -> str | None:
    value = headers.get_param("filename", header="content-disposition")
    if value is None:
        return None
    return _decode_words(collapse_rfc2231_value(value))


def _decode_words(value: str) -> str:
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, UnicodeDecodeError):
        return value
