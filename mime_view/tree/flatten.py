"""Flatten the part graph into display rows."""

from __future__ import annotations

from dataclasses import dataclass

from mime_view.parts.model import Part, PartGraph


@dataclass(frozen=True)
class DisplayRow:
    part: int
    parent: int | None


@dataclass(frozen=True)
class RowColumns:
    mime_type: str
    size: str
    name: str


def flatten(graph: PartGraph, root: int = 0) -> list[DisplayRow]:
    """Depth-first, order-preserving walk emitting one row per visible part.

    Envelope-main parts that have a parent are structural and get no row;
    their descendants hang off the nearest emitted ancestor row instead. The
    root is always emitted.
    """
    rows: list[DisplayRow] = []
    if len(graph) == 0:
        return rows
    pending: list[tuple[int, int | None]] = [(root, None)]
    while pending:
        index, display_parent = pending.pop()
        part = graph[index]
        if not part.is_envelope_main or part.parent is None:
            rows.append(DisplayRow(part=index, parent=display_parent))
            display_parent = len(rows) - 1
        pending.extend((child, display_parent) for child in reversed(part.children))
        if part.sub is not None and graph[part.sub].children:
            pending.append((part.sub, display_parent))
    return rows


def part_label(part: Part) -> str:
    if part.signature_status is not None:
        return part.signature_status.summary
    if part.name:
        return part.name
    if part.filename:
        return part.filename
    return ""


def to_human_readable(size: int) -> str:
    if size < 1024:
        return f"{size}B"
    if size >> 10 < 1024:
        return f"{size / 1024:.1f}KB"
    if size >> 20 < 1024:
        return f"{size / (1024 * 1024):.2f}MB"
    return f"{size / (1024 * 1024 * 1024):.2f}GB"


def row_columns(graph: PartGraph, row: DisplayRow) -> RowColumns:
    part = graph[row.part]
    return RowColumns(
        mime_type=part.content_type or "",
        size=to_human_readable(part.declared_size),
        name=part_label(part),
    )


def row_depth(rows: list[DisplayRow], position: int) -> int:
    depth = 0
    parent = rows[position].parent
    while parent is not None:
        depth += 1
        parent = rows[parent].parent
    return depth
