"""Materialize a single part of the source message as a decoded file."""

from __future__ import annotations

import logging
from pathlib import Path
import os
import tempfile

from mime_view.errors import ArtifactWriteFailure, MissingBody, SourceUnreadable
from mime_view.parts.decode import decode_body
from mime_view.parts.model import Part
from mime_view.storage.artifacts import ArtifactStore


logger = logging.getLogger(__name__)


class PartExtractor:
    def __init__(self, store: ArtifactStore) -> None:
        self.store = store

    def extract(
        self,
        source_path: str | Path,
        part: Part,
        target: str | Path | None = None,
        overwrite: bool = False,
    ) -> Path:
        """Decode ``part`` out of ``source_path`` into a new file.

        Without ``target`` the artifact store picks a unique temporary name.
        An existing ``target`` is only replaced when ``overwrite`` is set.
        """
        if not part.has_body:
            raise MissingBody(f"Part {part.index} ({part.content_type}) has no body to extract")
        raw = read_part_body(source_path, part)
        decoded = decode_body(raw, part.encoding)
        path = Path(target) if target is not None else self.store.tmp_path_for(part)
        write_artifact(path, decoded, overwrite=overwrite)
        logger.info("Extracted part %d (%d bytes) to %s", part.index, len(decoded), path)
        return path


def read_part_body(source_path: str | Path, part: Part) -> bytes:
    if part.source_offset is None:
        raise MissingBody(f"Part {part.index} has no source offset")
    try:
        with open(source_path, "rb") as handle:
            size = handle.seek(0, os.SEEK_END)
            if part.source_offset > size:
                raise SourceUnreadable(
                    f"Offset {part.source_offset} is past the end of {source_path} ({size} bytes)",
                    path=source_path,
                )
            handle.seek(part.source_offset)
            if part.source_end is None:
                return handle.read()
            return handle.read(max(part.source_end - part.source_offset, 0))
    except OSError as exc:
        raise SourceUnreadable(f"Cannot read {source_path}: {exc}", path=source_path) from exc


def write_artifact(path: Path, data: bytes, overwrite: bool = False) -> None:
    if path.exists() and not overwrite:
        raise ArtifactWriteFailure(f"{path} already exists", path=path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".mimeview-", suffix=".part")
    except OSError as exc:
        raise ArtifactWriteFailure(f"Cannot create {path}: {exc}", path=path) from exc
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        if overwrite:
            os.replace(tmp_name, path)
        else:
            # link() refuses an existing target, unlike replace().
            os.link(tmp_name, path)
    except FileExistsError as exc:
        raise ArtifactWriteFailure(f"{path} already exists", path=path) from exc
    except OSError as exc:
        raise ArtifactWriteFailure(f"Cannot write {path}: {exc}", path=path) from exc
    finally:
        _remove_temp(tmp_name)


def _remove_temp(tmp_name: str) -> None:
    try:
        os.unlink(tmp_name)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", tmp_name, exc)
