"""Naming and lifetime of extracted part artifacts."""

from __future__ import annotations

from contextlib import contextmanager
import itertools
import logging
from pathlib import Path
import os
from typing import Iterator

from mime_view.parts.model import Part


logger = logging.getLogger(__name__)

FALLBACK_NAME = "mimetmp"


def safe_basename(value: str | None) -> str | None:
    if not value:
        return None
    name = value.replace("\\", "/").rsplit("/", 1)[-1].strip()
    if name in ("", ".", ".."):
        return None
    return name


def artifact_name(part: Part) -> str:
    return safe_basename(part.filename) or safe_basename(part.name) or FALLBACK_NAME


class ArtifactStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._counter = itertools.count(1)

    def ensure_root(self) -> None:
        os.makedirs(self.root, exist_ok=True)

    def tmp_path_for(self, part: Part) -> Path:
        """Unique path for a preview or launch artifact."""
        self.ensure_root()
        name = artifact_name(part)
        while True:
            path = self.root / f"{FALLBACK_NAME}.{next(self._counter):08x}.{name}"
            if not path.exists():
                return path

    def export_path_for(self, part: Part) -> Path | None:
        """Stable path named after the part, used for file-list exports."""
        name = safe_basename(part.filename) or safe_basename(part.name)
        if name is None:
            return None
        self.ensure_root()
        return self.root / name

    @contextmanager
    def temporary(self, part: Part) -> Iterator[Path]:
        path = self.tmp_path_for(part)
        try:
            yield path
        finally:
            discard(path)


def discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove artifact %s", path, exc_info=True)
