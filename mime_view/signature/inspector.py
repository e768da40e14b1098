"""Signature presence tests and re-verification over the part tree."""

from __future__ import annotations

import logging
from pathlib import Path

from mime_view.errors import SignatureNotPresent, VerificationIOFailure
from mime_view.parts.model import UNCHECKED_STATUS, Classification, PartGraph, SignatureStatus
from mime_view.parts.scanner import scan_multipart
from mime_view.signature.verifier import SignatureVerifier


logger = logging.getLogger(__name__)


class SignatureInspector:
    def __init__(self, verifier: SignatureVerifier) -> None:
        self.verifier = verifier

    def is_signed(self, graph: PartGraph | None, source_path: str | Path | None, open_part: int | None) -> bool:
        if graph is None or open_part is None or source_path is None:
            return False
        for part in graph.ancestors(open_part):
            if self.verifier.has_signature(graph, part.index):
                return True
        return False

    def mark_unchecked(self, graph: PartGraph, root: int = 0) -> int:
        marked = 0
        for part in graph.walk(root):
            if part.classification is Classification.SIGNATURE:
                graph.set_signature_status(part.index, UNCHECKED_STATUS)
                marked += 1
        return marked

    def check_signature(self, graph: PartGraph, source_path: str | Path, open_part: int) -> None:
        """Re-scan the whole message and verify every signature in it.

        On any failure the previous signature statuses are restored.
        """
        if not self.is_signed(graph, source_path, open_part):
            raise SignatureNotPresent("The selected part is not covered by a signature")

        root = graph.root_of(open_part)
        snapshot = _snapshot(graph)
        try:
            with open(source_path, "rb") as handle:
                if root.classification is Classification.MULTIPART:
                    handle.seek(root.header_offset or 0)
                    while True:
                        line = handle.readline()
                        if not line or line in (b"\n", b"\r\n"):
                            break
                else:
                    handle.seek(root.source_offset or 0)
                scan_multipart(graph, root.index, handle)
                self.verifier.check_signature(graph, root.index, handle)
        except OSError as exc:
            _restore(graph, snapshot)
            raise VerificationIOFailure(f"Cannot read {source_path}: {exc}", path=source_path) from exc
        except Exception:
            _restore(graph, snapshot)
            raise
        logger.info("Signature check finished for %s", source_path)


def _snapshot(graph: PartGraph) -> dict[int, SignatureStatus | None]:
    return {
        part.index: part.signature_status
        for part in graph
        if part.classification is Classification.SIGNATURE
    }


def _restore(graph: PartGraph, snapshot: dict[int, SignatureStatus | None]) -> None:
    for index, status in snapshot.items():
        graph.set_signature_status(index, status)
