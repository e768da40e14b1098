"""PGP/MIME signature discovery and verification (RFC 3156)."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import tempfile
from typing import BinaryIO, Protocol

from mime_view.errors import VerificationUnavailable
from mime_view.parts.decode import decode_body
from mime_view.parts.model import Classification, PartGraph, SignatureState, SignatureStatus


logger = logging.getLogger(__name__)

PGP_SIGNATURE_PROTOCOL = "application/pgp-signature"
STATUS_PREFIX = "[GNUPG:] "
BARE_LF = re.compile(rb"(?<!\r)\n")


class SignatureVerifier(Protocol):
    def has_signature(self, graph: PartGraph, index: int) -> bool:
        ...

    def find_signature(self, graph: PartGraph, index: int) -> int | None:
        ...

    def check_signature(self, graph: PartGraph, root: int, fp: BinaryIO) -> None:
        ...


class VerificationBackend(Protocol):
    def verify(self, data: bytes, signature: bytes) -> SignatureStatus:
        ...


class PgpMimeVerifier:
    def __init__(self, backend: VerificationBackend) -> None:
        self.backend = backend

    def find_signature(self, graph: PartGraph, index: int) -> int | None:
        for part in graph.walk(index):
            if part.classification is Classification.SIGNATURE:
                return part.index
        return None

    def has_signature(self, graph: PartGraph, index: int) -> bool:
        return self.find_signature(graph, index) is not None

    def check_signature(self, graph: PartGraph, root: int, fp: BinaryIO) -> None:
        checked: set[int] = set()
        for part in list(graph.walk(root)):
            if part.content_type != "multipart/signed" or len(part.children) < 2:
                continue
            if part.protocol not in (None, PGP_SIGNATURE_PROTOCOL):
                logger.info("Skipping multipart/signed part %d with protocol %s", part.index, part.protocol)
                continue
            signed = graph[part.children[0]]
            signature = graph[part.children[1]]
            if signature.classification is not Classification.SIGNATURE:
                continue
            data = _read_span(fp, signed.header_offset, signed.source_end)
            sig_bytes = decode_body(_read_span(fp, signature.source_offset, signature.source_end), signature.encoding)
            status = self.backend.verify(canonicalize(data), sig_bytes)
            graph.set_signature_status(signature.index, status)
            checked.add(signature.index)
            logger.info("Signature part %d: %s", signature.index, status.state.value)
        for part in graph.walk(root):
            if part.classification is Classification.SIGNATURE and part.index not in checked:
                graph.set_signature_status(part.index, unsupported_status(graph, part.index))
        logger.debug("Checked %d signed parts under part %d", len(checked), root)


def unsupported_status(graph: PartGraph, index: int) -> SignatureStatus:
    part = graph[index]
    container = graph[part.parent] if part.parent is not None else None
    if container is not None and container.content_type == "multipart/signed":
        detail = f"Signatures of type {container.protocol or part.content_type} are not supported"
    else:
        detail = f"{part.content_type} is not part of a multipart/signed message"
    return SignatureStatus(SignatureState.ERROR, "Cannot check this signature", detail)


def canonicalize(data: bytes) -> bytes:
    return BARE_LF.sub(b"\r\n", data)


def _read_span(fp: BinaryIO, start: int | None, end: int | None) -> bytes:
    fp.seek(start or 0)
    if end is None:
        return fp.read()
    return fp.read(max(end - (start or 0), 0))


class GpgBackend:
    def __init__(self, binary: str = "gpg") -> None:
        self.binary = binary

    def verify(self, data: bytes, signature: bytes) -> SignatureStatus:
        handle = tempfile.NamedTemporaryFile(delete=False, suffix=".asc")
        try:
            handle.write(signature)
            handle.close()
            try:
                result = subprocess.run(
                    [self.binary, "--batch", "--no-tty", "--status-fd", "1", "--verify", handle.name, "-"],
                    input=data,
                    capture_output=True,
                    check=False,
                )
            except FileNotFoundError as exc:
                raise VerificationUnavailable(f"Signature checker not found: {self.binary}") from exc
        finally:
            try:
                os.unlink(handle.name)
            except OSError:
                pass
        return parse_gpg_status(
            result.stdout.decode("utf-8", errors="replace"),
            result.stderr.decode("utf-8", errors="replace"),
        )


def parse_gpg_status(status_output: str, diagnostics: str = "") -> SignatureStatus:
    """Map ``--status-fd`` output to a status; only GOODSIG yields GOOD."""
    records: dict[str, str] = {}
    for line in status_output.splitlines():
        if not line.startswith(STATUS_PREFIX):
            continue
        keyword, _, args = line[len(STATUS_PREFIX):].partition(" ")
        records.setdefault(keyword, args)
    detail = diagnostics.strip() or None

    if "BADSIG" in records:
        return SignatureStatus(SignatureState.BAD, f"BAD signature from {_uid(records['BADSIG'])}", detail)
    for keyword, label in (("EXPKEYSIG", "expired key"), ("REVKEYSIG", "revoked key"), ("EXPSIG", "expired signature")):
        if keyword in records:
            return SignatureStatus(SignatureState.BAD, f"Signature with {label} from {_uid(records[keyword])}", detail)
    if "GOODSIG" in records:
        return SignatureStatus(SignatureState.GOOD, f"Good signature from {_uid(records['GOODSIG'])}", detail)
    if "NO_PUBKEY" in records or "ERRSIG" in records:
        key_id = (records.get("NO_PUBKEY") or records.get("ERRSIG", "")).split(" ")[0]
        key = f"public key {key_id}" if key_id else "public key"
        return SignatureStatus(SignatureState.NO_KEY, f"Cannot check signature: {key} not available", detail)
    return SignatureStatus(SignatureState.ERROR, "Error verifying the signature", detail)


def _uid(args: str) -> str:
    _, _, uid = args.partition(" ")
    return uid or args or "unknown signer"
