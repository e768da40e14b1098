"""Content-Transfer-Encoding removal."""

from __future__ import annotations

import base64
import binascii
import logging
import quopri


logger = logging.getLogger(__name__)


def decode_body(raw: bytes, encoding: str | None) -> bytes:
    enc = (encoding or "7bit").strip().lower()
    if enc == "base64":
        return _decode_base64(raw)
    if enc == "quoted-printable":
        return quopri.decodestring(raw)
    if enc in ("x-uuencode", "x-uue", "uuencode"):
        return _decode_uuencode(raw)
    if enc not in ("7bit", "8bit", "binary"):
        logger.warning("Unknown transfer encoding %r, passing body through", encoding)
    return raw


def _decode_base64(raw: bytes) -> bytes:
    compact = b"".join(raw.split())
    compact += b"=" * (-len(compact) % 4)
    try:
        return base64.b64decode(compact)
    except binascii.Error:
        logger.warning("Malformed base64 body, decoding line by line")
        chunks = []
        for line in raw.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                chunks.append(binascii.a2b_base64(line))
            except binascii.Error:
                break
        return b"".join(chunks)


def _decode_uuencode(raw: bytes) -> bytes:
    chunks = []
    started = False
    for line in raw.splitlines():
        if not started:
            started = line.startswith(b"begin ")
            continue
        if line.strip() == b"end":
            break
        if not line.strip():
            continue
        try:
            chunks.append(binascii.a2b_uu(line))
        except binascii.Error:
            # Some encoders pad short lines incorrectly; trim to the declared length.
            nbytes = (((line[0] - 32) & 63) * 4 + 5) // 3
            chunks.append(binascii.a2b_uu(line[:nbytes]))
    return b"".join(chunks)


def decode_text(data: bytes, charset: str | None) -> str:
    try:
        return data.decode(charset or "us-ascii")
    except (LookupError, UnicodeDecodeError):
        return data.decode("utf-8", errors="replace")
