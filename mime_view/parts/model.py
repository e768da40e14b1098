"""Part graph produced by the scanner and walked by the view."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator


class Classification(Enum):
    PLAIN_TEXT = "plain_text"
    HTML = "html"
    EMBEDDED_MESSAGE = "embedded_message"
    MULTIPART = "multipart"
    IMAGE = "image"
    AUDIO = "audio"
    OCTET_STREAM = "octet_stream"
    SIGNATURE = "signature"
    OTHER = "other"


SIGNATURE_TYPES = {"application/pgp-signature", "application/pkcs7-signature"}


def classify(content_type: str | None) -> Classification:
    if not content_type:
        return Classification.OCTET_STREAM
    ctype = content_type.lower()
    if ctype == "text/html":
        return Classification.HTML
    if ctype.startswith("text/"):
        return Classification.PLAIN_TEXT
    if ctype == "message/rfc822":
        return Classification.EMBEDDED_MESSAGE
    if ctype.startswith("multipart/"):
        return Classification.MULTIPART
    if ctype.startswith("image/"):
        return Classification.IMAGE
    if ctype.startswith("audio/"):
        return Classification.AUDIO
    if ctype in SIGNATURE_TYPES:
        return Classification.SIGNATURE
    if ctype == "application/octet-stream":
        return Classification.OCTET_STREAM
    return Classification.OTHER


class SignatureState(Enum):
    UNCHECKED = "unchecked"
    GOOD = "good"
    BAD = "bad"
    NO_KEY = "no_key"
    ERROR = "error"


@dataclass(frozen=True)
class SignatureStatus:
    state: SignatureState
    summary: str
    detail: str | None = None


UNCHECKED_STATUS = SignatureStatus(
    state=SignatureState.UNCHECKED,
    summary='Select "Check signature" to check',
)


@dataclass
class Part:
    content_type: str | None = None
    declared_size: int = 0
    name: str | None = None
    filename: str | None = None
    header_offset: int | None = None
    source_offset: int | None = None
    source_end: int | None = None
    encoding: str | None = None
    charset: str | None = None
    boundary: str | None = None
    protocol: str | None = None
    classification: Classification | None = None
    is_envelope_main: bool = False
    signature_status: SignatureStatus | None = None
    plaintext_file: Path | None = None
    index: int = -1
    parent: int | None = None
    children: list[int] = field(default_factory=list)
    sub: int | None = None

    def __post_init__(self) -> None:
        if self.classification is None:
            self.classification = classify(self.content_type)

    @property
    def has_body(self) -> bool:
        return self.classification is not Classification.MULTIPART and self.source_offset is not None


class PartGraph:
    """Arena of parts addressed by stable index.

    Parents are stored as indices so upward walks never create ownership
    cycles. Index 0 is the root once the first part has been added.
    """

    def __init__(self) -> None:
        self._parts: list[Part] = []

    def __len__(self) -> int:
        return len(self._parts)

    def __getitem__(self, index: int) -> Part:
        return self._parts[index]

    def __iter__(self) -> Iterator[Part]:
        return iter(self._parts)

    @property
    def root(self) -> Part | None:
        return self._parts[0] if self._parts else None

    def add(self, part: Part, parent: int | None = None, as_sub: bool = False) -> int:
        if parent is None and self._parts:
            raise ValueError("graph already has a root")
        index = len(self._parts)
        part.index = index
        part.parent = parent
        self._parts.append(part)
        if parent is not None:
            owner = self._parts[parent]
            if as_sub:
                owner.sub = index
            else:
                owner.children.append(index)
        return index

    def ancestors(self, index: int) -> Iterator[Part]:
        current: int | None = index
        while current is not None:
            part = self._parts[current]
            yield part
            current = part.parent

    def root_of(self, index: int) -> Part:
        top = self._parts[index]
        for top in self.ancestors(index):
            pass
        return top

    def next_sibling(self, index: int) -> Part | None:
        part = self._parts[index]
        if part.parent is None:
            return None
        siblings = self._parts[part.parent].children
        if index not in siblings:
            return None
        pos = siblings.index(index)
        if pos + 1 < len(siblings):
            return self._parts[siblings[pos + 1]]
        return None

    def walk(self, index: int = 0) -> Iterator[Part]:
        if not self._parts:
            return
        stack = [index]
        while stack:
            part = self._parts[stack.pop()]
            yield part
            following = list(part.children)
            if part.sub is not None:
                following.insert(0, part.sub)
            stack.extend(reversed(following))

    def set_signature_status(self, index: int, status: SignatureStatus | None) -> None:
        part = self._parts[index]
        if part.classification is not Classification.SIGNATURE:
            raise ValueError(f"part {index} ({part.content_type}) is not a signature part")
        part.signature_status = status

    def clear_signature_status(self) -> None:
        for part in self._parts:
            part.signature_status = None
