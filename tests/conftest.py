from __future__ import annotations

from pathlib import Path

import pytest

from mime_view.config import AppConfig
from mime_view.parts.model import SignatureState, SignatureStatus


PLAIN_MESSAGE = (
    b"From: alice@example.com\n"
    b"Subject: test\n"
    b"MIME-Version: 1.0\n"
    b'Content-Type: multipart/mixed; boundary="XX"\n'
    b"\n"
    b"This is a multi-part message in MIME format.\n"
    b"--XX\n"
    b"Content-Type: text/plain; charset=us-ascii\n"
    b"\n"
    b"hello world\n"
    b"--XX\n"
    b'Content-Type: application/octet-stream; name="a.bin"\n'
    b"Content-Transfer-Encoding: base64\n"
    b'Content-Disposition: attachment; filename="a.bin"\n'
    b"\n"
    b"AAECAwQFBgcICQ==\n"
    b"--XX\n"
    b'Content-Type: image/png; name="dot.png"\n'
    b"Content-Transfer-Encoding: base64\n"
    b"\n"
    b"bm90IGEgcG5n\n"
    b"--XX--\n"
)

SIGNED_MESSAGE = (
    b"From: alice@example.com\n"
    b"Subject: signed\n"
    b"MIME-Version: 1.0\n"
    b'Content-Type: multipart/signed; micalg=pgp-sha256; protocol="application/pgp-signature"; boundary="SIG"\n'
    b"\n"
    b"--SIG\n"
    b"Content-Type: text/plain\n"
    b"\n"
    b"signed body\n"
    b"--SIG\n"
    b'Content-Type: application/pgp-signature; name="signature.asc"\n'
    b"\n"
    b"-----BEGIN PGP SIGNATURE-----\n"
    b"iQEzBAEBCAAdFiEE\n"
    b"-----END PGP SIGNATURE-----\n"
    b"--SIG--\n"
)


class FakeSurface:
    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []
        self.grab_releases = 0

    def attach(self, handle) -> None:
        self.events.append(("attach", handle))

    def detach(self, handle) -> None:
        self.events.append(("detach", handle))

    def release_grab(self) -> None:
        self.grab_releases += 1


class FakeTextView:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int]] = []
        self.bodies: list[bytes] = []
        self.positions: list[int] = []

    def show_text_part(self, part, fp) -> None:
        self.calls.append(("text", part.index))
        self.positions.append(fp.tell())
        if part.source_end is not None:
            self.bodies.append(fp.read(part.source_end - part.source_offset))
        else:
            self.bodies.append(fp.read())

    def show_signature_explanation(self, part) -> None:
        self.calls.append(("signature", part.index))

    def show_mime_part(self, part) -> None:
        self.calls.append(("mime", part.index))

    def clear(self) -> None:
        self.calls.append(("clear", -1))


class FakeImageView:
    def __init__(self) -> None:
        self.shown: list[tuple[int, Path, bytes]] = []

    def show_image(self, part, artifact_path) -> None:
        self.shown.append((part.index, artifact_path, Path(artifact_path).read_bytes()))

    def clear(self) -> None:
        pass


class FakeBackend:
    def __init__(self, status: SignatureStatus | None = None, error: Exception | None = None) -> None:
        self.status = status or SignatureStatus(SignatureState.GOOD, "Good signature from Alice")
        self.error = error
        self.calls: list[tuple[bytes, bytes]] = []

    def verify(self, data: bytes, signature: bytes) -> SignatureStatus:
        self.calls.append((data, signature))
        if self.error is not None:
            raise self.error
        return self.status


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(tmp_dir=str(tmp_path / "artifacts"))


@pytest.fixture
def plain_message(tmp_path) -> Path:
    path = tmp_path / "plain.eml"
    path.write_bytes(PLAIN_MESSAGE)
    return path


@pytest.fixture
def signed_message(tmp_path) -> Path:
    path = tmp_path / "signed.eml"
    path.write_bytes(SIGNED_MESSAGE)
    return path


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def text_view() -> FakeTextView:
    return FakeTextView()


@pytest.fixture
def image_view() -> FakeImageView:
    return FakeImageView()


@pytest.fixture
def make_backend():
    return FakeBackend
