"""Error taxonomy for message view operations."""

from __future__ import annotations


class MimeViewError(Exception):
    """Base class for recoverable message view failures."""


class IOFailure(MimeViewError):
    def __init__(self, message: str, path: object | None = None) -> None:
        super().__init__(message)
        self.path = path


class SourceUnreadable(IOFailure):
    pass


class ArtifactWriteFailure(IOFailure):
    pass


class VerificationIOFailure(IOFailure):
    pass


class MissingBody(MimeViewError):
    pass


class VerificationUnavailable(MimeViewError):
    pass


class PreconditionFailed(MimeViewError):
    pass


class SignatureNotPresent(PreconditionFailed):
    pass


class ViewerLaunchFailure(MimeViewError):
    pass
