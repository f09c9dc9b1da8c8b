"""Exception hierarchy used throughout the configuration center."""

from __future__ import annotations


class ConfluxError(Exception):
    """Base class for every error raised by the package."""

    kind = "Internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = str(message)

    def __str__(self) -> str:
        return f"{self.kind} error: {self.message}"


class RaftError(ConfluxError):
    """A consensus operation failed."""

    kind = "Raft"


class StorageError(ConfluxError):
    """Reading or writing persistent state failed."""

    kind = "Storage"


class NetworkError(ConfluxError):
    """Talking to a remote peer failed."""

    kind = "Network"


class AuthError(ConfluxError):
    """The authorization engine could not complete a request."""

    kind = "Auth"


class AuthzError(ConfluxError):
    """A request was not authorized."""

    kind = "Authorization"


class ValidationError(ConfluxError):
    """Input did not pass validation."""

    kind = "Validation"


class InternalError(ConfluxError):
    """An unexpected internal failure."""

    kind = "Internal"