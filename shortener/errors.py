"""Error taxonomy for the mapping service.

Every failure the service reports on purpose is a ``ShortenerError`` whose
``kind`` is one member of the closed ``ErrorKind`` enumeration. Anything else
(store unavailable, driver errors) propagates unchanged and is treated as an
internal error by the HTTP layer.
"""

from enum import StrEnum

__all__ = ["ErrorKind", "ShortenerError"]


class ErrorKind(StrEnum):
    """Machine-readable error codes."""

    URL_SYNTAX = "URL_SYNTAX"
    DOMAIN = "DOMAIN"
    NOT_FOUND = "NOT_FOUND"
    BAD_STORE_URL = "BAD_STORE_URL"
    BAD_SERVICE_BASE = "BAD_SERVICE_BASE"


class ShortenerError(Exception):
    """A classified, caller-recoverable failure (or a startup configuration error)."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def code(self) -> str:
        return self.kind.value

    def __repr__(self) -> str:
        return f"ShortenerError(kind={self.kind.value!r}, message={self.message!r})"
