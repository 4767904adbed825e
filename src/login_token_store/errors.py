"""Error types raised by token stores."""

from typing import Optional


class TokenStoreError(Exception):
    """Base class for all token store errors."""


class InvalidArgument(TokenStoreError, ValueError):
    """A required argument was missing, empty or non-positive.

    Raised synchronously at call time, before any I/O is attempted.
    """


class InternalError(TokenStoreError):
    """The backing store or the hashing library failed.

    Always raised from the awaited result of an operation, with the
    underlying exception chained as ``__cause__`` and kept on ``cause``.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        message = super().__str__()
        if self.cause is None:
            return message
        return f"{message}: {self.cause!r}"
