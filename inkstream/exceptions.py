"""Exception hierarchy for inkstream.

Misuse of a buffer or session raises a RuntimeError subclass. Failures of
the upstream chunk source are wrapped in SourceStreamError and reported
through the session instead of being raised to the caller.
"""

from __future__ import annotations


class InkstreamError(Exception):
    """Base exception for all inkstream errors."""


class SessionStateError(InkstreamError, RuntimeError):
    """Raised when a session operation is invalid in its current state."""


class SessionDisposedError(SessionStateError):
    """Raised when a disposed session is used again."""


class BufferClosedError(InkstreamError, RuntimeError):
    """Raised when text is added to a buffer that was already completed."""


class SourceStreamError(InkstreamError):
    """The upstream chunk source signalled failure.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.__cause__ = cause
