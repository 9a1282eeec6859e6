"""Failure modes of a dispatched request.

These are delivered through the completion callback, never raised to the
caller of ``Dispatcher.request``.
"""

from __future__ import annotations


class DispatchError(Exception):
    """Base class for every expected request failure."""

    reason = "DispatchError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class TransportUnavailable(DispatchError):
    """No credential and no CLI executable; nothing was spawned."""

    reason = "TransportUnavailable"


class ProcessSpawnFailure(DispatchError):
    """The OS failed to start the process."""

    reason = "ProcessSpawnFailure"


class NonZeroExit(DispatchError):
    """The process ran and exited with a failure status."""

    reason = "NonZeroExit"

    def __init__(self, message: str, *, exit_code: int, stderr: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class EmptyResponse(DispatchError):
    """The process exited cleanly but produced no usable output."""

    reason = "EmptyResponse"


class JSONParseError(DispatchError):
    """The HTTP transport returned a payload that is not valid JSON."""

    reason = "JSONParseError"


class APIError(DispatchError):
    """The remote service reported an error object."""

    reason = "APIError"


class CancelledRequest(DispatchError):
    """The request was cancelled before it completed."""

    reason = "CancelledRequest"
