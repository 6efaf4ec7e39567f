"""Exception hierarchy shared by the request builder, engine, and materializer.

A call can fail at several distinct stages: while the request is being built,
while waiting on the rate limiter or a retry delay, on the wire, or while the
response body is read and decoded. This module groups those failure modes
under :class:`HttprError` so callers can react to broad categories (for
example, cancellation vs. an exhausted retry budget) while still reaching the
partial response that travelled with the failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .response import Response

__all__ = [
    "HttprError",
    "RequestBuildError",
    "ContextError",
    "RequestCancelled",
    "DeadlineExceeded",
    "TransportError",
    "TooManyRedirects",
    "MaterializationError",
    "AttemptsExhaustedError",
    "ResponseError",
    "RateLimitExceeded",
    "UnsupportedCompression",
]


class HttprError(RuntimeError):
    """Base exception for every failure raised by the client."""


class RequestBuildError(HttprError, ValueError):
    """Raised by ``RequestBuilder.build`` when an earlier setter recorded an error."""


class ContextError(HttprError):
    """Raised when a call context finished before the work it guarded."""


class RequestCancelled(ContextError):
    """The call context was cancelled explicitly."""


class DeadlineExceeded(ContextError):
    """The call context's deadline elapsed."""


class _ResponseCarrier(HttprError):
    def __init__(self, message: str, *, response: Optional["Response"] = None) -> None:
        super().__init__(message)
        self.response = response


class TransportError(_ResponseCarrier):
    """Sending the request failed (connection, DNS, TLS, timeout, redirect veto)."""


class TooManyRedirects(TransportError):
    """The redirect chain exceeded the permitted number of hops."""


class MaterializationError(_ResponseCarrier):
    """Reading, decoding, or releasing the body failed after a successful round trip."""


class AttemptsExhaustedError(_ResponseCarrier):
    """Every permitted attempt finished and the last one still failed."""

    def __init__(
        self,
        attempts: int,
        *,
        last_error: Optional[BaseException] = None,
        response: Optional["Response"] = None,
    ) -> None:
        message = f"failed to send request after {attempts} attempt(s)"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message, response=response)
        self.attempts = attempts
        self.last_error = last_error


class ResponseError(HttprError):
    """Structured HTTP status error.

    Two instances compare equal when their status codes match, which lets
    callers classify failures coarsely (``err == ResponseError(code=404)``)
    without comparing messages.
    """

    def __init__(self, message: str = "", *, code: int) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"got HTTP error code '{self.code}': {self.message}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResponseError):
            return NotImplemented
        return self.code == other.code

    def __hash__(self) -> int:
        return hash(self.code)


class RateLimitExceeded(HttprError):
    """Raised when a bounded rate-limit wait elapses without a slot."""


class UnsupportedCompression(HttprError, ValueError):
    """Raised when a decoder is requested for an unknown compression name."""
