# === NAVMAP v1 ===
# {
#   "module": "httpr.materializer",
#   "purpose": "One network attempt: send, follow redirects, decode, buffer, release.",
#   "sections": [
#     {
#       "id": "materialize",
#       "name": "materialize",
#       "anchor": "function-materialize",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""One network attempt: send, follow redirects, decode, buffer, release.

:func:`materialize` never raises for network or body problems. It returns an
:class:`~httpr.retry.AttemptOutcome` whose ``error`` is one of:

- the call context's error, when the context finished before or during the
  send;
- :class:`~httpr.errors.TransportError`, when the round trip failed (the
  response is empty);
- :class:`~httpr.errors.MaterializationError`, when the body could not be
  read, decoded or released after a successful round trip (the response
  carries status and headers but no body).

The raw httpx response is closed on every path.
"""

from __future__ import annotations

import io
import logging
from typing import Iterator, Optional, TypeVar

import httpx

from .context import CallContext
from .decoding import DECODE_ERRORS, IteratorStream, open_decoder, select_compression
from .errors import MaterializationError, TransportError
from .redirect import follow_redirects
from .request import RequestSpec
from .response import Response
from .retry import AttemptOutcome
from .settings import ClientSettings

logger = logging.getLogger(__name__)

__all__ = ["materialize"]

_E = TypeVar("_E", bound=BaseException)

_READ_ERRORS = DECODE_ERRORS + (httpx.HTTPError, httpx.StreamError)


def _caused_by(error: _E, cause: BaseException) -> _E:
    error.__cause__ = cause
    return error


def _raw_chunks(raw: httpx.Response) -> Iterator[bytes]:
    if raw.is_stream_consumed:
        # body was preloaded by the transport; replay the undecoded stream
        return iter(raw.stream)
    return raw.iter_raw()


def _send(
    http_client: httpx.Client,
    request: RequestSpec,
    settings: ClientSettings,
    context: CallContext,
) -> httpx.Response:
    remaining = context.remaining()
    timeout = httpx.USE_CLIENT_DEFAULT if remaining is None else remaining
    wire_request = request.to_httpx(http_client, timeout)
    raw = http_client.send(wire_request, stream=True, follow_redirects=False)
    return follow_redirects(http_client, raw, settings.redirect_check, context)


def materialize(
    http_client: httpx.Client,
    request: RequestSpec,
    settings: ClientSettings,
    context: CallContext,
) -> AttemptOutcome:
    """Perform one attempt and buffer its body.

    Args:
        http_client: Client owning the connection pool and cookie jar.
        request: Request to send.
        settings: Effective settings for the call (decompression, redirects).
        context: Call context bounding the attempt.

    Returns:
        The attempt's response/error pair.
    """
    error: Optional[BaseException] = context.error()
    if error is not None:
        return AttemptOutcome(Response(), error)

    try:
        raw = _send(http_client, request, settings, context)
    except TransportError as exc:
        return AttemptOutcome(Response(), exc)
    except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
        context_error = context.error()
        if context_error is not None:
            return AttemptOutcome(Response(), _caused_by(context_error, exc))
        return AttemptOutcome(
            Response(),
            _caused_by(TransportError(f"{request.method} {request.url}: {exc}"), exc),
        )

    body = b""
    stream: Optional[io.BufferedReader] = None
    decoded = None
    try:
        stream = io.BufferedReader(IteratorStream(_raw_chunks(raw)))
        if settings.decompress:
            compression = select_compression(
                request.header_values("Accept"),
                raw.headers.get_list("Content-Encoding"),
            )
            decoded = open_decoder(stream, compression)
        body = (decoded if decoded is not None else stream).read()
    except _READ_ERRORS as exc:
        error = _caused_by(
            MaterializationError(
                f"failed to read response body: {exc}",
                response=Response.from_httpx(raw),
            ),
            exc,
        )
        body = b""
    finally:
        close_error = _release(raw, stream, decoded)

    if close_error is not None:
        if error is None:
            error = _caused_by(
                MaterializationError(
                    f"failed to release response body: {close_error}",
                    response=Response.from_httpx(raw),
                ),
                close_error,
            )
            body = b""
        else:
            logger.debug(
                "Ignoring release failure after an earlier error",
                extra={"url": request.url, "release_error": repr(close_error)},
            )

    if isinstance(error, MaterializationError) and error.response is not None:
        return AttemptOutcome(error.response, error)
    return AttemptOutcome(Response.from_httpx(raw, body), error)


def _release(
    raw: httpx.Response,
    stream: Optional[io.BufferedReader],
    decoded,
) -> Optional[BaseException]:
    """Close the decoder, the buffered stream and the raw response.

    Returns:
        The first failure met while closing, if any.
    """
    first: Optional[BaseException] = None
    closables = {id(item): item for item in (decoded, stream) if item is not None}
    for closable in closables.values():
        try:
            closable.close()
        except _READ_ERRORS as exc:
            first = first or exc
    try:
        raw.close()
    except _READ_ERRORS as exc:
        first = first or exc
    return first
