# === NAVMAP v1 ===
# {
#   "module": "httpr.client",
#   "purpose": "Request execution engine and the process-wide default client.",
#   "sections": [
#     {
#       "id": "client",
#       "name": "Client",
#       "anchor": "class-client",
#       "kind": "class"
#     },
#     {
#       "id": "get-default-client",
#       "name": "get_default_client",
#       "anchor": "function-get-default-client",
#       "kind": "function"
#     },
#     {
#       "id": "close-default-client",
#       "name": "close_default_client",
#       "anchor": "function-close-default-client",
#       "kind": "function"
#     },
#     {
#       "id": "reset-default-client",
#       "name": "reset_default_client",
#       "anchor": "function-reset-default-client",
#       "kind": "function"
#     },
#     {
#       "id": "create-http-client",
#       "name": "_create_http_client",
#       "anchor": "function-create-http-client",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Request execution engine and the process-wide default client.

One call to :meth:`Client.do` runs sequentially:

1. Resolve settings. Call-scoped options are applied to a fresh default
   record and replace the client's settings for that call, transport and
   cookie jar included; only the default connection pool is shared.
2. Derive a call context from the request's context, bounded by the
   configured timeout.
3. Acquire the rate limiter once.
4. Run the pre-request hook once; an exception vetoes the call.
5. Attempt (send, decode, buffer), notify the post-request hook and consult
   the retry condition, sleeping between attempts on the call context, until
   the condition stops or the attempt ceiling is reached.

The terminal rules:

- an attempt without an error returns its response, even on the last
  attempt;
- an error the retry condition declined to retry is raised as-is;
- an error left when the ceiling is reached is raised as the call context's
  error when the context finished, otherwise as
  :class:`~httpr.errors.AttemptsExhaustedError` chained to the last error.

Concurrent calls share the client's connection pool, cookie jar and rate
limiter; no lock is held across a network round trip.

Example:
    >>> from httpr import Client, with_retry_count
    >>> with Client(with_retry_count(3)) as client:  # doctest: +SKIP
    ...     response = client.get("https://api.example.com/items")
    ...     response.status_code
    200
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import replace
from typing import Any, Iterable, Mapping, Optional, Sequence

import httpx

from .context import CallContext
from .errors import AttemptsExhaustedError
from .instrumentation import create_http_event_hooks
from .materializer import materialize
from .policy import TLS_HANDSHAKE_TIMEOUT
from .request import BodySource, RequestBuilder, RequestSpec
from .response import Response
from .retry import AttemptOutcome, build_retrying, normalize_attempts
from .settings import ClientSettings, Option, build_settings
from .transport import default_transport

logger = logging.getLogger(__name__)

__all__ = [
    "Client",
    "new_client",
    "get_default_client",
    "close_default_client",
    "reset_default_client",
    "do",
    "get",
]


# ============================================================================
# Engine
# ============================================================================


class Client:
    """HTTP client adding retries, rate limiting, hooks and decompression.

    Args:
        *options: Ordered option mutators applied over the default settings.
    """

    def __init__(self, *options: Option) -> None:
        self._settings = build_settings(*options)
        self._pool_lock = threading.Lock()
        self._default_pool: Optional[httpx.BaseTransport] = None
        if self._settings.transport is not None:
            transport = self._settings.transport
        else:
            transport = self._default_pool = default_transport()
        self._transport = transport
        self._http_client = _create_http_client(self._settings, transport=transport)
        logger.debug(
            "Client initialized",
            extra={
                "retry_count": self._settings.retry_count,
                "retry_delay": self._settings.retry_delay,
                "retry_delay_delta": self._settings.retry_delay_delta,
                "timeout": self._settings.timeout,
                "decompress": self._settings.decompress,
                "rate_limiter": repr(self._settings.rate_limiter),
            },
        )

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def http_client(self) -> httpx.Client:
        """Underlying :class:`httpx.Client` (connection pool and cookie jar)."""
        return self._http_client

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def do(self, request: RequestSpec, *options: Option) -> Response:
        """Execute ``request``, retrying according to the effective settings.

        Args:
            request: A built request.
            *options: Call-scoped options. When given, they are applied to a
                fresh default record that replaces the client's settings for
                this call.

        Returns:
            The buffered response of the deciding attempt.

        Raises:
            Exception: Whatever the pre-request hook raised, unchanged.
            RequestCancelled: The call context was cancelled.
            DeadlineExceeded: The call timeout or an inherited deadline passed.
            RateLimitExceeded: A bounded rate limiter gave up.
            TransportError: A send failure the retry condition declined to retry.
            MaterializationError: A body failure the retry condition declined to retry.
            AttemptsExhaustedError: Every permitted attempt failed.
        """
        if not options:
            return self._execute(self._http_client, request, self._settings)

        settings = build_settings(*options)
        transport = settings.transport if settings.transport is not None else self._shared_pool()
        transient = _create_http_client(settings, transport=_SharedTransport(transport))
        try:
            return self._execute(transient, request, settings)
        finally:
            transient.close()

    def _shared_pool(self) -> httpx.BaseTransport:
        """Default pooled transport reused by calls with their own options."""
        with self._pool_lock:
            if self._default_pool is None:
                self._default_pool = default_transport()
            return self._default_pool

    def _execute(
        self,
        http_client: httpx.Client,
        request: RequestSpec,
        settings: ClientSettings,
    ) -> Response:
        with request.context.with_timeout(settings.timeout) as context:
            call_request = replace(request, context=context)

            settings.rate_limiter.take(context)
            settings.pre_request_hook(call_request)

            attempts = 0

            def _attempt() -> AttemptOutcome:
                nonlocal attempts
                attempts += 1
                outcome = materialize(http_client, call_request, settings, context)
                logger.debug(
                    "Attempt finished",
                    extra={
                        "attempt": attempts,
                        "max_attempts": normalize_attempts(settings.retry_count),
                        "method": call_request.method,
                        "url": call_request.url,
                        "status": outcome.response.status_code,
                        "error": repr(outcome.error) if outcome.error is not None else None,
                    },
                )
                _notify(settings, call_request, outcome)
                return outcome

            controller = build_retrying(
                retry_count=settings.retry_count,
                delay=settings.retry_delay,
                delta=settings.retry_delay_delta,
                condition=settings.retry_condition,
                sleep=context.sleep,
            )
            outcome: AttemptOutcome = controller(_attempt)

            if outcome.error is None:
                return outcome.response
            if not outcome.exhausted:
                raise outcome.error

            context_error = context.error()
            if context_error is not None:
                raise context_error from outcome.error
            raise AttemptsExhaustedError(
                attempts,
                last_error=outcome.error,
                response=outcome.response,
            ) from outcome.error

    # ------------------------------------------------------------------
    # Verb helpers
    # ------------------------------------------------------------------

    def _call(
        self,
        method: str,
        url: str,
        body: BodySource = None,
        *,
        context: Optional[CallContext] = None,
        headers: Optional[Mapping[str, str]] = None,
        options: Sequence[Option] = (),
    ) -> Response:
        """Build and execute a request.

        Args:
            method: HTTP method.
            url: Absolute URL.
            body: Optional payload (see :meth:`RequestBuilder.set_body`).
            context: Call context; a fresh one when omitted.
            headers: Extra request headers.
            options: Call-scoped options forwarded to :meth:`do`.

        Raises:
            RequestBuildError: If ``url`` is invalid.
        """
        builder = RequestBuilder().set_method(method).set_url(url).set_context(context)
        if body is not None:
            builder.set_body(body)
        if headers:
            builder.set_headers(headers)
        return self.do(builder.build(), *options)

    def get(self, url: str, **kwargs: Any) -> Response:
        return self._call("GET", url, **kwargs)

    def head(self, url: str, **kwargs: Any) -> Response:
        return self._call("HEAD", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> Response:
        return self._call("DELETE", url, **kwargs)

    def trace(self, url: str, **kwargs: Any) -> Response:
        return self._call("TRACE", url, **kwargs)

    def connect(self, url: str, **kwargs: Any) -> Response:
        return self._call("CONNECT", url, **kwargs)

    def post(self, url: str, body: BodySource = None, **kwargs: Any) -> Response:
        return self._call("POST", url, body, **kwargs)

    def put(self, url: str, body: BodySource = None, **kwargs: Any) -> Response:
        return self._call("PUT", url, body, **kwargs)

    def patch(self, url: str, body: BodySource = None, **kwargs: Any) -> Response:
        return self._call("PATCH", url, body, **kwargs)

    def options(self, url: str, body: BodySource = None, **kwargs: Any) -> Response:
        return self._call("OPTIONS", url, body, **kwargs)

    # ------------------------------------------------------------------
    # Cookies & lifecycle
    # ------------------------------------------------------------------

    def set_cookies(self, url: str, cookies: Mapping[str, str] | Iterable[tuple[str, str]]) -> None:
        """Store ``cookies`` in the client's jar for the host of ``url``."""
        host = httpx.URL(url).host
        items = cookies.items() if isinstance(cookies, Mapping) else cookies
        for name, value in items:
            self._http_client.cookies.set(name, value, domain=host)

    def close(self) -> None:
        """Release pooled connections."""
        self._http_client.close()
        with self._pool_lock:
            pool, self._default_pool = self._default_pool, None
        if pool is not None and pool is not self._transport:
            pool.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _notify(settings: ClientSettings, request: RequestSpec, outcome: AttemptOutcome) -> None:
    try:
        settings.post_request_hook(request, outcome.response, outcome.error)
    except Exception as exc:  # noqa: BLE001 - observer failures never fail the call
        logger.warning(
            "Post-request hook failed",
            extra={"url": request.url, "hook_error": repr(exc)},
        )


def new_client(*options: Option) -> Client:
    return Client(*options)


# ============================================================================
# Implementation Details
# ============================================================================


class _SharedTransport(httpx.BaseTransport):
    """Delegates to a transport owned elsewhere; closing it is a no-op."""

    def __init__(self, inner: httpx.BaseTransport) -> None:
        self._inner = inner

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self._inner.handle_request(request)

    def close(self) -> None:
        return None


def _create_http_client(
    settings: ClientSettings,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create the HTTPX client backing a :class:`Client`.

    Configuration:
    - Transport: ``transport``, else the settings' transport, else the default pool
    - Cookies: the settings' cookie jar (shared, not copied)
    - Redirects: disabled (followed manually under the redirect check)
    - Timeouts: connect bounded; reads bounded per attempt by the call deadline
    - Hooks: wire logging

    Returns:
        Configured httpx.Client
    """
    if transport is None:
        transport = settings.transport if settings.transport is not None else default_transport()

    return httpx.Client(
        transport=transport,
        cookies=settings.cookie_jar,
        follow_redirects=False,
        timeout=httpx.Timeout(None, connect=TLS_HANDSHAKE_TIMEOUT),
        event_hooks=create_http_event_hooks(),
    )


# ============================================================================
# Default Client
# ============================================================================

_default_client: Optional[Client] = None
_default_client_lock = threading.Lock()
_default_client_pid: Optional[int] = None


def get_default_client() -> Client:
    """Get or create the process-wide client built from ``HTTPR_*`` settings.

    Behavior:
        - First call: builds the client from :class:`~httpr.config.ClientConfig`.
        - Subsequent calls: return the same client (thread-safe).
        - Process forked: the child rebuilds the client on first use.
    """
    global _default_client, _default_client_pid

    if _default_client is not None and _default_client_pid == os.getpid():
        return _default_client

    with _default_client_lock:
        if _default_client is not None and _default_client_pid == os.getpid():
            return _default_client

        if _default_client is not None:
            logger.debug("Process forked; rebuilding default client.")
            _default_client = None

        from .config import ClientConfig

        _default_client = Client(*ClientConfig().to_options())
        _default_client_pid = os.getpid()
        logger.debug("Default client initialized", extra={"pid": _default_client_pid})
        return _default_client


def close_default_client() -> None:
    """Close the default client. Safe to call when none was created."""
    global _default_client

    with _default_client_lock:
        if _default_client is not None:
            try:
                _default_client.close()
                logger.debug("Default client closed")
            finally:
                _default_client = None


def reset_default_client() -> None:
    """Close the default client so the next use rebuilds it (test isolation)."""
    global _default_client_pid

    close_default_client()
    _default_client_pid = None


def do(request: RequestSpec, *options: Option) -> Response:
    """Execute ``request`` with the default client."""
    return get_default_client().do(request, *options)


def get(url: str, **kwargs) -> Response:
    """GET ``url`` with the default client."""
    return get_default_client().get(url, **kwargs)
