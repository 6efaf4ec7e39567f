"""Immutable request descriptors and the fail-fast-on-build request builder.

:class:`RequestBuilder` accumulates fields through chained setters. The first
problem it meets (an invalid URL, a malformed query string) is recorded and
every later setter still runs, but nothing is raised until :meth:`build`
is called. The resulting :class:`RequestSpec` is frozen and holds copies of
every collection it was given.

Example:
    >>> spec = (
    ...     RequestBuilder()
    ...     .get("https://api.example.com/items", None)
    ...     .set_query_param("page", "2")
    ...     .set_header("Accept", "application/json")
    ...     .build()
    ... )
    >>> spec.url
    'https://api.example.com/items?page=2'
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from typing import IO, Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlsplit

import httpx

from .context import CallContext
from .errors import RequestBuildError
from .urls import compose_method, compose_url, is_valid_url

__all__ = ["RequestSpec", "RequestBuilder", "new_request", "BodySource"]

BodySource = Union[None, str, bytes, bytearray, IO[bytes], Iterable[bytes]]

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class RequestSpec:
    """A fully built request, consumed but never mutated by the client.

    Attributes:
        method: Upper-cased HTTP method.
        url: Absolute URL including the composed query string.
        headers: Ordered ``(name, value)`` pairs; names may repeat.
        body: ``None``, ``bytes``, a readable binary stream, or an iterable of
            byte chunks.
        context: Cancellation/deadline token for every call using this spec.
    """

    method: str
    url: str
    headers: Tuple[Tuple[str, str], ...] = ()
    body: Any = None
    context: CallContext = field(default_factory=CallContext, compare=False)
    body_offset: Optional[int] = field(default=None, repr=False, compare=False)

    def header_values(self, name: str) -> List[str]:
        lowered = name.lower()
        return [value for key, value in self.headers if key.lower() == lowered]

    def header(self, name: str) -> str:
        """Return the first value of ``name`` or an empty string."""
        values = self.header_values(name)
        return values[0] if values else ""

    @property
    def host(self) -> str:
        return urlsplit(self.url).hostname or ""

    def to_httpx(
        self,
        http_client: httpx.Client,
        timeout: Any = httpx.USE_CLIENT_DEFAULT,
    ) -> httpx.Request:
        """Build the wire request for one attempt.

        Seekable body streams are rewound to the offset they had at build
        time so that every attempt sends the same payload. Other streams and
        iterables are consumed by the first attempt.
        """
        content = self.body
        if self.body_offset is not None:
            content.seek(self.body_offset)
        return http_client.build_request(
            self.method,
            self.url,
            headers=list(self.headers),
            content=content,
            timeout=timeout,
        )


def _resolve_body(body: BodySource) -> Tuple[Any, Optional[int]]:
    if body is None:
        return None, None
    if isinstance(body, str):
        return body.encode("utf-8"), None
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body), None
    if hasattr(body, "read"):
        offset: Optional[int] = None
        try:
            if body.seekable():
                offset = body.tell()
        except (AttributeError, OSError, ValueError):
            offset = None
        return body, offset
    if isinstance(body, Iterable):
        return body, None
    raise RequestBuildError(f"unsupported body type: {type(body).__name__}")


class RequestBuilder:
    """Fluent builder for :class:`RequestSpec`."""

    def __init__(self) -> None:
        self._error: Optional[RequestBuildError] = None
        self._context: Optional[CallContext] = None
        self._url: Optional[str] = None
        self._method = ""
        self._body: BodySource = None
        self._headers: List[Tuple[str, str]] = []
        self._query: Dict[str, List[str]] = {}
        self._cookies: List[Tuple[str, str]] = []
        self._basic_auth: Optional[Tuple[str, str]] = None

    # ------------------------------------------------------------------
    # Target
    # ------------------------------------------------------------------

    def _record(self, error: RequestBuildError) -> None:
        if self._error is None:
            self._error = error

    def set_url(self, request_url: str) -> "RequestBuilder":
        if is_valid_url(request_url):
            self._url = request_url
        else:
            self._url = None
            self._record(RequestBuildError(f"invalid URL '{request_url}'"))
        return self

    def set_method(self, method: str) -> "RequestBuilder":
        self._method = method
        return self

    def _verb(self, method: str, request_url: str, body: BodySource = None) -> "RequestBuilder":
        self._method = method
        self.set_url(request_url)
        self._body = body
        return self

    def get(self, request_url: str, body: BodySource = None) -> "RequestBuilder":
        return self._verb("GET", request_url, body)

    def post(self, request_url: str, body: BodySource = None) -> "RequestBuilder":
        return self._verb("POST", request_url, body)

    def put(self, request_url: str, body: BodySource = None) -> "RequestBuilder":
        return self._verb("PUT", request_url, body)

    def patch(self, request_url: str, body: BodySource = None) -> "RequestBuilder":
        return self._verb("PATCH", request_url, body)

    def delete(self, request_url: str, body: BodySource = None) -> "RequestBuilder":
        return self._verb("DELETE", request_url, body)

    def options(self, request_url: str, body: BodySource = None) -> "RequestBuilder":
        return self._verb("OPTIONS", request_url, body)

    def head(self, request_url: str) -> "RequestBuilder":
        self._method = "HEAD"
        return self.set_url(request_url)

    def connect(self, request_url: str) -> "RequestBuilder":
        self._method = "CONNECT"
        return self.set_url(request_url)

    def trace(self, request_url: str) -> "RequestBuilder":
        self._method = "TRACE"
        return self.set_url(request_url)

    # ------------------------------------------------------------------
    # Payload & metadata
    # ------------------------------------------------------------------

    def set_body(self, body: BodySource) -> "RequestBuilder":
        """Set the body: ``str``, bytes-like, a readable stream, or byte chunks."""
        self._body = body
        return self

    def set_context(self, context: Optional[CallContext]) -> "RequestBuilder":
        """Attach a call context; ``None`` means a fresh background context."""
        self._context = context
        return self

    def set_header(self, key: str, value: str) -> "RequestBuilder":
        """Append a header value (repeated keys keep every value)."""
        self._headers.append((key, value))
        return self

    def set_headers(self, headers: Mapping[str, str]) -> "RequestBuilder":
        for key, value in headers.items():
            self.set_header(key, value)
        return self

    def set_query_string(self, query: str) -> "RequestBuilder":
        """Parse a raw query string and append its parameters.

        ``;`` separators and broken percent-escapes are recorded as a build
        error.
        """
        if ";" in query or _BAD_ESCAPE.search(query):
            self._record(RequestBuildError(f"malformed query: {query!r}"))
            return self

        for key, value in parse_qsl(query, keep_blank_values=True):
            self._query.setdefault(key, []).append(value)
        return self

    def set_query_param(self, key: str, value: str) -> "RequestBuilder":
        """Replace every value of ``key``. Blank keys are ignored."""
        if not key.strip():
            return self
        self._query[key] = [value]
        return self

    def set_query_params(self, params: Mapping[str, str]) -> "RequestBuilder":
        for key, value in params.items():
            self.set_query_param(key, value)
        return self

    def set_cookies(self, cookies: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> "RequestBuilder":
        """Replace the cookies sent with the request."""
        items = cookies.items() if isinstance(cookies, Mapping) else cookies
        self._cookies = [(name, value) for name, value in items]
        return self

    def set_basic_auth(self, user: str, password: str) -> "RequestBuilder":
        self._basic_auth = (user, password)
        return self

    # ------------------------------------------------------------------
    # Finalisation
    # ------------------------------------------------------------------

    def build(self) -> RequestSpec:
        """Return the finished request.

        Raises:
            RequestBuildError: The first error recorded by a setter, or a
                missing URL.
        """
        if self._error is not None:
            raise self._error
        if self._url is None:
            raise RequestBuildError("request url is not set")

        url = compose_url(urlsplit(self._url), self._query)
        body, offset = _resolve_body(self._body)

        headers: List[Tuple[str, str]] = []
        if self._basic_auth is not None:
            headers.append(("Authorization", _basic_auth_header(*self._basic_auth)))
        headers.extend(self._headers)
        if self._cookies:
            headers.append(("Cookie", "; ".join(f"{name}={value}" for name, value in self._cookies)))

        return RequestSpec(
            method=compose_method(self._method),
            url=url,
            headers=tuple(headers),
            body=body,
            context=self._context if self._context is not None else CallContext(),
            body_offset=offset,
        )


def _basic_auth_header(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def new_request() -> RequestBuilder:
    return RequestBuilder()
