"""Payload format, compression, and auth constants plus header lookups.

``build_request`` is the quick path for the common case of "fetch this URL in
this format, compressed this way": it fills ``Content-Encoding``,
``Content-Type`` and ``Accept`` from the two names and hands back a finished
:class:`~httpr.request.RequestSpec`.
"""

from __future__ import annotations

from typing import Any

from .decoding import (
    ACCEPT_DEFLATE,
    ACCEPT_GZIP,
    COMPRESSION_DEFLATE,
    COMPRESSION_GZIP,
    COMPRESSION_NONE,
    COMPRESSION_TAR,
)
from .request import RequestBuilder, RequestSpec

__all__ = [
    "FORMAT_CSV",
    "FORMAT_JSON",
    "FORMAT_XML",
    "AUTH_BASIC",
    "AUTH_BEARER",
    "AUTH_OAUTH2",
    "AUTH_NONE",
    "content_type_for",
    "accept_header_for",
    "build_request",
]

FORMAT_CSV = "csv"
FORMAT_JSON = "json"
FORMAT_XML = "xml"

AUTH_BASIC = "basic"
AUTH_BEARER = "bearer"
AUTH_OAUTH2 = "oauth2"
AUTH_NONE = "none"

_CONTENT_TYPES = {
    FORMAT_JSON: "application/json",
    FORMAT_XML: "application/xml",
    FORMAT_CSV: "text/csv",
}


def content_type_for(format_type: str) -> str:
    """Return the MIME type for ``format_type`` or an empty string."""
    return _CONTENT_TYPES.get(format_type, "")


def accept_header_for(compression: str, format_type: str) -> str:
    """Pick an ``Accept`` value, preferring the compression over the format.

    Examples:
        >>> accept_header_for("gzip", "json")
        'application/gzip'
        >>> accept_header_for("", "csv")
        'text/csv'
        >>> accept_header_for("", "")
        '*/*'
    """
    if compression != COMPRESSION_NONE:
        if compression in (COMPRESSION_TAR, COMPRESSION_GZIP):
            return ACCEPT_GZIP
        if compression == COMPRESSION_DEFLATE:
            return ACCEPT_DEFLATE
        return "*/*"

    return _CONTENT_TYPES.get(format_type, "*/*")


def build_request(
    url: str,
    method: str = "GET",
    compression: str = COMPRESSION_NONE,
    format_type: str = "",
    body: Any = None,
) -> RequestSpec:
    """Build a request whose headers advertise ``compression`` and ``format_type``.

    Raises:
        RequestBuildError: If the URL is invalid.
    """
    builder = RequestBuilder().set_method(method).set_url(url).set_body(body)
    if compression != COMPRESSION_NONE:
        builder.set_header("Content-Encoding", compression)

    content_type = content_type_for(format_type)
    if content_type:
        builder.set_header("Content-Type", content_type)

    builder.set_header("Accept", accept_header_for(compression, format_type))
    return builder.build()
