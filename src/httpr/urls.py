"""URL validation and composition helpers used by the request builder."""

from __future__ import annotations

from typing import Mapping, Sequence
from urllib.parse import SplitResult, urlencode, urlsplit, urlunsplit

__all__ = ["is_valid_url", "compose_url", "compose_method", "encode_query"]


def is_valid_url(raw_url: str) -> bool:
    """Return True when ``raw_url`` is an absolute URL with a dotted host.

    Examples:
        >>> is_valid_url("https://example.com?page=2")
        True
        >>> is_valid_url("example.com")
        False
        >>> is_valid_url("https://https://example.com")
        False
    """
    try:
        parts = urlsplit(raw_url)
    except ValueError:
        return False

    host = parts.netloc
    if not parts.scheme or not host.strip():
        return False
    if len(host.split(".")) < 2:
        return False

    lowered = host.lower()
    if "http:" in lowered or "https:" in lowered:
        return False
    return True


def encode_query(params: Mapping[str, Sequence[str]]) -> str:
    """Encode multi-valued query parameters sorted by key."""
    pairs = [(key, value) for key in sorted(params) for value in params[key]]
    return urlencode(pairs)


def compose_url(parts: SplitResult, params: Mapping[str, Sequence[str]]) -> str:
    """Append ``params`` to whatever query ``parts`` already carries."""
    encoded = encode_query(params)
    if not encoded:
        return urlunsplit(parts)
    query = f"{parts.query}&{encoded}" if parts.query else encoded
    return urlunsplit(parts._replace(query=query))


def compose_method(method: str) -> str:
    if not method:
        return "GET"
    return method.upper()
