"""HTTP wire instrumentation.

Logs one DEBUG record per request/response exchange made by the underlying
:class:`httpx.Client`, with method, redacted URL, status and round-trip
time. Query strings are stripped from logged URLs.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List
from urllib.parse import urlsplit, urlunsplit

import httpx

logger = logging.getLogger(__name__)

__all__ = ["create_http_event_hooks"]

#: Request extension holding the send start time; failed sends drop it with the request
START_TIME_EXTENSION = "httpr.start_time"


def create_http_event_hooks() -> Dict[str, List[Callable[[Any], None]]]:
    """Create HTTPX event hooks for wire logging.

    Returns:
        Dict with 'request' and 'response' hooks for an HTTPX client.

    Usage:
        >>> import httpx
        >>> hooks = create_http_event_hooks()
        >>> client = httpx.Client(event_hooks=hooks)
    """

    def on_request(request: httpx.Request) -> None:
        request.extensions[START_TIME_EXTENSION] = time.perf_counter()

    def on_response(response: httpx.Response) -> None:
        start_time = response.request.extensions.pop(START_TIME_EXTENSION, None)
        if start_time is None:
            return

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "HTTP exchange",
            extra={
                "method": response.request.method,
                "url_redacted": _redact_url(str(response.request.url)),
                "host": response.request.url.host or "unknown",
                "status": response.status_code,
                "http_version": response.http_version,
                "elapsed_ms": round(elapsed_ms, 2),
            },
        )

    return {
        "request": [on_request],
        "response": [on_response],
    }


def _redact_url(url: str) -> str:
    """Keep only scheme, host and path of ``url``."""
    try:
        parsed = urlsplit(url)
    except ValueError:
        return "[URL_REDACTION_FAILED]"
    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path, "", ""))
