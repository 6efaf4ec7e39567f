# === NAVMAP v1 ===
# {
#   "module": "httpr.redirect",
#   "purpose": "Manual redirect following governed by a caller-supplied check.",
#   "sections": [
#     {
#       "id": "uselastresponse",
#       "name": "UseLastResponse",
#       "anchor": "class-uselastresponse",
#       "kind": "class"
#     },
#     {
#       "id": "default-redirect-check",
#       "name": "default_redirect_check",
#       "anchor": "function-default-redirect-check",
#       "kind": "function"
#     },
#     {
#       "id": "follow-redirects",
#       "name": "follow_redirects",
#       "anchor": "function-follow-redirects",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Manual redirect following governed by a caller-supplied check.

The underlying :class:`httpx.Client` never follows redirects itself. After
each response that carries a ``next_request`` the check is called with that
request and the chain of requests sent so far:

- returning normally follows the hop;
- raising :class:`UseLastResponse` stops and keeps the redirect response;
- raising anything else aborts the attempt with a
  :class:`~httpr.errors.TransportError`.

Without a caller-supplied check, :func:`default_redirect_check` allows up to
ten hops.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import httpx

from .context import CallContext
from .errors import TooManyRedirects, TransportError
from .policy import MAX_REDIRECT_HOPS

logger = logging.getLogger(__name__)

__all__ = [
    "RedirectCheck",
    "UseLastResponse",
    "default_redirect_check",
    "follow_redirects",
]

#: ``(next_request, via) -> None``; raise to stop following
RedirectCheck = Callable[[httpx.Request, List[httpx.Request]], None]


class UseLastResponse(Exception):
    """Raised by a redirect check to keep the most recent response as-is."""


def default_redirect_check(next_request: httpx.Request, via: List[httpx.Request]) -> None:
    if len(via) >= MAX_REDIRECT_HOPS:
        raise TooManyRedirects(f"stopped after {MAX_REDIRECT_HOPS} redirects")


def follow_redirects(
    http_client: httpx.Client,
    response: httpx.Response,
    check: Optional[RedirectCheck] = None,
    context: Optional[CallContext] = None,
) -> httpx.Response:
    """Follow the redirect chain starting at ``response``.

    Args:
        http_client: Client used to send each hop (streaming, no auto-follow).
        response: First response of the chain, opened in streaming mode.
        check: Redirect policy; ``None`` selects :func:`default_redirect_check`.
        context: Call context; each hop is bounded by its remaining time.

    Returns:
        The last response of the chain, still open.

    Raises:
        TransportError: If the check vetoes a hop (``TooManyRedirects`` for the
            default hop limit).
        httpx.HTTPError: If sending a hop fails.
    """
    policy = check if check is not None else default_redirect_check
    via: List[httpx.Request] = [response.request]

    while response.next_request is not None:
        next_request = response.next_request
        try:
            policy(next_request, via)
        except UseLastResponse:
            return response
        except TransportError:
            response.close()
            raise
        except Exception as exc:
            response.close()
            raise TransportError(f"redirect to {next_request.url} rejected: {exc}") from exc

        logger.debug(
            "Following redirect",
            extra={
                "status": response.status_code,
                "from_url": str(response.request.url),
                "to_url": str(next_request.url),
                "hop": len(via),
            },
        )
        response.close()
        _bound_timeout(next_request, context)
        response = http_client.send(next_request, stream=True, follow_redirects=False)
        via.append(next_request)

    return response


def _bound_timeout(request: httpx.Request, context: Optional[CallContext]) -> None:
    # next_request inherits the first hop's timeout extension
    if context is None:
        return
    remaining = context.remaining()
    if remaining is not None:
        request.extensions["timeout"] = httpx.Timeout(remaining).as_dict()
