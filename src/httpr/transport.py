"""Default pooled transport and authorization-injecting wrappers.

The default transport pools up to 100 connections and verifies servers
against the certifi CA bundle. The auth wrappers decorate any transport
(the default one unless told otherwise) and add an ``Authorization`` header
before delegating.
"""

from __future__ import annotations

import base64
import logging
import ssl
from typing import Optional

import certifi
import httpx

from .policy import KEEPALIVE_EXPIRY, MAX_CONNECTIONS, MAX_KEEPALIVE_CONNECTIONS

logger = logging.getLogger(__name__)

__all__ = [
    "default_transport",
    "BasicAuthTransport",
    "BearerAuthTransport",
    "build_basic_auth_transport",
    "build_bearer_auth_transport",
]


def _create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Create SSL context with secure defaults.

    Returns:
        Configured ssl.SSLContext for use with HTTPX
    """
    if not verify:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        logger.warning("TLS verification DISABLED (development only!)")
        return ctx

    ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def default_transport(verify: bool = True) -> httpx.HTTPTransport:
    """Pooled HTTP transport backed by the certifi CA bundle."""
    return httpx.HTTPTransport(
        verify=_create_ssl_context(verify),
        limits=httpx.Limits(
            max_connections=MAX_CONNECTIONS,
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            keepalive_expiry=KEEPALIVE_EXPIRY,
        ),
    )


class _AuthTransport(httpx.BaseTransport):
    def __init__(self, inner: Optional[httpx.BaseTransport] = None) -> None:
        self._inner = inner if inner is not None else default_transport()

    def _authorize(self, request: httpx.Request) -> None:
        raise NotImplementedError

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self._authorize(request)
        return self._inner.handle_request(request)

    def close(self) -> None:
        self._inner.close()


class BasicAuthTransport(_AuthTransport):
    """Adds HTTP Basic credentials unless the request already carries ``Authorization``."""

    def __init__(
        self,
        username: str,
        password: str,
        inner: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(inner)
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        self._header = f"Basic {token}"

    def _authorize(self, request: httpx.Request) -> None:
        if not request.headers.get("Authorization"):
            request.headers["Authorization"] = self._header


class BearerAuthTransport(_AuthTransport):
    """Sets ``Authorization: Bearer <token>`` on every request."""

    def __init__(self, token: str, inner: Optional[httpx.BaseTransport] = None) -> None:
        super().__init__(inner)
        self._header = f"Bearer {token}"

    def _authorize(self, request: httpx.Request) -> None:
        request.headers["Authorization"] = self._header


def build_basic_auth_transport(username: str, password: str) -> BasicAuthTransport:
    return BasicAuthTransport(username, password)


def build_bearer_auth_transport(token: str) -> BearerAuthTransport:
    return BearerAuthTransport(token)
