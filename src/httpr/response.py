"""Fully buffered, immutable response value.

Every accessor is safe on a zero-valued instance: ``Response()`` reports
status ``0``, empty headers, an empty body and an empty request URL instead
of raising. The engine returns such a value alongside transport failures.
"""

from __future__ import annotations

import io
import json as jsonlib
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, List, Optional

import httpx

from .errors import ResponseError

__all__ = ["Response", "is_2xx", "is_4xx", "is_5xx"]


def is_2xx(status_code: int) -> bool:
    return 200 <= status_code < 300


def is_4xx(status_code: int) -> bool:
    return 400 <= status_code < 500


def is_5xx(status_code: int) -> bool:
    return 500 <= status_code < 600


@dataclass(frozen=True)
class Response:
    """Buffered result of one attempt.

    Attributes:
        status_code: HTTP status, ``0`` when no response was received.
        headers: Response header multimap.
        body: Buffered (and possibly decoded) body bytes.
        request_url: URL of the request that produced this response.
        raw: The underlying :class:`httpx.Response`, already closed.
    """

    status_code: int = 0
    headers: httpx.Headers = field(default_factory=httpx.Headers, hash=False)
    body: bytes = b""
    request_url: str = ""
    raw: Optional[httpx.Response] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_httpx(cls, raw: httpx.Response, body: bytes = b"") -> "Response":
        """Snapshot ``raw`` with an already drained ``body``."""
        request_url = ""
        try:
            request_url = str(raw.request.url)
        except RuntimeError:
            # httpx raises when the response was built without a request
            request_url = ""
        return cls(
            status_code=raw.status_code,
            headers=httpx.Headers(raw.headers),
            body=bytes(body),
            request_url=request_url,
            raw=raw,
        )

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    @property
    def content(self) -> bytes:
        return self.body or b""

    def bytes(self) -> bytes:
        return self.content

    @property
    def text(self) -> str:
        """Body decoded with the declared charset (UTF-8 when absent)."""
        if not self.body:
            return ""
        charset = "utf-8"
        if self.raw is not None and self.raw.charset_encoding:
            charset = self.raw.charset_encoding
        try:
            return self.body.decode(charset, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")

    def json(self, **kwargs: Any) -> Any:
        """Parse the body as JSON; an empty body yields ``None``."""
        if not self.body:
            return None
        return jsonlib.loads(self.body, **kwargs)

    def reader(self) -> io.BytesIO:
        return io.BytesIO(self.content)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def header(self, name: str) -> str:
        """Return the first value of header ``name`` or an empty string."""
        values = self.header_values(name)
        return values[0] if values else ""

    def header_values(self, name: str) -> List[str]:
        if self.headers is None:
            return []
        return self.headers.get_list(name)

    @property
    def cookies(self) -> Dict[str, str]:
        """Cookies set by ``Set-Cookie`` headers, keyed by name."""
        jar: Dict[str, str] = {}
        for value in self.header_values("set-cookie"):
            parsed = SimpleCookie()
            try:
                parsed.load(value)
            except CookieError:
                continue
            for name, morsel in parsed.items():
                jar[name] = morsel.value
        return jar

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def ok(self) -> bool:
        return is_2xx(self.status_code)

    def raise_for_status(self) -> "Response":
        """Raise :class:`ResponseError` for 4xx/5xx responses.

        Returns:
            ``self`` when the status is not an error.
        """
        if is_4xx(self.status_code) or is_5xx(self.status_code):
            raise ResponseError(self.text, code=self.status_code)
        return self
