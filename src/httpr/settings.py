"""Client settings record and the ordered option mutators that build it.

Settings are produced by applying :data:`Option` callables, in order, to a
fresh default record::

    settings = build_settings(with_retry_count(3), with_retry_delay(0.5))

Client-scoped settings are built once when the client is created. When a
call passes its own options they are applied to a *new* default record, not
to a copy of the client's settings, so call-scoped options replace the client
configuration for that call entirely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from http.cookiejar import CookieJar
from typing import Callable, Optional

import httpx

from .hooks import (
    PostRequestHook,
    PreRequestHook,
    RetryCondition,
    noop_post_request_hook,
    noop_pre_request_hook,
)
from .limiter import Limiter, UnlimitedLimiter
from .policy import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_RETRY_DELAY_DELTA,
)
from .redirect import RedirectCheck
from .retry import always_retry

__all__ = [
    "ClientSettings",
    "Option",
    "new_default_settings",
    "build_settings",
    "with_rate_limiter",
    "with_retry_count",
    "with_retry_delay",
    "with_retry_delay_delta",
    "with_retry_condition",
    "with_timeout",
    "with_transport",
    "with_cookie_jar",
    "with_check_redirect",
    "with_pre_request_hook",
    "with_post_request_hook",
    "with_auto_decompression",
]


@dataclass
class ClientSettings:
    """Configuration aggregated from options.

    Attributes:
        rate_limiter: Acquired once per call before anything else.
        retry_count: Attempt ceiling (values below one mean one attempt).
        retry_delay: Seconds before the second attempt.
        retry_delay_delta: Seconds added to the delay after each further attempt.
        retry_condition: ``(response, error) -> bool`` deciding continuation.
        timeout: Wall-clock budget in seconds for one call; ``None`` or
            non-positive disables it.
        transport: httpx transport; ``None`` selects the default pooled one.
        cookie_jar: Jar shared by every call made with these settings.
        decompress: Decode gzip/deflate/tar bodies while buffering.
        redirect_check: Replaces the default redirect hop limit when set.
        pre_request_hook: Veto-capable hook run once per call.
        post_request_hook: Observer run after every attempt.
    """

    rate_limiter: Limiter = field(default_factory=UnlimitedLimiter)
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY
    retry_delay_delta: float = DEFAULT_RETRY_DELAY_DELTA
    retry_condition: RetryCondition = always_retry
    timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT
    transport: Optional[httpx.BaseTransport] = None
    cookie_jar: CookieJar = field(default_factory=CookieJar)
    decompress: bool = True
    redirect_check: Optional[RedirectCheck] = None
    pre_request_hook: PreRequestHook = noop_pre_request_hook
    post_request_hook: PostRequestHook = noop_post_request_hook


#: An ordered mutator applied to a settings record
Option = Callable[[ClientSettings], None]


def new_default_settings() -> ClientSettings:
    return ClientSettings()


def build_settings(*options: Option) -> ClientSettings:
    """Apply ``options`` in order to a fresh default record."""
    settings = new_default_settings()
    for option in options:
        option(settings)
    return settings


# ============================================================================
# Options
# ============================================================================


def with_rate_limiter(limiter: Optional[Limiter]) -> Option:
    """Use ``limiter`` for every call; ``None`` keeps the current limiter."""

    def _apply(settings: ClientSettings) -> None:
        if limiter is not None:
            settings.rate_limiter = limiter

    return _apply


def with_retry_count(count: int) -> Option:
    def _apply(settings: ClientSettings) -> None:
        settings.retry_count = count

    return _apply


def with_retry_delay(delay: float) -> Option:
    """Set the initial delay (seconds) between attempts."""
    if delay < 0:
        raise ValueError(f"retry delay must be non-negative, got {delay}")

    def _apply(settings: ClientSettings) -> None:
        settings.retry_delay = delay

    return _apply


def with_retry_delay_delta(delta: float) -> Option:
    """Set the additive growth (seconds) of the delay after each round."""

    def _apply(settings: ClientSettings) -> None:
        settings.retry_delay_delta = delta

    return _apply


def with_retry_condition(condition: Optional[RetryCondition]) -> Option:
    def _apply(settings: ClientSettings) -> None:
        if condition is not None:
            settings.retry_condition = condition

    return _apply


def with_timeout(timeout: Optional[float]) -> Option:
    """Bound each call (rate limiting, hooks and every attempt) to ``timeout`` seconds."""

    def _apply(settings: ClientSettings) -> None:
        settings.timeout = timeout

    return _apply


def with_transport(transport: Optional[httpx.BaseTransport]) -> Option:
    def _apply(settings: ClientSettings) -> None:
        if transport is not None:
            settings.transport = transport

    return _apply


def with_cookie_jar(jar: Optional[CookieJar]) -> Option:
    def _apply(settings: ClientSettings) -> None:
        if jar is not None:
            settings.cookie_jar = jar

    return _apply


def with_check_redirect(check: Optional[RedirectCheck]) -> Option:
    """Replace the default redirect hop limit with ``check(next_request, via)``."""

    def _apply(settings: ClientSettings) -> None:
        settings.redirect_check = check

    return _apply


def with_pre_request_hook(hook: Optional[PreRequestHook]) -> Option:
    def _apply(settings: ClientSettings) -> None:
        if hook is not None:
            settings.pre_request_hook = hook

    return _apply


def with_post_request_hook(hook: Optional[PostRequestHook]) -> Option:
    def _apply(settings: ClientSettings) -> None:
        if hook is not None:
            settings.post_request_hook = hook

    return _apply


def with_auto_decompression(enabled: bool) -> Option:
    def _apply(settings: ClientSettings) -> None:
        settings.decompress = enabled

    return _apply
