# === NAVMAP v1 ===
# {
#   "module": "httpr.limiter",
#   "purpose": "Rate limiter capability plus pyrate-limiter backed implementation.",
#   "sections": [
#     {
#       "id": "limiter",
#       "name": "Limiter",
#       "anchor": "class-limiter",
#       "kind": "class"
#     },
#     {
#       "id": "unlimitedlimiter",
#       "name": "UnlimitedLimiter",
#       "anchor": "class-unlimitedlimiter",
#       "kind": "class"
#     },
#     {
#       "id": "ratespec",
#       "name": "RateSpec",
#       "anchor": "class-ratespec",
#       "kind": "class"
#     },
#     {
#       "id": "parse-rate-string",
#       "name": "parse_rate_string",
#       "anchor": "function-parse-rate-string",
#       "kind": "function"
#     },
#     {
#       "id": "ratelimiter",
#       "name": "RateLimiter",
#       "anchor": "class-ratelimiter",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Rate limiter capability plus a pyrate-limiter backed implementation.

The client calls :meth:`Limiter.take` exactly once per logical call, before
the pre-request hook and before the first attempt. ``take`` blocks until a
slot is granted and returns the wall-clock timestamp of the grant. It is the
one point where independent calls sharing a client synchronise, so every
implementation must tolerate many concurrent callers.

Blocking always observes the caller's :class:`~httpr.context.CallContext`:
when the context is cancelled or its deadline passes, ``take`` raises the
context's error instead of waiting out the bucket.

Example:
    >>> limiter = RateLimiter.from_string("5/second")
    >>> limiter.take()  # doctest: +SKIP
    1718900000.123
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from pyrate_limiter import Limiter as PyrateLimiter
from pyrate_limiter import Rate

from .context import CallContext
from .errors import RateLimitExceeded
from .policy import LIMITER_POLL_INTERVAL

logger = logging.getLogger(__name__)

__all__ = [
    "Limiter",
    "UnlimitedLimiter",
    "RateSpec",
    "parse_rate_string",
    "RateLimiter",
]


# ============================================================================
# Capability
# ============================================================================


@runtime_checkable
class Limiter(Protocol):
    """Blocking "acquire a slot" capability shared by concurrent calls."""

    def take(self, context: Optional[CallContext] = None) -> float:
        """Block until a slot is granted; return the grant timestamp."""
        ...


class UnlimitedLimiter:
    """Limiter that never blocks. Used when no rate limit is configured."""

    def take(self, context: Optional[CallContext] = None) -> float:
        if context is not None:
            error = context.error()
            if error is not None:
                raise error
        return time.time()

    def __repr__(self) -> str:
        return "UnlimitedLimiter()"


# ============================================================================
# Rate Strings
# ============================================================================

_RATE_PATTERN = re.compile(r"^\s*(\d+)\s*/\s*(second|minute|hour|day)\s*$", re.IGNORECASE)

_UNIT_MS = {
    "second": 1000,
    "minute": 60_000,
    "hour": 3_600_000,
    "day": 86_400_000,
}


@dataclass(frozen=True)
class RateSpec:
    """Parsed rate: ``limit`` permits per ``interval_ms`` milliseconds."""

    limit: int
    interval_ms: int

    @property
    def rps(self) -> float:
        """Equivalent permits per second."""
        return self.limit * 1000.0 / self.interval_ms

    def __str__(self) -> str:
        for unit, ms in _UNIT_MS.items():
            if ms == self.interval_ms:
                return f"{self.limit}/{unit}"
        return f"{self.limit}/{self.interval_ms}ms"


def parse_rate_string(rate_str: str) -> RateSpec:
    """Parse ``"N/second|minute|hour|day"`` into a :class:`RateSpec`.

    Raises:
        ValueError: If the string is malformed or the limit is zero.

    Examples:
        >>> parse_rate_string("10/second")
        RateSpec(limit=10, interval_ms=1000)
        >>> parse_rate_string("60/Minute").rps
        1.0
    """
    match = _RATE_PATTERN.match(rate_str or "")
    if not match:
        raise ValueError(f"Invalid rate format: {rate_str!r} (expected 'N/second|minute|hour|day')")

    limit = int(match.group(1))
    if limit <= 0:
        raise ValueError(f"Rate limit must be positive: {rate_str!r}")
    return RateSpec(limit=limit, interval_ms=_UNIT_MS[match.group(2).lower()])


# ============================================================================
# pyrate-limiter Backed Limiter
# ============================================================================


class RateLimiter:
    """Token-bucket style limiter backed by pyrate-limiter.

    Args:
        rates: One or more rates applied together (all must admit a call).
        name: Bucket identity inside pyrate-limiter.
        max_delay: Upper bound (seconds) on how long ``take`` may block.
            ``None`` waits for as long as the call context allows.
        poll_interval: How often a blocked caller re-checks the bucket.
    """

    def __init__(
        self,
        *rates: RateSpec,
        name: str = "httpr",
        max_delay: Optional[float] = None,
        poll_interval: float = LIMITER_POLL_INTERVAL,
    ) -> None:
        if not rates:
            raise ValueError("RateLimiter requires at least one rate")
        self._rates = tuple(rates)
        self._name = name
        self._max_delay = max_delay
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._limiter = PyrateLimiter(
            [Rate(rate.limit, rate.interval_ms) for rate in rates],
            raise_when_fail=False,
            max_delay=None,
        )

    @classmethod
    def from_string(cls, rate_str: str, **kwargs) -> "RateLimiter":
        return cls(parse_rate_string(rate_str), **kwargs)

    @property
    def rates(self) -> tuple[RateSpec, ...]:
        return self._rates

    def _try_acquire(self) -> bool:
        with self._lock:
            return bool(self._limiter.try_acquire(self._name, weight=1))

    def take(self, context: Optional[CallContext] = None) -> float:
        """Block until the bucket admits one call.

        Raises:
            RequestCancelled: If ``context`` is cancelled while waiting.
            DeadlineExceeded: If ``context``'s deadline passes while waiting.
            RateLimitExceeded: If ``max_delay`` elapses without a slot.
        """
        ctx = context if context is not None else CallContext()
        error = ctx.error()
        if error is not None:
            raise error

        start = time.monotonic()
        if self._try_acquire():
            return time.time()

        logger.debug(
            "Rate limit reached; waiting for a slot",
            extra={"limiter": self._name, "rates": [str(rate) for rate in self._rates]},
        )

        while True:
            interval = self._poll_interval
            if self._max_delay is not None:
                left = self._max_delay - (time.monotonic() - start)
                if left <= 0:
                    elapsed_ms = int((time.monotonic() - start) * 1000)
                    logger.warning(
                        "Rate limit wait exhausted",
                        extra={"limiter": self._name, "waited_ms": elapsed_ms},
                    )
                    raise RateLimitExceeded(
                        f"Rate limit exceeded for {self._name} after {elapsed_ms}ms"
                    )
                interval = min(interval, left)

            ctx.sleep(interval)
            if self._try_acquire():
                logger.debug(
                    "Rate limit slot acquired",
                    extra={
                        "limiter": self._name,
                        "delay_ms": int((time.monotonic() - start) * 1000),
                    },
                )
                return time.time()

    def __repr__(self) -> str:
        rates = ", ".join(str(rate) for rate in self._rates)
        return f"RateLimiter({rates})"
