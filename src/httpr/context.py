"""Cancellation and deadline propagation for a single client call.

Every :class:`~httpr.request.RequestSpec` carries a :class:`CallContext`.
The engine derives a child context bounded by the configured timeout and
waits on it at its two suspension points: the rate limiter and the delay
between attempts. Cancelling a context cancels all of its descendants;
cancelling a child never touches its parent. Deadlines are inherited, so a
child can only shorten the time it has left.

Examples:
    >>> ctx = CallContext()
    >>> child = ctx.with_timeout(5.0)
    >>> ctx.cancel()
    >>> child.done()
    True
    >>> isinstance(child.error(), RequestCancelled)
    True
"""

from __future__ import annotations

import threading
import time
from typing import Optional, Type

from .errors import ContextError, DeadlineExceeded, RequestCancelled

__all__ = ["CallContext", "background"]


class CallContext:
    """Thread-safe cancellation token with an optional monotonic deadline."""

    def __init__(
        self,
        *,
        deadline: Optional[float] = None,
        parent: Optional["CallContext"] = None,
    ) -> None:
        self._finished = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[Type[ContextError]] = None
        self._children: list[CallContext] = []
        self._parent = parent

        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline

        if parent is not None:
            parent._attach(self)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_cancel(self) -> "CallContext":
        """Return a child that can be cancelled independently of this context."""
        return CallContext(parent=self)

    def with_timeout(self, seconds: Optional[float]) -> "CallContext":
        """Return a child whose deadline is at most ``seconds`` from now.

        ``None`` or a non-positive value adds no deadline of its own; the
        child still inherits this context's deadline.
        """
        if seconds is None or seconds <= 0:
            return CallContext(parent=self)
        return CallContext(deadline=time.monotonic() + seconds, parent=self)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def deadline(self) -> Optional[float]:
        """Deadline on the :func:`time.monotonic` clock, if any."""
        return self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative), or ``None``."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._finish(RequestCancelled)

    def done(self) -> bool:
        return self.error() is not None

    def error(self) -> Optional[ContextError]:
        """Return a fresh error describing why the context finished, if it has."""
        if self._reason is None and self._deadline is not None:
            if time.monotonic() >= self._deadline:
                self._finish(DeadlineExceeded)
        reason = self._reason
        if reason is None:
            return None
        if reason is DeadlineExceeded:
            return DeadlineExceeded("context deadline exceeded")
        return reason("context canceled")

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    def wait(self, timeout: Optional[float]) -> bool:
        """Block for up to ``timeout`` seconds.

        Returns:
            True when the context finished (cancelled or expired) before or
            at the moment the timeout elapsed, False when the full timeout
            passed with the context still live.
        """
        if self.done():
            return True
        limit = timeout
        remaining = self.remaining()
        if remaining is not None:
            limit = remaining if limit is None else min(limit, remaining)
        if limit is None or limit > 0:
            self._finished.wait(limit)
        return self.done()

    def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless the context finishes first.

        Raises:
            RequestCancelled: If the context was cancelled during the sleep.
            DeadlineExceeded: If the deadline elapsed during the sleep.
        """
        if self.wait(seconds):
            error = self.error()
            assert error is not None
            raise error

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Cancel this context and detach it from its parent."""
        self.cancel()
        if self._parent is not None:
            self._parent._detach(self)

    def __enter__(self) -> "CallContext":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "done" if self._reason is not None else "live"
        return f"{self.__class__.__name__}(state={state}, remaining={self.remaining()})"

    def _attach(self, child: "CallContext") -> None:
        with self._lock:
            reason = self._reason
            if reason is None:
                self._children.append(child)
        if reason is not None:
            child._finish(reason)

    def _detach(self, child: "CallContext") -> None:
        with self._lock:
            try:
                self._children.remove(child)
            except ValueError:
                pass

    def _finish(self, reason: Type[ContextError]) -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            self._finished.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child._finish(reason)


def background() -> CallContext:
    """Return a new root context with no deadline."""
    return CallContext()
