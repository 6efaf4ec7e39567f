"""Hook signatures, no-op defaults, and the random-delay pre-request hook.

Pre-request hooks run once per call, after the rate limiter and before the
first attempt; raising from one vetoes the call and the exception reaches the
caller unchanged. Post-request hooks observe every attempt and cannot fail
the call.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .request import RequestSpec
    from .response import Response

__all__ = [
    "PreRequestHook",
    "PostRequestHook",
    "RetryCondition",
    "noop_pre_request_hook",
    "noop_post_request_hook",
    "random_delay",
]

#: ``(request) -> None``; raise to veto the call
PreRequestHook = Callable[["RequestSpec"], None]

#: ``(request, response, error) -> None``; observer only
PostRequestHook = Callable[["RequestSpec", "Response", Optional[BaseException]], None]

#: ``(response, error) -> bool``; ``True`` authorises another attempt
RetryCondition = Callable[["Response", Optional[BaseException]], bool]


def noop_pre_request_hook(request: "RequestSpec") -> None:
    return None


def noop_post_request_hook(
    request: "RequestSpec",
    response: "Response",
    error: Optional[BaseException],
) -> None:
    return None


def random_delay(limit: float) -> PreRequestHook:
    """Return a pre-request hook sleeping a random delay in ``[0, limit)`` seconds.

    The sleep observes the request's call context, so cancelling the call
    cuts the delay short and vetoes the call with the context's error.

    Args:
        limit: Upper bound of the delay in seconds. Non-positive values
            produce a hook that never sleeps.
    """

    def _hook(request: "RequestSpec") -> None:
        if limit <= 0:
            return
        request.context.sleep(random.uniform(0, limit))

    return _hook
