# === NAVMAP v1 ===
# {
#   "module": "httpr.retry",
#   "purpose": "Retry predicates and the tenacity controller driving the attempt loop.",
#   "sections": [
#     {
#       "id": "attemptoutcome",
#       "name": "AttemptOutcome",
#       "anchor": "class-attemptoutcome",
#       "kind": "class"
#     },
#     {
#       "id": "predicates",
#       "name": "always_retry",
#       "anchor": "function-always-retry",
#       "kind": "function"
#     },
#     {
#       "id": "normalize-attempts",
#       "name": "normalize_attempts",
#       "anchor": "function-normalize-attempts",
#       "kind": "function"
#     },
#     {
#       "id": "build-retrying",
#       "name": "build_retrying",
#       "anchor": "function-build-retrying",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Retry predicates and the tenacity controller driving the attempt loop.

The attempt loop is a :class:`tenacity.Retrying` controller whose "result"
is an :class:`AttemptOutcome` (the response/error pair of one attempt):

- **Stop**: ``stop_after_attempt(max(1, retry_count))``. The ceiling is hard;
  a predicate can end the loop early but never extend it.
- **Wait**: ``wait_incrementing(start=delay, increment=delta)``. The delay
  grows additively after every non-terminal round (``delta=0`` keeps it
  constant).
- **Retry**: the caller's predicate evaluated on ``(response, error)``.
- **Sleep**: the call context's ``sleep``; a cancelled or expired context
  raises out of the controller instead of finishing the delay.

When the ceiling is reached while the predicate still asks for more, the
final outcome is returned flagged as ``exhausted`` so that the client can
decide between "response wins" and an :class:`~httpr.errors.AttemptsExhaustedError`.

Example:
    >>> controller = build_retrying(retry_count=3, delay=0.0, delta=0.0,
    ...                             condition=retry_on_status(500))
    >>> outcome = controller(lambda: AttemptOutcome(Response(status_code=500)))
    >>> outcome.exhausted
    True
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    wait_incrementing,
)

from .hooks import RetryCondition
from .policy import RETRYABLE_STATUS_CODES
from .response import Response

logger = logging.getLogger(__name__)

__all__ = [
    "AttemptOutcome",
    "always_retry",
    "never_retry",
    "retry_on_status",
    "retry_on_failure",
    "normalize_attempts",
    "build_retrying",
]


@dataclass(frozen=True)
class AttemptOutcome:
    """Response/error pair produced by a single attempt."""

    response: Response
    error: Optional[BaseException] = None
    exhausted: bool = False

    @property
    def failed(self) -> bool:
        return self.error is not None


# ============================================================================
# Predicates
# ============================================================================


def always_retry(response: Response, error: Optional[BaseException]) -> bool:
    """Default condition: keep going until the attempt budget runs out."""
    return True


def never_retry(response: Response, error: Optional[BaseException]) -> bool:
    return False


def retry_on_status(*status_codes: int) -> RetryCondition:
    """Retry while the response status is one of ``status_codes``."""
    codes = frozenset(status_codes)

    def _condition(response: Response, error: Optional[BaseException]) -> bool:
        return response.status_code in codes

    return _condition


def retry_on_failure(statuses: Iterable[int] = RETRYABLE_STATUS_CODES) -> RetryCondition:
    """Retry on any attempt error or on a transient status code."""
    codes = frozenset(statuses)

    def _condition(response: Response, error: Optional[BaseException]) -> bool:
        return error is not None or response.status_code in codes

    return _condition


# ============================================================================
# Controller
# ============================================================================


def normalize_attempts(retry_count: int) -> int:
    """Clamp a configured retry count to the number of attempts to make."""
    return max(1, int(retry_count))


def _log_before_sleep(retry_state: RetryCallState) -> None:
    next_action = retry_state.next_action
    if next_action is None:
        return
    outcome = retry_state.outcome.result() if retry_state.outcome is not None else None
    logger.warning(
        "Retrying request after attempt %d",
        retry_state.attempt_number,
        extra={
            "attempt": retry_state.attempt_number,
            "wait_ms": int(next_action.sleep * 1000),
            "elapsed_s": round(retry_state.seconds_since_start, 3),
            "status": outcome.response.status_code if outcome is not None else None,
            "error": repr(outcome.error) if outcome is not None and outcome.error else None,
        },
    )


def _mark_exhausted(retry_state: RetryCallState) -> AttemptOutcome:
    assert retry_state.outcome is not None
    outcome: AttemptOutcome = retry_state.outcome.result()
    return replace(outcome, exhausted=True)


def build_retrying(
    *,
    retry_count: int,
    delay: float,
    delta: float,
    condition: RetryCondition,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Create the tenacity controller for one call.

    Args:
        retry_count: Configured count; values below one still make one attempt.
        delay: Delay in seconds before the second attempt.
        delta: Seconds added to the delay after every further attempt.
        condition: Predicate deciding whether another attempt is authorised.
        sleep: Function used to wait between attempts.

    Returns:
        A controller that, when called with an attempt function returning an
        :class:`AttemptOutcome`, returns the final outcome.
    """
    return Retrying(
        stop=stop_after_attempt(normalize_attempts(retry_count)),
        wait=wait_incrementing(start=delay, increment=delta),
        retry=retry_if_result(lambda outcome: bool(condition(outcome.response, outcome.error))),
        sleep=sleep,
        before_sleep=_log_before_sleep,
        retry_error_callback=_mark_exhausted,
    )
