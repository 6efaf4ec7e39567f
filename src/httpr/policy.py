# === NAVMAP v1 ===
# {
#   "module": "httpr.policy",
#   "purpose": "Default constants for the execution engine and transports.",
#   "sections": []
# }
# === /NAVMAP ===

"""Default constants for the execution engine and transports.

Durations are expressed in seconds. Values mirror the defaults a freshly
built :class:`httpr.settings.ClientSettings` starts from.
"""

# ============================================================================
# Retry Defaults
# ============================================================================

#: Configured retry count on a fresh settings record (normalised to one attempt)
DEFAULT_RETRY_COUNT = 0

#: Initial delay between attempts
DEFAULT_RETRY_DELAY = 3.0

#: Additive growth of the delay after each non-terminal round
DEFAULT_RETRY_DELAY_DELTA = 0.0

#: Statuses treated as transient by :func:`httpr.retry.retry_on_failure`
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


# ============================================================================
# Timeouts
# ============================================================================

#: Wall-clock budget for one call to ``Client.do`` (rate limit + all attempts)
DEFAULT_REQUEST_TIMEOUT = 60.0

#: TLS handshake budget used by the default transport
TLS_HANDSHAKE_TIMEOUT = 60.0


# ============================================================================
# Connection Pooling
# ============================================================================

#: Maximum concurrent connections held by the default transport
MAX_CONNECTIONS = 100

#: Idle connections kept alive by the default transport
MAX_KEEPALIVE_CONNECTIONS = 100

#: Seconds an idle pooled connection survives
KEEPALIVE_EXPIRY = 90.0


# ============================================================================
# Redirects & Limiter
# ============================================================================

#: Hops followed by the default redirect check before giving up
MAX_REDIRECT_HOPS = 10

#: How often a blocked rate limiter re-polls its bucket (seconds)
LIMITER_POLL_INTERVAL = 0.025


__all__ = [
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_RETRY_DELAY_DELTA",
    "RETRYABLE_STATUS_CODES",
    "DEFAULT_REQUEST_TIMEOUT",
    "TLS_HANDSHAKE_TIMEOUT",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "KEEPALIVE_EXPIRY",
    "MAX_REDIRECT_HOPS",
    "LIMITER_POLL_INTERVAL",
]
